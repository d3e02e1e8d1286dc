"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import List, Optional

from layaway_hub.domain.models import FinancingRequest, PaymentSummary


class FinancingRequestCreate(BaseModel):
    """Request body for POST /v1/financing/requests"""

    customer_name: str = Field(..., min_length=1, description="Name as shown by the identity provider")
    email: str = Field(..., min_length=3, description="Verified customer email, the trust ledger key")
    phone: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    product_name: str = Field(..., min_length=1)
    product_category: str = Field(..., min_length=1)
    price: int = Field(..., gt=0, description="Catalog price in whole currency units")
    plan_months: int = Field(3, description="Layaway term in months")
    customer_id: Optional[str] = None
    product_id: Optional[str] = None


class PaymentCreate(BaseModel):
    """Request body for POST /v1/financing/requests/{id}/payments"""

    amount: int = Field(..., gt=0, description="Payment received, whole currency units")


class FinancingRequestResponse(BaseModel):
    """A financing request with its live balance view"""

    id: str
    customer_id: Optional[str] = None
    customer_name: str
    email: str
    phone: str
    address: str
    product_id: Optional[str] = None
    product_name: str
    product_category: str
    total_amount: int
    interest_rate_at_request: int
    total_with_interest: int
    plan_months: int
    amount_paid: int
    status: str
    refunded: bool
    refund_amount: int
    trust_stars: Optional[int] = None
    customer_stars: int = Field(0, description="Customer's live trust rating from the ledger")
    admin_deleted: bool
    created_at: datetime
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None
    last_payment_at: Optional[datetime] = None

    balance: int
    months_elapsed: int
    late_penalty: int
    monthly_installment: int
    progress_percent: int

    @classmethod
    def build(
        cls,
        request: FinancingRequest,
        summary: PaymentSummary,
        customer_stars: int = 0,
    ) -> "FinancingRequestResponse":
        return cls(
            id=request.id,
            customer_id=request.customer_id,
            customer_name=request.customer_name,
            email=request.email,
            phone=request.phone,
            address=request.address,
            product_id=request.product_id,
            product_name=request.product_name,
            product_category=request.product_category,
            total_amount=request.total_amount,
            interest_rate_at_request=request.interest_rate_at_request,
            total_with_interest=request.total_with_interest,
            plan_months=request.plan_months,
            amount_paid=request.amount_paid,
            status=request.status.value,
            refunded=request.refunded,
            refund_amount=request.refund_amount,
            trust_stars=request.trust_stars,
            customer_stars=customer_stars,
            admin_deleted=request.admin_deleted,
            created_at=request.created_at,
            approved_at=request.approved_at,
            rejected_at=request.rejected_at,
            delivered_at=request.delivered_at,
            cancelled_at=request.cancelled_at,
            refunded_at=request.refunded_at,
            last_payment_at=request.last_payment_at,
            balance=summary.balance,
            months_elapsed=summary.months_elapsed,
            late_penalty=summary.late_penalty,
            monthly_installment=summary.monthly_installment,
            progress_percent=summary.progress_percent,
        )


class RequestListResponse(BaseModel):
    """Response for the active/history admin lists"""

    pending_count: int
    requests: List[FinancingRequestResponse]


class InstallmentSchema(BaseModel):
    """Single installment in a layaway schedule"""

    due_date: date
    amount: int


class ScheduleResponse(BaseModel):
    """Response for GET /v1/financing/requests/{id}/schedule"""

    request_id: str
    total_with_interest: int
    plan_months: int
    installments: List[InstallmentSchema]


class ConfigurationResponse(BaseModel):
    """Global financing configuration"""

    interest_rate_percent: int
    allowed_categories: List[str]


class ConfigurationUpdate(BaseModel):
    """Request body for PATCH /v1/financing/config - omitted fields are kept"""

    interest_rate_percent: Optional[int] = None
    allowed_categories: Optional[List[str]] = None


class TrustResponse(BaseModel):
    """Response for GET /v1/trust/{email}"""

    email: str
    success_count: int
    stars: int
    last_success_at: Optional[datetime] = None
