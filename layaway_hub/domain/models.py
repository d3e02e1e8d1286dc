"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional


class RequestStatus(str, Enum):
    """Lifecycle status of a financing request"""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


CLOSED_STATUSES = frozenset({RequestStatus.DELIVERED, RequestStatus.CANCELLED})
OPEN_STATUSES = frozenset({RequestStatus.PENDING, RequestStatus.APPROVED})


@dataclass
class FinancingRequest:
    """Layaway request with amounts frozen at submission time"""

    id: str
    customer_name: str
    email: str
    phone: str
    address: str
    product_name: str
    product_category: str
    total_amount: int
    interest_rate_at_request: int
    total_with_interest: int
    plan_months: int
    created_at: datetime
    status: RequestStatus = RequestStatus.PENDING
    amount_paid: int = 0
    refunded: bool = False
    refund_amount: int = 0
    trust_stars: Optional[int] = None
    admin_deleted: bool = False
    customer_id: Optional[str] = None
    product_id: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None
    last_payment_at: Optional[datetime] = None

    @property
    def is_closed(self) -> bool:
        return self.status in CLOSED_STATUSES


@dataclass
class TrustRecord:
    """Lifetime count of delivered layaways for one customer email"""

    email_key: str
    success_count: int
    last_success_at: Optional[datetime] = None


@dataclass
class FinancingConfiguration:
    """Global markup and category eligibility"""

    interest_rate_percent: int
    allowed_categories: List[str] = field(default_factory=list)


@dataclass
class PaymentSummary:
    """Read-side view of what is owed on a request"""

    balance: int
    months_elapsed: int
    late_penalty: int
    monthly_installment: int
    progress_percent: int


@dataclass
class Installment:
    """Single payment in a layaway schedule"""

    due_date: date
    amount: int
