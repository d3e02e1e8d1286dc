"""Data access layer for financing requests, the trust ledger and configuration"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from layaway_hub.infrastructure.database.models import (
    FinancingRequestRow,
    TrustRecordRow,
    FinancingConfigurationRow,
)
from layaway_hub.domain.models import (
    FinancingRequest,
    FinancingConfiguration,
    RequestStatus,
    TrustRecord,
)

_REQUEST_FIELDS = [
    "id", "customer_id", "customer_name", "email", "phone", "address",
    "product_id", "product_name", "product_category", "total_amount",
    "interest_rate_at_request", "total_with_interest", "plan_months",
    "amount_paid", "refunded", "refund_amount", "trust_stars", "admin_deleted",
    "created_at", "approved_at", "rejected_at", "delivered_at", "cancelled_at",
    "refunded_at", "last_payment_at",
]


def _request_to_domain(row: FinancingRequestRow) -> FinancingRequest:
    values = {name: getattr(row, name) for name in _REQUEST_FIELDS}
    return FinancingRequest(status=RequestStatus(row.status), **values)


def _trust_to_domain(row: TrustRecordRow) -> TrustRecord:
    return TrustRecord(
        email_key=row.email_key,
        success_count=row.success_count,
        last_success_at=row.last_success_at,
    )


class FinancingRequestRepository:
    """Repository for layaway requests"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, request: FinancingRequest) -> FinancingRequest:
        """Persist a new request; the id must not already exist"""
        values = {name: getattr(request, name) for name in _REQUEST_FIELDS}
        row = FinancingRequestRow(status=request.status.value, **values)
        self.db.add(row)
        self.db.flush()
        return _request_to_domain(row)

    def get_by_id(self, request_id: str, for_update: bool = False) -> Optional[FinancingRequest]:
        """
        Fetch a request regardless of its soft-delete flag.

        for_update locks the row until the transaction ends (SELECT ... FOR
        UPDATE; SQLite already holds the database write lock).
        """
        row = self.db.get(
            FinancingRequestRow,
            request_id,
            populate_existing=True,
            with_for_update=for_update or None,
        )
        return _request_to_domain(row) if row else None

    def list_visible(self) -> List[FinancingRequest]:
        """Requests not hidden by an administrator, newest first"""
        rows = (
            self.db.query(FinancingRequestRow)
            .filter(FinancingRequestRow.admin_deleted.is_(False))
            .order_by(FinancingRequestRow.created_at.desc(), FinancingRequestRow.id.desc())
            .all()
        )
        return [_request_to_domain(r) for r in rows]

    def list_by_email(self, email: str) -> List[FinancingRequest]:
        """All of one customer's requests (deleted included), newest first"""
        rows = (
            self.db.query(FinancingRequestRow)
            .filter(FinancingRequestRow.email == email)
            .order_by(FinancingRequestRow.created_at.desc())
            .all()
        )
        return [_request_to_domain(r) for r in rows]

    def update(self, request_id: str, fields: Dict[str, Any]) -> Optional[FinancingRequest]:
        """Apply fields to a stored request; None when it does not exist"""
        row = self.db.get(FinancingRequestRow, request_id)
        if row is None:
            return None

        for name, value in fields.items():
            if name == "status":
                value = RequestStatus(value).value
            setattr(row, name, value)

        self.db.flush()
        return _request_to_domain(row)

    def add_payment(self, request_id: str, amount: int, at: datetime) -> bool:
        """
        Add to amount_paid in a single statement, only while approved.

        Returns:
            False when no approved request with that id exists
        """
        result = self.db.execute(
            update(FinancingRequestRow)
            .where(
                FinancingRequestRow.id == request_id,
                FinancingRequestRow.status == RequestStatus.APPROVED.value,
            )
            .values(
                amount_paid=FinancingRequestRow.amount_paid + amount,
                last_payment_at=at,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


class TrustRepository:
    """Repository for the per-customer trust ledger"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, email_key: str) -> Optional[TrustRecord]:
        row = self.db.get(TrustRecordRow, email_key, populate_existing=True)
        return _trust_to_domain(row) if row else None

    def increment(self, email_key: str, at: datetime) -> TrustRecord:
        """
        Atomically add one delivered layaway to a customer's count.

        The increment is done by the database (success_count + 1), never
        read-modify-write in Python. A first delivery inserts the row inside a
        savepoint; if another transaction inserted it first, the unique key
        rejects ours and we increment theirs instead.
        """
        bump = (
            update(TrustRecordRow)
            .where(TrustRecordRow.email_key == email_key)
            .values(success_count=TrustRecordRow.success_count + 1, last_success_at=at)
            .execution_options(synchronize_session=False)
        )

        if self.db.execute(bump).rowcount == 0:
            try:
                with self.db.begin_nested():
                    self.db.add(TrustRecordRow(email_key=email_key, success_count=1, last_success_at=at))
            except IntegrityError:
                self.db.execute(bump)

        row = self.db.get(TrustRecordRow, email_key, populate_existing=True)
        return _trust_to_domain(row)


class ConfigurationRepository:
    """Repository for the singleton financing configuration"""

    def __init__(self, db: Session, default_rate: int, default_categories: List[str]):
        self.db = db
        self.default_rate = default_rate
        self.default_categories = default_categories

    def get(self) -> FinancingConfiguration:
        """Stored configuration with defaults for anything never saved"""
        row = self.db.get(FinancingConfigurationRow, FinancingConfigurationRow.SINGLETON_ID)

        rate = self.default_rate
        categories = list(self.default_categories)
        if row is not None:
            if row.interest_rate_percent is not None:
                rate = row.interest_rate_percent
            if row.allowed_categories is not None:
                categories = list(row.allowed_categories)

        return FinancingConfiguration(interest_rate_percent=rate, allowed_categories=categories)

    def set(self, fields: Dict[str, Any]) -> FinancingConfiguration:
        """Merge fields into the stored configuration, leaving others untouched"""
        row = self.db.get(FinancingConfigurationRow, FinancingConfigurationRow.SINGLETON_ID)
        if row is None:
            row = FinancingConfigurationRow(id=FinancingConfigurationRow.SINGLETON_ID)
            self.db.add(row)

        for name, value in fields.items():
            setattr(row, name, value)

        self.db.flush()
        return self.get()
