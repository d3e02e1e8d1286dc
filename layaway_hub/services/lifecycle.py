"""Lifecycle controller - every admin action on a layaway request goes through here

Each mutating operation runs in a single database transaction. deliver() also
credits the trust ledger in that same transaction, then sends the customer
notice after the commit; a failed notice is logged and never undoes delivery.
"""

import time
import uuid
import logging
from datetime import datetime
from typing import Callable, List, Optional, TypeVar
from sqlalchemy.orm import Session, sessionmaker

from layaway_hub.config import settings
from layaway_hub.domain import lifecycle
from layaway_hub.domain.exceptions import (
    ActiveRequestExists,
    CategoryNotEligible,
    CooldownActive,
    DomainException,
    InvalidPayment,
    InvalidPlan,
    InvalidTransition,
    NotificationDispatchFailed,
    PreconditionFailed,
    RequestNotFound,
    StoreUnavailable,
)
from layaway_hub.domain.installments import generate_layaway_schedule
from layaway_hub.domain.models import (
    FinancingRequest,
    Installment,
    OPEN_STATUSES,
    PaymentSummary,
    RequestStatus,
    TrustRecord,
)
from layaway_hub.domain import pricing
from layaway_hub.infrastructure.clients.messaging import NotificationDispatcher
from layaway_hub.infrastructure.database.repositories import FinancingRequestRepository, TrustRepository
from layaway_hub.infrastructure.database.session import session_scope
from layaway_hub.infrastructure.observability.logging import log_transition
from layaway_hub.infrastructure.observability.metrics import (
    notification_failure_counter,
    record_delivery,
    record_transition,
)
from layaway_hub.services.configuration import configuration_repository, is_category_allowed
from layaway_hub.utils.date_utils import days_remaining, utcnow

SUBMIT = "submit"
SOFT_DELETE = "soft_delete"

T = TypeVar("T")


class LifecycleController:
    """State machine, balance checks and trust ledger side effects for financing requests"""

    def __init__(
        self,
        session_factory: sessionmaker,
        dispatcher: Optional[NotificationDispatcher] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.dispatcher = dispatcher or NotificationDispatcher()
        self.clock = clock

    def _perform(self, action: str, request_id: str, work: Callable[[Session], T]) -> T:
        """Run work in one transaction, recording the outcome in logs and metrics"""
        start_time = time.time()
        try:
            with session_scope(self.session_factory) as db:
                result = work(db)
        except StoreUnavailable as e:
            record_transition(action, "error")
            logging.error(f"Store error during {action}: {e}", extra={"financing_request_id": request_id})
            raise
        except DomainException as e:
            record_transition(action, "refused")
            log_transition(request_id, action, "refused", getattr(e, "status", None), _ms_since(start_time))
            raise

        record_transition(action, "ok")
        status = result.status.value if isinstance(result, FinancingRequest) else None
        log_transition(request_id, action, "ok", status, _ms_since(start_time))
        return result

    @staticmethod
    def _load(repo: FinancingRequestRepository, request_id: str) -> FinancingRequest:
        request = repo.get_by_id(request_id, for_update=True)
        if request is None:
            raise RequestNotFound(f"Financing request {request_id} not found")
        return request

    def submit_request(
        self,
        customer_name: str,
        email: str,
        phone: str,
        address: str,
        product_name: str,
        product_category: str,
        price: int,
        plan_months: int = 3,
        customer_id: Optional[str] = None,
        product_id: Optional[str] = None,
    ) -> FinancingRequest:
        """
        Create a pending request priced at today's markup.

        The interest rate is read from the configuration once and frozen on
        the request together with the marked-up total; later rate changes
        never touch it.

        Raises:
            InvalidPlan: non-positive price or unsupported plan length
            CategoryNotEligible: category not open for financing
            ActiveRequestExists: customer already has a pending/approved request
            CooldownActive: recent rejection or cancellation
        """
        if isinstance(price, bool) or not isinstance(price, int) or price <= 0:
            raise InvalidPlan(f"Price must be a positive whole amount, got {price!r}")
        if plan_months not in settings.allowed_plan_months:
            raise InvalidPlan(f"Plan must be one of {settings.allowed_plan_months} months, got {plan_months}")

        email_key = pricing.normalize_email(email)
        request_id = str(uuid.uuid4())

        def work(db: Session) -> FinancingRequest:
            config = configuration_repository(db).get()
            if not is_category_allowed(config, product_category):
                raise CategoryNotEligible(f"Category '{product_category}' is not open for financing")

            repo = FinancingRequestRepository(db)
            now = self.clock()
            self._check_customer_history(repo.list_by_email(email_key), now)

            rate = config.interest_rate_percent
            return repo.create(
                FinancingRequest(
                    id=request_id,
                    customer_id=customer_id,
                    customer_name=customer_name.strip(),
                    email=email_key,
                    phone=phone.strip(),
                    address=address.strip(),
                    product_id=product_id,
                    product_name=product_name,
                    product_category=product_category,
                    total_amount=price,
                    interest_rate_at_request=rate,
                    total_with_interest=pricing.total_with_interest(price, rate),
                    plan_months=plan_months,
                    created_at=now,
                )
            )

        return self._perform(SUBMIT, request_id, work)

    @staticmethod
    def _check_customer_history(history: List[FinancingRequest], now: datetime) -> None:
        if any(r.status in OPEN_STATUSES for r in history):
            raise ActiveRequestExists("Customer already has an open financing request")

        rejections = [r.rejected_at for r in history if r.status == RequestStatus.REJECTED and r.rejected_at]
        if rejections:
            days_left = days_remaining(max(rejections), settings.reject_cooldown_days, now)
            if days_left:
                raise CooldownActive("rejection", days_left)

        cancellations = [r.cancelled_at for r in history if r.status == RequestStatus.CANCELLED and r.cancelled_at]
        if cancellations:
            days_left = days_remaining(max(cancellations), settings.cancel_cooldown_days, now)
            if days_left:
                raise CooldownActive("cancellation", days_left)

    def approve(self, request_id: str) -> FinancingRequest:
        """pending -> approved; payments start accumulating from zero"""

        def work(db: Session) -> FinancingRequest:
            repo = FinancingRequestRepository(db)
            request = self._load(repo, request_id)
            status = lifecycle.next_status(lifecycle.APPROVE, request.status)
            return repo.update(
                request_id,
                {"status": status, "amount_paid": 0, "approved_at": request.approved_at or self.clock()},
            )

        return self._perform(lifecycle.APPROVE, request_id, work)

    def reject(self, request_id: str) -> FinancingRequest:
        """pending -> rejected (terminal)"""

        def work(db: Session) -> FinancingRequest:
            repo = FinancingRequestRepository(db)
            request = self._load(repo, request_id)
            status = lifecycle.next_status(lifecycle.REJECT, request.status)
            return repo.update(
                request_id,
                {"status": status, "rejected_at": request.rejected_at or self.clock()},
            )

        return self._perform(lifecycle.REJECT, request_id, work)

    def record_payment(self, request_id: str, amount: int) -> FinancingRequest:
        """Operator-entered payment on an approved request. Over-payment is accepted."""
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidPayment(f"Payment must be a positive whole amount, got {amount!r}")

        def work(db: Session) -> FinancingRequest:
            repo = FinancingRequestRepository(db)
            request = self._load(repo, request_id)
            lifecycle.next_status(lifecycle.RECORD_PAYMENT, request.status)
            if not repo.add_payment(request_id, amount, self.clock()):
                raise InvalidTransition(lifecycle.RECORD_PAYMENT, request.status.value)
            return repo.get_by_id(request_id)

        return self._perform(lifecycle.RECORD_PAYMENT, request_id, work)

    def deliver(self, request_id: str, notify: bool = True) -> FinancingRequest:
        """
        approved -> delivered, once the balance is settled.

        Steps, all in one transaction:
        1. Check status and that amount_paid covers total_with_interest
        2. Increment (or create) the customer's trust record
        3. Freeze min(success_count, 5) onto the request as trust_stars
        4. Mark delivered

        After commit the customer is notified; failure there is only logged.
        With notify=False the caller sends the notice via notify_delivery.

        Raises:
            InvalidTransition: request is not approved
            PreconditionFailed: balance still owed
        """

        def work(db: Session) -> FinancingRequest:
            repo = FinancingRequestRepository(db)
            request = self._load(repo, request_id)
            status = lifecycle.next_status(lifecycle.DELIVER, request.status)
            if not pricing.is_fully_paid(request):
                raise PreconditionFailed(
                    f"Request {request_id} still owes {pricing.balance(request)} "
                    f"of {request.total_with_interest}"
                )

            now = self.clock()
            record = TrustRepository(db).increment(pricing.normalize_email(request.email), now)
            stars = pricing.trust_stars(record.success_count, settings.trust_star_cap)
            return repo.update(
                request_id,
                {"status": status, "delivered_at": request.delivered_at or now, "trust_stars": stars},
            )

        delivered = self._perform(lifecycle.DELIVER, request_id, work)
        record_delivery(delivered.trust_stars)
        if notify:
            self.notify_delivery(delivered)
        return delivered

    def notify_delivery(self, request: FinancingRequest) -> None:
        """Send the delivery notice once; a failure is logged and counted, never raised"""
        try:
            self.dispatcher.send_delivery_notice(request)
        except NotificationDispatchFailed as e:
            notification_failure_counter.inc()
            logging.warning(
                f"Delivery notice failed: {e}",
                extra={"financing_request_id": request.id, "step": "notify"},
            )

    def cancel(self, request_id: str) -> FinancingRequest:
        """
        Accept a cancellation raised outside the admin panel.

        Works from any status; the refund owed is what was paid less the
        service charge. Cancelling an already cancelled request changes nothing.
        """

        def work(db: Session) -> FinancingRequest:
            repo = FinancingRequestRepository(db)
            request = self._load(repo, request_id)
            if request.status == RequestStatus.CANCELLED:
                return request

            status = lifecycle.next_status(lifecycle.CANCEL, request.status)
            return repo.update(
                request_id,
                {
                    "status": status,
                    "cancelled_at": request.cancelled_at or self.clock(),
                    "refund_amount": pricing.refund_amount(
                        request.amount_paid, settings.refund_service_charge_percent
                    ),
                },
            )

        return self._perform(lifecycle.CANCEL, request_id, work)

    def mark_refunded(self, request_id: str) -> FinancingRequest:
        """Flag a cancelled request as refunded. Repeat calls are harmless."""

        def work(db: Session) -> FinancingRequest:
            repo = FinancingRequestRepository(db)
            request = self._load(repo, request_id)
            lifecycle.next_status(lifecycle.REFUND, request.status)
            if request.refunded:
                return request
            return repo.update(
                request_id,
                {"refunded": True, "refunded_at": request.refunded_at or self.clock()},
            )

        return self._perform(lifecycle.REFUND, request_id, work)

    def soft_delete(self, request_id: str) -> FinancingRequest:
        """Hide a request from admin listings; the record stays for audit"""

        def work(db: Session) -> FinancingRequest:
            repo = FinancingRequestRepository(db)
            request = self._load(repo, request_id)
            if request.admin_deleted:
                return request
            return repo.update(request_id, {"admin_deleted": True})

        return self._perform(SOFT_DELETE, request_id, work)

    def get_request(self, request_id: str) -> FinancingRequest:
        """Point read, soft-deleted records included"""
        with session_scope(self.session_factory) as db:
            request = FinancingRequestRepository(db).get_by_id(request_id)
        if request is None:
            raise RequestNotFound(f"Financing request {request_id} not found")
        return request

    def _visible(self) -> List[FinancingRequest]:
        with session_scope(self.session_factory) as db:
            return FinancingRequestRepository(db).list_visible()

    def active_requests(self) -> List[FinancingRequest]:
        """Visible requests still in progress (pending, approved, rejected), newest first"""
        return [r for r in self._visible() if not r.is_closed]

    def history_requests(self) -> List[FinancingRequest]:
        """Visible delivered or cancelled requests, newest first"""
        return [r for r in self._visible() if r.is_closed]

    def pending_count(self) -> int:
        return sum(1 for r in self._visible() if r.status == RequestStatus.PENDING)

    def trust_record(self, email: str) -> Optional[TrustRecord]:
        with session_scope(self.session_factory) as db:
            return TrustRepository(db).get(pricing.normalize_email(email))

    def trust_stars(self, email: str) -> int:
        """Live star rating for a customer (0 before their first delivery)"""
        record = self.trust_record(email)
        return pricing.trust_stars(record.success_count if record else 0, settings.trust_star_cap)

    @staticmethod
    def balance(request: FinancingRequest) -> int:
        return pricing.balance(request)

    def payment_summary(self, request: FinancingRequest) -> PaymentSummary:
        return pricing.summarize_payments(
            request, self.clock(), settings.late_penalty_basis_points_per_month
        )

    @staticmethod
    def payment_schedule(request: FinancingRequest) -> List[Installment]:
        return generate_layaway_schedule(
            request.total_with_interest, request.plan_months, request.created_at.date()
        )


def _ms_since(start_time: float) -> float:
    return (time.time() - start_time) * 1000
