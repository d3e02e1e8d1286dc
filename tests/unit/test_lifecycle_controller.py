"""Unit tests for the lifecycle controller against a real SQLite database"""

import pytest
from dataclasses import asdict
from unittest.mock import patch
from sqlalchemy.exc import OperationalError
from layaway_hub.domain.exceptions import (
    ActiveRequestExists,
    CategoryNotEligible,
    CooldownActive,
    InvalidPayment,
    InvalidPlan,
    InvalidTransition,
    PreconditionFailed,
    RequestNotFound,
    StoreUnavailable,
)
from layaway_hub.domain.models import RequestStatus
from layaway_hub.infrastructure.clients.messaging import NotificationDispatcher
from layaway_hub.services.lifecycle import LifecycleController


def approved_and_paid(controller, submit, **overrides):
    request = submit(**overrides)
    controller.approve(request.id)
    controller.record_payment(request.id, request.total_with_interest)
    return request


def test_submit_freezes_rate_and_total(submit, clock):
    request = submit(price=100000)

    assert request.status == RequestStatus.PENDING
    assert request.interest_rate_at_request == 5
    assert request.total_with_interest == 105000
    assert request.amount_paid == 0
    assert request.created_at == clock.now


def test_full_layaway_scenario(controller, submit, dispatcher):
    """100000 at 5% -> approve -> pay 105000 -> deliver"""
    request = submit(price=100000)
    assert request.total_with_interest == 105000

    approved = controller.approve(request.id)
    assert approved.status == RequestStatus.APPROVED
    assert approved.amount_paid == 0
    assert approved.approved_at is not None

    paid = controller.record_payment(request.id, 105000)
    assert paid.amount_paid == 105000
    assert controller.balance(paid) == 0

    delivered = controller.deliver(request.id)
    assert delivered.status == RequestStatus.DELIVERED
    assert delivered.delivered_at is not None
    assert delivered.trust_stars == 1
    assert controller.trust_record("ada@example.com").success_count == 1
    assert [r.id for r in dispatcher.sent] == [request.id]


def test_rate_change_does_not_touch_existing_requests(controller, submit, configuration):
    request = submit(price=100000)

    configuration.update(interest_rate_percent=20)
    stored = controller.get_request(request.id)

    assert stored.interest_rate_at_request == 5
    assert stored.total_with_interest == 105000


def test_new_rate_applies_to_later_requests(submit, configuration):
    configuration.update(interest_rate_percent=10)
    request = submit(price=100000)

    assert request.interest_rate_at_request == 10
    assert request.total_with_interest == 110000


@pytest.mark.parametrize("paid", [0, 50000, 104999])
def test_deliver_requires_full_payment(controller, submit, paid):
    request = submit()
    controller.approve(request.id)
    if paid:
        controller.record_payment(request.id, paid)

    with pytest.raises(PreconditionFailed):
        controller.deliver(request.id)

    stored = controller.get_request(request.id)
    assert stored.status == RequestStatus.APPROVED
    assert stored.delivered_at is None
    assert controller.trust_record("ada@example.com") is None


def test_deliver_accepts_overpayment(controller, submit):
    request = submit()
    controller.approve(request.id)
    controller.record_payment(request.id, 200000)

    delivered = controller.deliver(request.id)

    assert delivered.status == RequestStatus.DELIVERED
    assert controller.balance(delivered) == 0


def test_deliver_from_pending_is_invalid_transition(controller, submit):
    request = submit()

    with pytest.raises(InvalidTransition):
        controller.deliver(request.id)


@pytest.mark.parametrize("prepare", ["approve", "reject", "deliver"])
def test_approve_twice_is_refused_without_changes(controller, submit, prepare):
    request = approved_and_paid(controller, submit) if prepare == "deliver" else submit()
    if prepare == "deliver":
        controller.deliver(request.id)
    else:
        getattr(controller, prepare)(request.id)
    before = controller.get_request(request.id)

    with pytest.raises(InvalidTransition):
        controller.approve(request.id)

    assert asdict(controller.get_request(request.id)) == asdict(before)


def test_reject_then_approve_fails(controller, submit):
    request = submit()

    rejected = controller.reject(request.id)
    assert rejected.status == RequestStatus.REJECTED
    assert rejected.amount_paid == 0
    assert rejected.rejected_at is not None

    with pytest.raises(InvalidTransition):
        controller.approve(request.id)


def test_trust_accumulates_across_requests(controller, submit, clock):
    """Three deliveries for the same customer freeze 1, 2 and 3 stars"""
    stars = []
    # Different casing and padding still map to the same ledger key
    for email in ["ada@example.com", " ADA@example.com", "Ada@Example.com "]:
        request = approved_and_paid(controller, submit, email=email)
        stars.append(controller.deliver(request.id).trust_stars)
        clock.advance(days=1)

    assert stars == [1, 2, 3]
    assert controller.trust_record("ada@example.com").success_count == 3
    assert controller.trust_stars("ada@example.com") == 3


def test_frozen_stars_do_not_change_with_later_deliveries(controller, submit, clock):
    first = approved_and_paid(controller, submit)
    controller.deliver(first.id)
    clock.advance(days=1)
    second = approved_and_paid(controller, submit)
    controller.deliver(second.id)

    assert controller.get_request(first.id).trust_stars == 1
    assert controller.get_request(second.id).trust_stars == 2


def test_stars_cap_at_five(controller, submit, clock):
    for _ in range(6):
        request = approved_and_paid(controller, submit)
        last = controller.deliver(request.id)
        clock.advance(days=1)

    assert last.trust_stars == 5
    assert controller.trust_record("ada@example.com").success_count == 6


def test_notification_failure_keeps_delivery(controller, submit, dispatcher):
    request = approved_and_paid(controller, submit)
    dispatcher.fail = True

    delivered = controller.deliver(request.id)

    assert delivered.status == RequestStatus.DELIVERED
    assert controller.get_request(request.id).status == RequestStatus.DELIVERED
    assert controller.trust_record("ada@example.com").success_count == 1
    assert dispatcher.sent == []


def test_malformed_webhook_url_keeps_delivery(session_factory, clock):
    """A webhook URL httpx cannot parse is a failed notice, not a failed delivery"""
    controller = LifecycleController(
        session_factory,
        dispatcher=NotificationDispatcher(webhook_url="http://[::1/hook"),
        clock=clock,
    )
    request = controller.submit_request(
        customer_name="Ada Obi",
        email="ada@example.com",
        phone="08012345678",
        address="12 Marina Road, Lagos",
        product_name="Galaxy S24",
        product_category="phone",
        price=100000,
    )
    controller.approve(request.id)
    controller.record_payment(request.id, 105000)

    delivered = controller.deliver(request.id)

    assert delivered.status == RequestStatus.DELIVERED
    assert controller.get_request(request.id).status == RequestStatus.DELIVERED
    assert controller.trust_record("ada@example.com").success_count == 1


def test_deliver_can_leave_notice_to_caller(controller, submit, dispatcher):
    request = approved_and_paid(controller, submit)

    delivered = controller.deliver(request.id, notify=False)
    assert dispatcher.sent == []

    controller.notify_delivery(delivered)
    assert [r.id for r in dispatcher.sent] == [request.id]


def test_notify_delivery_swallows_dispatch_failure(controller, submit, dispatcher):
    request = approved_and_paid(controller, submit)
    delivered = controller.deliver(request.id, notify=False)
    dispatcher.fail = True

    controller.notify_delivery(delivered)

    assert dispatcher.sent == []


def test_cancel_records_refund_due(controller, submit):
    request = submit()
    controller.approve(request.id)
    controller.record_payment(request.id, 20000)

    cancelled = controller.cancel(request.id)

    assert cancelled.status == RequestStatus.CANCELLED
    assert cancelled.refund_amount == 17000
    assert cancelled.cancelled_at is not None
    assert cancelled.refunded is False


def test_cancel_twice_is_noop(controller, submit, clock):
    request = submit()
    first = controller.cancel(request.id)
    clock.advance(hours=1)

    second = controller.cancel(request.id)

    assert asdict(second) == asdict(first)


def test_mark_refunded_is_idempotent(controller, submit, clock):
    request = submit()
    controller.approve(request.id)
    controller.record_payment(request.id, 20000)
    controller.cancel(request.id)

    first = controller.mark_refunded(request.id)
    clock.advance(hours=2)
    second = controller.mark_refunded(request.id)

    assert first.refunded is True
    assert first.refunded_at is not None
    assert asdict(second) == asdict(first)


def test_mark_refunded_requires_cancelled(controller, submit):
    request = submit()
    controller.approve(request.id)

    with pytest.raises(InvalidTransition):
        controller.mark_refunded(request.id)


def test_soft_delete_hides_from_views_but_keeps_record(controller, submit, clock):
    pending = submit(email="one@example.com")
    clock.advance(minutes=1)
    cancelled = submit(email="two@example.com")
    controller.cancel(cancelled.id)

    controller.soft_delete(pending.id)
    controller.soft_delete(cancelled.id)

    assert controller.active_requests() == []
    assert controller.history_requests() == []
    assert controller.get_request(pending.id).status == RequestStatus.PENDING
    assert controller.get_request(pending.id).admin_deleted is True
    assert controller.get_request(cancelled.id).status == RequestStatus.CANCELLED


def test_active_and_history_views(controller, submit, clock):
    pending = submit(email="pending@example.com")
    clock.advance(minutes=1)
    rejected = submit(email="rejected@example.com")
    controller.reject(rejected.id)
    clock.advance(minutes=1)
    delivered = approved_and_paid(controller, submit, email="delivered@example.com")
    controller.deliver(delivered.id)
    clock.advance(minutes=1)
    cancelled = submit(email="cancelled@example.com")
    controller.cancel(cancelled.id)

    assert [r.id for r in controller.active_requests()] == [rejected.id, pending.id]
    assert [r.id for r in controller.history_requests()] == [cancelled.id, delivered.id]
    assert controller.pending_count() == 1


def test_record_payment_validation(controller, submit):
    request = submit()

    with pytest.raises(InvalidTransition):
        controller.record_payment(request.id, 1000)

    controller.approve(request.id)
    with pytest.raises(InvalidPayment):
        controller.record_payment(request.id, 0)
    with pytest.raises(InvalidPayment):
        controller.record_payment(request.id, -500)

    first = controller.record_payment(request.id, 1000)
    second = controller.record_payment(request.id, 2500)
    assert first.amount_paid == 1000
    assert second.amount_paid == 3500
    assert second.last_payment_at is not None


def test_unknown_request_raises_not_found(controller):
    with pytest.raises(RequestNotFound):
        controller.approve("missing")
    with pytest.raises(RequestNotFound):
        controller.get_request("missing")


def test_submit_rejects_ineligible_category(submit, configuration):
    with pytest.raises(CategoryNotEligible):
        submit(product_category="laptop")

    configuration.update(allowed_categories=["phone", "laptop"])
    assert submit(product_category="Laptop").status == RequestStatus.PENDING


def test_submit_rejects_when_no_category_is_open(submit, configuration):
    configuration.update(allowed_categories=[])

    with pytest.raises(CategoryNotEligible):
        submit()


@pytest.mark.parametrize("overrides", [{"price": 0}, {"price": -5}, {"plan_months": 5}])
def test_submit_rejects_bad_plan(submit, overrides):
    with pytest.raises(InvalidPlan):
        submit(**overrides)


def test_submit_blocks_second_open_request(controller, submit):
    request = submit()
    with pytest.raises(ActiveRequestExists):
        submit()

    controller.approve(request.id)
    with pytest.raises(ActiveRequestExists):
        submit(email="ADA@example.com")


def test_submit_rejection_cooldown(controller, submit, clock):
    request = submit()
    controller.reject(request.id)

    clock.advance(days=1)
    with pytest.raises(CooldownActive) as exc_info:
        submit()
    assert exc_info.value.reason == "rejection"
    assert exc_info.value.days_left == 4

    clock.advance(days=4)
    assert submit().status == RequestStatus.PENDING


def test_submit_cancellation_cooldown(controller, submit, clock):
    request = submit()
    controller.cancel(request.id)

    clock.advance(hours=12)
    with pytest.raises(CooldownActive) as exc_info:
        submit()
    assert exc_info.value.days_left == 2

    clock.advance(days=3)
    assert submit().status == RequestStatus.PENDING


def test_store_failure_surfaces_as_store_unavailable(controller, submit):
    request = submit()

    with patch(
        "layaway_hub.infrastructure.database.repositories.FinancingRequestRepository.update",
        side_effect=OperationalError("UPDATE", {}, Exception("disk I/O error")),
    ):
        with pytest.raises(StoreUnavailable):
            controller.approve(request.id)

    assert controller.get_request(request.id).status == RequestStatus.PENDING


def test_failed_request_write_rolls_back_trust_increment(controller, submit):
    """Trust ledger and request share one transaction during delivery"""
    request = approved_and_paid(controller, submit)

    with patch(
        "layaway_hub.infrastructure.database.repositories.FinancingRequestRepository.update",
        side_effect=OperationalError("UPDATE", {}, Exception("disk I/O error")),
    ):
        with pytest.raises(StoreUnavailable):
            controller.deliver(request.id)

    assert controller.trust_record("ada@example.com") is None
    assert controller.get_request(request.id).status == RequestStatus.APPROVED
