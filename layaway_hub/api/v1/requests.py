"""/v1/financing/requests - layaway submission, admin actions and listings"""

from typing import Callable, Dict, List, Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Request

from layaway_hub.api.v1.schemas import (
    FinancingRequestCreate,
    FinancingRequestResponse,
    InstallmentSchema,
    PaymentCreate,
    RequestListResponse,
    ScheduleResponse,
)
from layaway_hub.api.dependencies import get_controller, get_request_id, to_http_error
from layaway_hub.domain.exceptions import DomainException
from layaway_hub.domain.models import FinancingRequest
from layaway_hub.services.lifecycle import LifecycleController

router = APIRouter(prefix="/financing/requests")


def _respond(
    controller: LifecycleController,
    request: FinancingRequest,
    customer_stars: Optional[int] = None,
) -> FinancingRequestResponse:
    if customer_stars is None:
        customer_stars = controller.trust_stars(request.email)
    return FinancingRequestResponse.build(request, controller.payment_summary(request), customer_stars)


def _list(controller: LifecycleController, requests: List[FinancingRequest]) -> RequestListResponse:
    # One ledger read per customer, not per row
    stars: Dict[str, int] = {}
    for r in requests:
        if r.email not in stars:
            stars[r.email] = controller.trust_stars(r.email)

    return RequestListResponse(
        pending_count=controller.pending_count(),
        requests=[_respond(controller, r, stars[r.email]) for r in requests],
    )


def _run_action(
    request: Request,
    controller: LifecycleController,
    action: Callable[[], FinancingRequest],
) -> FinancingRequestResponse:
    try:
        return _respond(controller, action())
    except DomainException as e:
        raise to_http_error(e, get_request_id(request))


@router.post("", response_model=FinancingRequestResponse, status_code=201)
def submit_request(
    body: FinancingRequestCreate,
    request: Request,
    controller: LifecycleController = Depends(get_controller),
):
    """
    Customer-facing layaway application.

    The markup in force right now is frozen onto the request.
    """
    return _run_action(
        request,
        controller,
        lambda: controller.submit_request(
            customer_name=body.customer_name,
            email=body.email,
            phone=body.phone,
            address=body.address,
            product_name=body.product_name,
            product_category=body.product_category,
            price=body.price,
            plan_months=body.plan_months,
            customer_id=body.customer_id,
            product_id=body.product_id,
        ),
    )


@router.get("/active", response_model=RequestListResponse)
def list_active(request: Request, controller: LifecycleController = Depends(get_controller)):
    """Visible requests not yet delivered or cancelled, newest first"""
    try:
        return _list(controller, controller.active_requests())
    except DomainException as e:
        raise to_http_error(e, get_request_id(request))


@router.get("/history", response_model=RequestListResponse)
def list_history(request: Request, controller: LifecycleController = Depends(get_controller)):
    """Visible delivered and cancelled requests, newest first"""
    try:
        return _list(controller, controller.history_requests())
    except DomainException as e:
        raise to_http_error(e, get_request_id(request))


@router.get("/{financing_request_id}", response_model=FinancingRequestResponse)
def get_financing_request(
    financing_request_id: str,
    request: Request,
    controller: LifecycleController = Depends(get_controller),
):
    return _run_action(request, controller, lambda: controller.get_request(financing_request_id))


@router.get("/{financing_request_id}/schedule", response_model=ScheduleResponse)
def get_schedule(
    financing_request_id: str,
    request: Request,
    controller: LifecycleController = Depends(get_controller),
):
    """Monthly installments for the request's plan length"""
    try:
        financing_request = controller.get_request(financing_request_id)
    except DomainException as e:
        raise to_http_error(e, get_request_id(request))

    installments = [
        InstallmentSchema(due_date=inst.due_date, amount=inst.amount)
        for inst in controller.payment_schedule(financing_request)
    ]

    return ScheduleResponse(
        request_id=financing_request.id,
        total_with_interest=financing_request.total_with_interest,
        plan_months=financing_request.plan_months,
        installments=installments,
    )


@router.post("/{financing_request_id}/approve", response_model=FinancingRequestResponse)
def approve(financing_request_id: str, request: Request, controller: LifecycleController = Depends(get_controller)):
    return _run_action(request, controller, lambda: controller.approve(financing_request_id))


@router.post("/{financing_request_id}/reject", response_model=FinancingRequestResponse)
def reject(financing_request_id: str, request: Request, controller: LifecycleController = Depends(get_controller)):
    return _run_action(request, controller, lambda: controller.reject(financing_request_id))


@router.post("/{financing_request_id}/payments", response_model=FinancingRequestResponse)
def record_payment(
    financing_request_id: str,
    body: PaymentCreate,
    request: Request,
    controller: LifecycleController = Depends(get_controller),
):
    """Operator records a payment received outside the system"""
    return _run_action(request, controller, lambda: controller.record_payment(financing_request_id, body.amount))


@router.post("/{financing_request_id}/deliver", response_model=FinancingRequestResponse)
def deliver(
    financing_request_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    controller: LifecycleController = Depends(get_controller),
):
    """Hand-over: credits the customer's trust record and sends the delivery notice"""
    try:
        delivered = controller.deliver(financing_request_id, notify=False)
        # Notice goes out after the response
        background_tasks.add_task(controller.notify_delivery, delivered)
        return _respond(controller, delivered)
    except DomainException as e:
        raise to_http_error(e, get_request_id(request))


@router.post("/{financing_request_id}/cancel", response_model=FinancingRequestResponse)
def cancel(financing_request_id: str, request: Request, controller: LifecycleController = Depends(get_controller)):
    return _run_action(request, controller, lambda: controller.cancel(financing_request_id))


@router.post("/{financing_request_id}/refund", response_model=FinancingRequestResponse)
def mark_refunded(
    financing_request_id: str,
    request: Request,
    controller: LifecycleController = Depends(get_controller),
):
    return _run_action(request, controller, lambda: controller.mark_refunded(financing_request_id))


@router.delete("/{financing_request_id}", response_model=FinancingRequestResponse)
def soft_delete(
    financing_request_id: str,
    request: Request,
    controller: LifecycleController = Depends(get_controller),
):
    """Hide from admin lists; the record is kept"""
    return _run_action(request, controller, lambda: controller.soft_delete(financing_request_id))
