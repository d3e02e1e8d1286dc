"""GET /v1/trust/{email} - a customer's lifetime delivery count and star rating"""

from fastapi import APIRouter, Depends, Request

from layaway_hub.api.v1.schemas import TrustResponse
from layaway_hub.api.dependencies import get_controller, get_request_id, to_http_error
from layaway_hub.domain.exceptions import DomainException
from layaway_hub.domain.pricing import normalize_email
from layaway_hub.services.lifecycle import LifecycleController

router = APIRouter()


@router.get("/trust/{email}", response_model=TrustResponse)
def get_trust(email: str, request: Request, controller: LifecycleController = Depends(get_controller)):
    """
    Returns:
        Zero stars and count for customers who have never completed a layaway
    """
    try:
        record = controller.trust_record(email)
        stars = controller.trust_stars(email)
    except DomainException as e:
        raise to_http_error(e, get_request_id(request))

    return TrustResponse(
        email=normalize_email(email),
        success_count=record.success_count if record else 0,
        stars=stars,
        last_success_at=record.last_success_at if record else None,
    )
