"""GET/PATCH /v1/financing/config - global markup and eligible categories"""

from fastapi import APIRouter, Depends, Request

from layaway_hub.api.v1.schemas import ConfigurationResponse, ConfigurationUpdate
from layaway_hub.api.dependencies import get_configuration_service, get_request_id, to_http_error
from layaway_hub.domain.exceptions import DomainException
from layaway_hub.services.configuration import ConfigurationService

router = APIRouter()


@router.get("/financing/config", response_model=ConfigurationResponse)
def get_configuration(
    request: Request,
    service: ConfigurationService = Depends(get_configuration_service),
):
    try:
        config = service.get()
    except DomainException as e:
        raise to_http_error(e, get_request_id(request))

    return ConfigurationResponse(
        interest_rate_percent=config.interest_rate_percent,
        allowed_categories=config.allowed_categories,
    )


@router.patch("/financing/config", response_model=ConfigurationResponse)
def update_configuration(
    body: ConfigurationUpdate,
    request: Request,
    service: ConfigurationService = Depends(get_configuration_service),
):
    """
    Merge-update the configuration.

    Only fields present in the body change. A new rate applies to requests
    submitted afterwards; existing requests keep the rate they were priced at.
    """
    try:
        config = service.update(
            interest_rate_percent=body.interest_rate_percent,
            allowed_categories=body.allowed_categories,
        )
    except DomainException as e:
        raise to_http_error(e, get_request_id(request))

    return ConfigurationResponse(
        interest_rate_percent=config.interest_rate_percent,
        allowed_categories=config.allowed_categories,
    )
