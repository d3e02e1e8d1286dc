"""Dependency injection for FastAPI endpoints"""

import logging
from fastapi import HTTPException, Request
from layaway_hub.domain.exceptions import (
    ActiveRequestExists,
    CategoryNotEligible,
    CooldownActive,
    DomainException,
    InvalidConfiguration,
    InvalidPayment,
    InvalidPlan,
    InvalidTransition,
    PreconditionFailed,
    RequestNotFound,
    StoreUnavailable,
)
from layaway_hub.services.configuration import ConfigurationService
from layaway_hub.services.lifecycle import LifecycleController

_STATUS_BY_ERROR = [
    (RequestNotFound, 404),
    (InvalidTransition, 409),
    (ActiveRequestExists, 409),
    (CooldownActive, 409),
    (PreconditionFailed, 412),
    (InvalidConfiguration, 422),
    (InvalidPayment, 422),
    (InvalidPlan, 422),
    (CategoryNotEligible, 422),
]


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_controller(request: Request) -> LifecycleController:
    """Provide the lifecycle controller built by create_app"""
    return request.app.state.controller


def get_configuration_service(request: Request) -> ConfigurationService:
    """Provide the configuration service built by create_app"""
    return request.app.state.configuration


def to_http_error(error: DomainException, request_id: str) -> HTTPException:
    """Translate a domain error into the response the operator sees"""
    if isinstance(error, StoreUnavailable):
        logging.error(f"Store unavailable: {error}", extra={"request_id": request_id})
        return HTTPException(status_code=503, detail="Action failed, try again")

    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            logging.warning(f"Action refused: {error}", extra={"request_id": request_id})
            return HTTPException(status_code=status_code, detail=str(error))

    logging.error(f"Unexpected domain error: {error}", extra={"request_id": request_id})
    return HTTPException(status_code=500, detail="Internal server error")
