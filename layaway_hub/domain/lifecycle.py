"""Financing request state machine - which action may run from which status

    pending   --approve-->  approved
    pending   --reject -->  rejected      (terminal)
    approved  --deliver-->  delivered     (terminal, balance must be settled)
    (any)     --cancel -->  cancelled     (terminal, raised outside the admin panel)
    cancelled --refund -->  cancelled     (sets the refunded flag only)
"""

from typing import Dict, FrozenSet, Tuple
from layaway_hub.domain.exceptions import InvalidTransition
from layaway_hub.domain.models import RequestStatus

APPROVE = "approve"
REJECT = "reject"
DELIVER = "deliver"
CANCEL = "cancel"
REFUND = "refund"
RECORD_PAYMENT = "record_payment"

# action -> (statuses it may start from, status it leaves behind)
TRANSITIONS: Dict[str, Tuple[FrozenSet[RequestStatus], RequestStatus]] = {
    APPROVE: (frozenset({RequestStatus.PENDING}), RequestStatus.APPROVED),
    REJECT: (frozenset({RequestStatus.PENDING}), RequestStatus.REJECTED),
    DELIVER: (frozenset({RequestStatus.APPROVED}), RequestStatus.DELIVERED),
    CANCEL: (
        frozenset({RequestStatus.PENDING, RequestStatus.APPROVED, RequestStatus.REJECTED, RequestStatus.DELIVERED}),
        RequestStatus.CANCELLED,
    ),
    REFUND: (frozenset({RequestStatus.CANCELLED}), RequestStatus.CANCELLED),
    RECORD_PAYMENT: (frozenset({RequestStatus.APPROVED}), RequestStatus.APPROVED),
}


def next_status(action: str, current: RequestStatus) -> RequestStatus:
    """
    Resolve the status an action leads to.

    Raises:
        InvalidTransition: action is not allowed from current
    """
    allowed_from, target = TRANSITIONS[action]
    if current not in allowed_from:
        raise InvalidTransition(action, current.value)
    return target
