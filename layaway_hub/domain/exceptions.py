"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class RequestNotFound(DomainException):
    """No financing request exists with the given id"""

    pass


class InvalidTransition(DomainException):
    """Operation is not permitted from the request's current status"""

    def __init__(self, action: str, status: str):
        super().__init__(f"Cannot {action} a request in status '{status}'")
        self.action = action
        self.status = status


class PreconditionFailed(DomainException):
    """Request is in the right status but its balance is not yet settled"""

    pass


class InvalidConfiguration(DomainException):
    """Financing configuration write is out of range"""

    pass


class InvalidPayment(DomainException):
    """Recorded payment amount is not a positive integer"""

    pass


class InvalidPlan(DomainException):
    """Submitted request has an unsupported plan length or price"""

    pass


class CategoryNotEligible(DomainException):
    """Product category is not currently open for financing"""

    pass


class ActiveRequestExists(DomainException):
    """Customer already has a pending or approved request"""

    pass


class CooldownActive(DomainException):
    """Customer must wait after a recent rejection or cancellation"""

    def __init__(self, reason: str, days_left: int):
        super().__init__(f"New requests blocked for {days_left} more day(s) after {reason}")
        self.reason = reason
        self.days_left = days_left


class StoreUnavailable(DomainException):
    """Persistence layer failed; nothing from the operation was committed"""

    pass


class NotificationDispatchFailed(DomainException):
    """Delivery notice could not be sent (logged, never rolled back)"""

    pass
