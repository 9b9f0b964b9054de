"""Custom exceptions for the freight coordinator.

Every error carries a machine-readable ``code`` and a human ``message`` so the
request layer can answer ``{"error": message, "code": code}`` without knowing
which service raised it.
"""

from rest_framework import status


class CoordinatorError(Exception):
    """Base class for coordinator failures surfaced to callers."""
    code = "coordinator_error"
    http_status = status.HTTP_400_BAD_REQUEST
    default_message = "Request could not be completed"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def as_dict(self):
        return {"error": self.message, "code": self.code}


class InvalidStateError(CoordinatorError):
    """Raised when an operation is not valid for the current job, bid or escrow status."""
    code = "invalid_state"
    http_status = status.HTTP_409_CONFLICT
    default_message = "Operation not allowed in the current state"


class InvalidTransitionError(InvalidStateError):
    """Raised when a requested status is not the immediate successor."""
    code = "invalid_transition"
    default_message = "Status transition not allowed"


class UnauthorizedError(CoordinatorError):
    """Raised when the caller does not own the resource."""
    code = "unauthorized"
    http_status = status.HTTP_403_FORBIDDEN
    default_message = "You are not allowed to act on this job"


class ForbiddenError(CoordinatorError):
    """Raised when the caller is blocked (e.g. deactivated driver)."""
    code = "forbidden"
    http_status = status.HTTP_403_FORBIDDEN
    default_message = "Your account is not allowed to perform this action"


class DuplicateBidError(CoordinatorError):
    """Raised when a driver already holds an active bid on the job."""
    code = "duplicate_bid"
    http_status = status.HTTP_409_CONFLICT
    default_message = "You already have an active bid on this job"


class OutOfOrderError(CoordinatorError):
    """Raised when the customer confirms delivery before the driver."""
    code = "out_of_order"
    http_status = status.HTTP_409_CONFLICT
    default_message = "The driver must confirm delivery first"


class NotFoundError(CoordinatorError):
    """Raised when a job, bid or escrow record cannot be found."""
    code = "not_found"
    http_status = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class GatewayFailureError(CoordinatorError):
    """Raised when the payment provider cannot be reached or refuses the charge."""
    code = "gateway_failure"
    http_status = status.HTTP_502_BAD_GATEWAY
    default_message = "Payment provider unavailable"
