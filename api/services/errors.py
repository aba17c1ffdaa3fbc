"""
Domain errors raised by the scheduling and subscription services.

Routers never catch these; `main.py` maps each kind to an HTTP status.
"""


class SchedulingError(Exception):
    """Base class for every error this service raises on purpose."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SchedulingError):
    """A recurrence rule or assignment is malformed for what it declares."""

    status_code = 422


class NotFoundError(SchedulingError):
    status_code = 404

    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class IllegalTransitionError(SchedulingError):
    status_code = 409

    def __init__(self, action: str, status: str):
        super().__init__(f"Cannot {action} a subscription that is {status}")
        self.action = action
        self.status = status


class ConcurrencyConflictError(SchedulingError):
    """The subscription changed underneath us, even after one retry."""

    status_code = 409


class InUseError(SchedulingError):
    """A zone or location cannot be deleted while subscriptions point at it."""

    status_code = 409


class UnavailableError(Exception):
    """
    No fulfillment date exists within the horizon.

    A valid outcome, not a failure. Nothing raises it: the lifecycle manager
    records it as a null `next_order_date` plus a review flag, and the
    availability service returns an empty list. It is not a
    SchedulingError, so it has no HTTP mapping.
    """
