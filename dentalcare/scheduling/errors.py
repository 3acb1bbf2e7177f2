"""Errors raised by the scheduling core.

Routes map each error onto an HTTP status through ``status_code``.
"""


class SchedulingError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SchedulingError):
    """Missing or malformed scheduling input."""
    status_code = 400


class AuthorizationError(SchedulingError):
    """Caller is not allowed to perform the operation."""
    status_code = 403


class NotFoundError(SchedulingError):
    status_code = 404


class CapacityError(SchedulingError):
    """The slot had no remaining capacity at claim time.

    Retryable: callers should re-query availability instead of retrying the
    same slot.
    """
    status_code = 409
    retryable = True


class TransitionError(SchedulingError):
    status_code = 409

    def __init__(self, current_status: str, new_status: str):
        super().__init__(f'Cannot change appointment status from {current_status} to {new_status}.')
        self.current_status = current_status
        self.new_status = new_status
