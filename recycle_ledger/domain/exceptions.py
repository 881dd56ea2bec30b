"""Domain-specific exceptions"""

from typing import List, Optional


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Input is malformed or violates a submission policy"""

    def __init__(self, details: List[str] | str):
        if isinstance(details, str):
            details = [details]
        self.details = details
        super().__init__("; ".join(details))


class NotFoundError(DomainException):
    """Referenced appointment, user, recycler, coupon or completion does not exist"""

    def __init__(self, resource: str, resource_id: str):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} {resource_id} not found")


class StateConflictError(DomainException):
    """Request is well-formed but the target's current state forbids it"""

    pass


class InvalidStateError(StateConflictError):
    """Transition is not allowed from the appointment's current state"""

    def __init__(self, current_state: str, action: str):
        self.current_state = current_state
        self.action = action
        super().__init__(f"Cannot {action} an appointment in state '{current_state}'")


class AlreadyCompletedError(StateConflictError):
    """Appointment has already been completed"""

    def __init__(self, appointment_id: str):
        self.appointment_id = appointment_id
        super().__init__(f"Appointment {appointment_id} is already completed")


class AppointmentCancelledError(StateConflictError):
    """Appointment was cancelled and can no longer be completed"""

    def __init__(self, appointment_id: str):
        self.appointment_id = appointment_id
        super().__init__(f"Appointment {appointment_id} is cancelled")


class AlreadyClaimedError(StateConflictError):
    """User already holds an active or used claim for the coupon"""

    def __init__(self, user_id: str, coupon_id: str):
        self.user_id = user_id
        self.coupon_id = coupon_id
        super().__init__(f"Coupon {coupon_id} already claimed by user {user_id}")


class CouponUnavailableError(StateConflictError):
    """Coupon is inactive or has no units left"""

    pass


class CouponExpiredError(StateConflictError):
    """Coupon expiry date has passed"""

    pass


class InsufficientCreditsError(DomainException):
    """User balance does not cover the coupon cost"""

    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(f"Insufficient credits: {required} required, {available} available")


class TransactionConflictError(DomainException):
    """Ledger transaction kept conflicting after all retry attempts"""

    def __init__(self, attempts: int, cause: Optional[Exception] = None):
        self.attempts = attempts
        self.cause = cause
        super().__init__(f"Ledger transaction aborted after {attempts} conflicting attempts")
