# booking_api/core/exceptions.py
"""
Domain errors raised by the scheduling core.

Services raise these and never HTTPException; the API layer maps them to
status codes through a single exception handler (see main.py).
"""


class SchedulingError(Exception):
    """Base class for every scheduling failure surfaced to callers"""

    kind = "error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {"detail": self.message, "kind": self.kind}


class NotFoundError(SchedulingError):
    """Business, service, resource or appointment missing or inactive"""

    kind = "not_found"
    status_code = 404


class InvalidInputError(SchedulingError):
    """Malformed identifiers, dates, times or hours configuration"""

    kind = "invalid_input"
    status_code = 400


class PolicyViolationError(SchedulingError):
    """A booking rule rejected the request"""

    kind = "policy_violation"
    status_code = 422


class ConflictError(SchedulingError):
    """Requested interval overlaps a booked appointment or a block"""

    kind = "conflict"
    status_code = 409


class ForbiddenError(SchedulingError):
    """Phone mismatch or actor scoped to another resource"""

    kind = "forbidden"
    status_code = 403


# Messages shared across services
ERR_BUSINESS_NOT_FOUND = "Business not found"
ERR_SERVICE_NOT_FOUND = "Service not found"
ERR_RESOURCE_NOT_FOUND = "Resource not found"
ERR_APPOINTMENT_NOT_FOUND = "Appointment not found"
ERR_BLOCK_NOT_FOUND = "Block not found"
ERR_INVALID_DATE_FORMAT = "Invalid date format. Use YYYY-MM-DD."
ERR_INVALID_STARTTIME = "Invalid startTime format."
ERR_INVALID_HOURS = "Invalid business hours configuration."
ERR_INVALID_ID = "Invalid {field}."
ERR_OUTSIDE_HOURS = "Appointment outside business hours."
ERR_START_TIME_PAST = "Start time must be in the future."
ERR_DATE_IN_PAST = "Date must be today or in the future."
ERR_SAME_DAY = "Same-day bookings are not allowed."
ERR_CANCEL_WINDOW = "Cancellation window has passed."
ERR_RESCHEDULE_LIMIT = "Reschedule limit reached."
ERR_RESOURCE_REQUIRED = "Resource is required for this service."
ERR_RESOURCE_NOT_ALLOWED = "Resource is not allowed for this service."
ERR_APPOINTMENT_CONFLICT = "Appointment time is not available."
ERR_BOOKING_BUSY = "Another booking for this time is in progress. Try again."
ERR_PHONE_MISMATCH = "Phone mismatch."
ERR_STAFF_SCOPE = "Staff can only update their own appointments."
ERR_NOT_BOOKED = "Appointment is no longer booked."
ERR_INVALID_STATUS = "Invalid status."
ERR_NO_UPDATES = "No updates provided."
ERR_BLOCK_APPOINTMENT_CONFLICT = "Block overlaps with existing appointments."
ERR_BLOCK_RANGE = "Block endTime must be after startTime."
