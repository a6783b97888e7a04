"""
This file contains custom, application-specific exceptions.

Every error is an HTTPException so FastAPI renders it directly; services
raise them and the API layer lets them propagate.
"""
from typing import Optional
from fastapi import HTTPException, status


class SkillSwapError(HTTPException):
    """Base class for all recoverable, caller-facing scheduling errors."""
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_detail: str = "The request could not be processed."

    def __init__(self, detail: Optional[str] = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)


# --- Input validation ---

class InputValidationError(SkillSwapError):
    """Raised when required input is missing or malformed."""
    default_detail = "Invalid input."

class InvalidDayOfWeekError(InputValidationError):
    """Raised when a recurring template uses a day outside 0-6."""
    default_detail = "Invalid day of week values. Must be 0-6 (Sunday-Saturday)."

class InvalidRangeError(SkillSwapError):
    """Raised when start_date is after end_date."""
    default_detail = "Start date must be before end date."

class RangeTooLargeError(SkillSwapError):
    """Raised when a requested date window exceeds the configured cap."""
    default_detail = "Date range too large."

class AllSlotsInPastError(SkillSwapError):
    """Raised when every slot of a submitted batch is already in the past."""
    default_detail = "All provided slots are in the past."

class NoSlotsGeneratedError(SkillSwapError):
    """Raised when a bulk generation configuration expands to nothing."""
    default_detail = "No valid slots generated with the provided configuration."

class SelfConnectionError(SkillSwapError):
    """Raised when a user requests a connection with themselves."""
    default_detail = "Cannot connect to yourself."


# --- Not found ---

class NotFoundError(SkillSwapError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Resource not found."

class UserNotFoundError(NotFoundError):
    """Raised when a user ID is not found in the database."""
    default_detail = "User not found."

class AvailabilityNotFoundError(NotFoundError):
    """Raised when a user has never set their availability."""
    default_detail = "User availability not found."

class SlotNotFoundError(NotFoundError):
    """Raised when an availability slot or a scheduled session does not exist."""
    default_detail = "Slot not found."

class ConnectionNotFoundError(NotFoundError):
    default_detail = "Connection not found."


# --- Authorization ---

class NotAuthorizedError(SkillSwapError):
    """Raised when the acting user is not a permitted party for the action."""
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "You do not have permission to perform this action."


# --- Conflicts and state-machine guards ---

class ConflictError(SkillSwapError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "The request conflicts with the current state."

class SlotBookedError(ConflictError):
    default_detail = "Cannot remove a booked time slot."

class ConnectionExistsError(ConflictError):
    default_detail = "Connection already exists between these users."

class NotPendingError(ConflictError):
    default_detail = "Connection is not in pending status."

class NotAcceptedError(ConflictError):
    default_detail = "Connection must be accepted before scheduling sessions."

class NotScheduledError(ConflictError):
    default_detail = "Session is not in scheduled status."

class SlotNotMutuallyAvailableError(ConflictError):
    default_detail = "This time slot is not available for both users."

class BookingFailedError(ConflictError):
    """Raised after a partial booking was rolled back."""
    default_detail = "Failed to book time slots."
