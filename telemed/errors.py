"""
Domain error taxonomy.

Every rejected operation raises one of these. They are expected,
caller-recoverable outcomes: the core never retries and never leaves a
partial write behind when raising them.
"""

from __future__ import annotations

from typing import Any, Optional


class TelemedError(Exception):
    """Base exception for all consultation and registry rejections."""

    code = "TELEMED_ERROR"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class InvalidSpecialization(TelemedError):
    code = "INVALID_SPECIALIZATION"

    def __init__(self, text: str) -> None:
        super().__init__(
            f"Unknown specialization: {text.strip()!r}",
            details={"specialization": text},
        )


class AlreadyRegistered(TelemedError):
    code = "ALREADY_REGISTERED"

    def __init__(self, identity: str) -> None:
        super().__init__(
            f"Doctor {identity} is already registered",
            details={"identity": identity},
        )


class NotFound(TelemedError):
    """A doctor or consultation lookup came back empty."""

    code = "NOT_FOUND"


class DoctorNotFound(NotFound):
    def __init__(self, identity: str) -> None:
        super().__init__(f"Doctor {identity} is not registered", details={"doctor": identity})


class ConsultationNotFound(NotFound):
    def __init__(self, consultation_id: int) -> None:
        super().__init__(
            f"Consultation {consultation_id} does not exist",
            details={"consultation_id": consultation_id},
        )


class Unauthorized(TelemedError):
    """The caller does not hold the role the action requires."""

    code = "UNAUTHORIZED"

    def __init__(self, caller: str, action: str, required_role: str) -> None:
        super().__init__(
            f"{caller} may not {action}: requires {required_role}",
            details={"caller": caller, "action": action, "required_role": required_role},
        )


class DoctorUnverified(TelemedError):
    code = "DOCTOR_UNVERIFIED"

    def __init__(self, identity: str) -> None:
        super().__init__(f"Doctor {identity} is not verified", details={"doctor": identity})


class InvalidSchedule(TelemedError):
    code = "INVALID_SCHEDULE"

    def __init__(self, start: Any, duration: Any) -> None:
        super().__init__(
            "Start time and duration must be positive integers",
            details={"start": start, "duration": duration},
        )


class TimeConflict(TelemedError):
    code = "TIME_CONFLICT"

    def __init__(self, doctor: str, start: int, end: int, conflicting_id: int) -> None:
        super().__init__(
            f"Doctor {doctor} is already booked during [{start}, {end})",
            details={
                "doctor": doctor,
                "start": start,
                "end": end,
                "conflicting_consultation_id": conflicting_id,
            },
        )


class InvalidTransition(TelemedError):
    """The consultation is not in the state the action requires."""

    code = "INVALID_TRANSITION"

    def __init__(self, consultation_id: int, action: str, current: str, required: str) -> None:
        super().__init__(
            f"Cannot {action} consultation {consultation_id} while {current}",
            details={
                "consultation_id": consultation_id,
                "action": action,
                "current_state": current,
                "required_state": required,
            },
        )


class AlreadyRated(TelemedError):
    code = "ALREADY_RATED"

    def __init__(self, consultation_id: int) -> None:
        super().__init__(
            f"Consultation {consultation_id} has already been rated",
            details={"consultation_id": consultation_id},
        )


class InvalidRating(TelemedError):
    code = "INVALID_RATING"

    def __init__(self, score: Any) -> None:
        super().__init__("Rating must be an integer from 1 to 5", details={"score": score})
