"""
Data models for consultations and their lifecycle.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

MIN_RATING = 1
MAX_RATING = 5


class ConsultationState(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    @property
    def is_active(self) -> bool:
        """Active consultations hold their time slot on the doctor's calendar."""
        return self in ACTIVE_STATES


ACTIVE_STATES = frozenset({ConsultationState.SCHEDULED, ConsultationState.IN_PROGRESS})


class Consultation(BaseModel):
    """
    A booked interaction between one doctor and one patient.

    Instances are immutable; lifecycle transitions produce a new value
    via ``model_copy(update=...)``.
    """

    model_config = ConfigDict(frozen=True, ser_json_bytes="hex", val_json_bytes="hex")

    id: int = Field(ge=1)
    doctor: str
    patient: str
    start: int = Field(gt=0)
    duration: int = Field(gt=0, description="Length in minutes")
    state: ConsultationState = ConsultationState.SCHEDULED
    record_ref: Optional[bytes] = None
    rating: Optional[int] = Field(default=None, ge=MIN_RATING, le=MAX_RATING)
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    rated_at: Optional[datetime] = None

    @property
    def end(self) -> int:
        """Exclusive end of the booked interval."""
        return self.start + self.duration

    @property
    def is_rated(self) -> bool:
        return self.rating is not None


class RatingSummary(BaseModel):
    """Aggregate of the ratings a doctor has received."""

    doctor: str
    count: int = 0
    average: Optional[float] = None
