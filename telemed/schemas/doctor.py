"""
Data models for doctors and the specialization vocabulary.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

from telemed.errors import InvalidSpecialization


class Specialization(str, Enum):
    """Closed set of practice areas a doctor can register under."""

    CARDIOLOGY = "Cardiology"
    DERMATOLOGY = "Dermatology"
    PEDIATRICS = "Pediatrics"
    GENERAL_PRACTICE = "GeneralPractice"
    NEUROLOGY = "Neurology"
    ORTHOPEDICS = "Orthopedics"
    PSYCHIATRY = "Psychiatry"
    ONCOLOGY = "Oncology"
    OPHTHALMOLOGY = "Ophthalmology"

    @classmethod
    def parse(cls, text: str) -> Specialization:
        """
        Resolve free text to a specialization.

        Surrounding whitespace is ignored; the remainder must match a
        member value exactly (case-sensitive).
        """
        try:
            return cls(text.strip())
        except (ValueError, AttributeError):
            raise InvalidSpecialization(str(text)) from None


class Doctor(BaseModel):
    """A registered doctor. ``identity`` is the registering caller."""

    model_config = ConfigDict(frozen=True)

    identity: str
    specialization: Specialization
    verified: bool = False
    registered_at: Optional[datetime] = None
    verified_at: Optional[datetime] = None
    verified_by: Optional[str] = None
