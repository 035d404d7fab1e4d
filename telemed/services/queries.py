"""
Query Service.

Read-only lookups over the record store. Used by the registry and the
consultation state machine for current records, and by reporting
endpoints. Nothing here writes.
"""

from __future__ import annotations

from typing import Iterable, Optional

from telemed.schemas.consultation import Consultation, ConsultationState, RatingSummary
from telemed.schemas.doctor import Doctor, Specialization
from telemed.store import RecordStore


class QueryService:
    """Lookups by consultation id and by doctor/patient identity."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def get_consultation(self, consultation_id: int) -> Consultation | None:
        return self._store.get_consultation(consultation_id)

    def get_doctor(self, identity: str) -> Doctor | None:
        return self._store.get_doctor(identity)

    def list_bookings_for_doctor(
        self,
        identity: str,
        states: Optional[Iterable[ConsultationState]] = None,
    ) -> list[Consultation]:
        """Consultations booked with a doctor, oldest id first."""
        bookings = self._store.get_consultations(self._store.doctor_booking_ids(identity))
        return _filter_states(bookings, states)

    def list_consultations_for_patient(
        self,
        identity: str,
        states: Optional[Iterable[ConsultationState]] = None,
    ) -> list[Consultation]:
        bookings = self._store.get_consultations(self._store.patient_booking_ids(identity))
        return _filter_states(bookings, states)

    def list_doctors(
        self,
        specialization: Specialization | None = None,
        verified_only: bool = False,
    ) -> list[Doctor]:
        """Doctor directory, optionally narrowed by specialization and verification."""
        doctors = []
        for doctor in self._store.iter_doctors():
            if specialization is not None and doctor.specialization != specialization:
                continue
            if verified_only and not doctor.verified:
                continue
            doctors.append(doctor)
        return doctors

    def rating_summary(self, identity: str) -> RatingSummary:
        ratings = [
            c.rating
            for c in self.list_bookings_for_doctor(identity, [ConsultationState.COMPLETED])
            if c.rating is not None
        ]
        if not ratings:
            return RatingSummary(doctor=identity)
        return RatingSummary(
            doctor=identity,
            count=len(ratings),
            average=round(sum(ratings) / len(ratings), 2),
        )


def _filter_states(
    bookings: list[Consultation],
    states: Optional[Iterable[ConsultationState]],
) -> list[Consultation]:
    if states is None:
        return sorted(bookings, key=lambda c: c.id)
    wanted = frozenset(states)
    return sorted((c for c in bookings if c.state in wanted), key=lambda c: c.id)
