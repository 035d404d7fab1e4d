"""
Consultation State Machine.

Owns the consultation lifecycle:

    scheduled -> in_progress -> completed

Each transition is allowed from exactly one predecessor state and only
for the consultation's own doctor. Rating is an attribute of a completed
consultation, settable once by its patient.

Every operation runs all of its checks before its single store write,
so a rejected call leaves the store untouched. Callers are expected to
serialize operations; nothing here locks.
"""

from __future__ import annotations

from typing import Any

from telemed.errors import (
    AlreadyRated,
    ConsultationNotFound,
    DoctorNotFound,
    DoctorUnverified,
    InvalidRating,
    InvalidTransition,
    TelemedError,
    Unauthorized,
)
from telemed.logging_config import get_logger
from telemed.schemas.consultation import (
    ACTIVE_STATES,
    MAX_RATING,
    MIN_RATING,
    Consultation,
    ConsultationState,
)
from telemed.services.doctor_registry import Clock, utcnow
from telemed.services.queries import QueryService
from telemed.services.scheduling import check_conflict
from telemed.store import RecordStore

logger = get_logger(__name__)

# action -> (required current state, resulting state, timestamp field)
TRANSITIONS: dict[str, tuple[ConsultationState, ConsultationState, str]] = {
    "start": (ConsultationState.SCHEDULED, ConsultationState.IN_PROGRESS, "started_at"),
    "complete": (ConsultationState.IN_PROGRESS, ConsultationState.COMPLETED, "completed_at"),
}


class ConsultationStateMachine:
    """Scheduling and lifecycle transitions for consultations."""

    def __init__(self, store: RecordStore, clock: Clock = utcnow) -> None:
        self._store = store
        self._queries = QueryService(store)
        self._clock = clock

    # -- Booking --

    def schedule(self, patient: str, doctor: str, start: int, duration: int) -> int:
        """
        Book ``patient`` with ``doctor`` for ``duration`` minutes at ``start``.

        Returns:
            The new consultation id.
        """
        try:
            record = self._queries.get_doctor(doctor)
            if record is None:
                raise DoctorNotFound(doctor)
            if not record.verified:
                raise DoctorUnverified(doctor)
            check_conflict(
                doctor,
                start,
                duration,
                self._queries.list_bookings_for_doctor(doctor, ACTIVE_STATES),
            )
        except TelemedError as e:
            logger.warning(
                "consultation_rejected",
                action="schedule",
                doctor=doctor,
                patient=patient,
                code=e.code,
            )
            raise

        consultation = Consultation(
            id=self._store.next_consultation_id(),
            doctor=doctor,
            patient=patient,
            start=start,
            duration=duration,
            state=ConsultationState.SCHEDULED,
            created_at=self._clock(),
        )
        self._store.add_consultation(consultation)

        logger.info(
            "consultation_scheduled",
            consultation_id=consultation.id,
            doctor=doctor,
            patient=patient,
            start=start,
            duration=duration,
        )
        return consultation.id

    # -- Lifecycle --

    def start(self, caller: str, consultation_id: int) -> Consultation:
        """Doctor opens a scheduled consultation."""
        return self._advance(caller, consultation_id, "start")

    def complete(self, caller: str, consultation_id: int, record_ref: bytes) -> Consultation:
        """
        Doctor closes an in-progress consultation.

        ``record_ref`` is an opaque pointer to the clinical record (a hash
        or an off-store location); its contents are not inspected.
        """
        return self._advance(caller, consultation_id, "complete", record_ref=bytes(record_ref))

    def rate(self, caller: str, consultation_id: int, score: int) -> Consultation:
        """Patient rates a completed consultation, once."""
        try:
            consultation = self._get(consultation_id)
            if caller != consultation.patient:
                raise Unauthorized(caller, "rate consultation", "patient of the consultation")
            if consultation.state != ConsultationState.COMPLETED:
                raise InvalidTransition(
                    consultation_id, "rate", consultation.state.value, ConsultationState.COMPLETED.value
                )
            if consultation.is_rated:
                raise AlreadyRated(consultation_id)
            if not _is_valid_score(score):
                raise InvalidRating(score)
        except TelemedError as e:
            self._log_rejection("rate", consultation_id, caller, e)
            raise

        rated = consultation.model_copy(update={"rating": score, "rated_at": self._clock()})
        self._store.save_consultation(rated)

        logger.info("consultation_rated", consultation_id=consultation_id, caller=caller, score=score)
        return rated

    # -- Internals --

    def _get(self, consultation_id: int) -> Consultation:
        consultation = self._queries.get_consultation(consultation_id)
        if consultation is None:
            raise ConsultationNotFound(consultation_id)
        return consultation

    def _advance(self, caller: str, consultation_id: int, action: str, **changes: Any) -> Consultation:
        required, target, stamp_field = TRANSITIONS[action]
        try:
            consultation = self._get(consultation_id)
            if caller != consultation.doctor:
                raise Unauthorized(caller, f"{action} consultation", "doctor of the consultation")
            if consultation.state != required:
                raise InvalidTransition(consultation_id, action, consultation.state.value, required.value)
        except TelemedError as e:
            self._log_rejection(action, consultation_id, caller, e)
            raise

        advanced = consultation.model_copy(update={
            "state": target,
            stamp_field: self._clock(),
            **changes,
        })
        self._store.save_consultation(advanced)

        logger.info(
            "consultation_transitioned",
            consultation_id=consultation_id,
            caller=caller,
            from_state=required.value,
            to_state=target.value,
        )
        return advanced

    def _log_rejection(self, action: str, consultation_id: int, caller: str, error: TelemedError) -> None:
        logger.warning(
            "consultation_rejected",
            action=action,
            consultation_id=consultation_id,
            caller=caller,
            code=error.code,
        )


def _is_valid_score(score: Any) -> bool:
    return isinstance(score, int) and not isinstance(score, bool) and MIN_RATING <= score <= MAX_RATING
