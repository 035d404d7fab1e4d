"""
Doctor Registry Service.

Registers doctors under a fixed specialization vocabulary and gates
verification behind a verifier role. A doctor must be verified before
any consultation can be booked with them.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Iterable

from telemed.errors import AlreadyRegistered, DoctorNotFound, TelemedError, Unauthorized
from telemed.logging_config import get_logger
from telemed.schemas.doctor import Doctor, Specialization
from telemed.services.queries import QueryService
from telemed.store import RecordStore

logger = get_logger(__name__)

VerifierCheck = Callable[[str], bool]
Clock = Callable[[], datetime]


def allow_list(identities: Iterable[str]) -> VerifierCheck:
    """Verifier check that accepts exactly the given identities."""
    allowed = frozenset(identities)
    return lambda caller: caller in allowed


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DoctorRegistry:
    """
    Registration and verification of doctors.

    Args:
        store: Record store shared with the consultation state machine.
        is_verifier: Host-supplied predicate deciding which callers may
            verify doctors.
        clock: Source of the informational timestamps on records.
    """

    def __init__(
        self,
        store: RecordStore,
        is_verifier: VerifierCheck,
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._queries = QueryService(store)
        self._is_verifier = is_verifier
        self._clock = clock

    def register(self, identity: str, specialization_text: str) -> Doctor:
        """Register ``identity`` as an unverified doctor."""
        try:
            specialization = Specialization.parse(specialization_text)
            if self._queries.get_doctor(identity) is not None:
                raise AlreadyRegistered(identity)
        except TelemedError as e:
            logger.warning("doctor_registration_rejected", identity=identity, code=e.code)
            raise

        doctor = Doctor(
            identity=identity,
            specialization=specialization,
            verified=False,
            registered_at=self._clock(),
        )
        self._store.save_doctor(doctor)

        logger.info("doctor_registered", identity=identity, specialization=specialization.value)
        return doctor

    def verify(self, caller: str, doctor_identity: str) -> Doctor:
        """
        Mark a doctor verified.

        Verifying an already-verified doctor succeeds without writing and
        returns the record unchanged.
        """
        try:
            if not self._is_verifier(caller):
                raise Unauthorized(caller, "verify doctors", "verifier")
            doctor = self._queries.get_doctor(doctor_identity)
            if doctor is None:
                raise DoctorNotFound(doctor_identity)
        except TelemedError as e:
            logger.warning("doctor_verification_rejected", doctor=doctor_identity, caller=caller, code=e.code)
            raise

        if doctor.verified:
            logger.info("doctor_already_verified", doctor=doctor_identity, caller=caller)
            return doctor

        doctor = doctor.model_copy(update={
            "verified": True,
            "verified_at": self._clock(),
            "verified_by": caller,
        })
        self._store.save_doctor(doctor)

        logger.info("doctor_verified", doctor=doctor_identity, caller=caller)
        return doctor

    def is_verified(self, doctor_identity: str) -> bool:
        doctor = self._queries.get_doctor(doctor_identity)
        return doctor is not None and doctor.verified

    def specialization(self, doctor_identity: str) -> Specialization | None:
        doctor = self._queries.get_doctor(doctor_identity)
        return doctor.specialization if doctor is not None else None
