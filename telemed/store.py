"""
Record store.

Doctors and consultations live as JSON documents in a key-value backend.
``RecordStore`` owns the key layout and (de)serialization; the backends
only move strings. Every mutating call issues exactly one ``set_many``,
which each backend applies atomically, so an operation either lands all
of its writes or none.
"""

from __future__ import annotations

import json
from functools import lru_cache
from typing import Iterable, Iterator, Optional, Protocol

import redis

from telemed.config import Settings, StoreBackend, get_settings
from telemed.logging_config import get_logger
from telemed.schemas.consultation import Consultation
from telemed.schemas.doctor import Doctor

logger = get_logger(__name__)


class KeyValueBackend(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def get_many(self, keys: list[str]) -> list[Optional[str]]: ...

    def set_many(self, mapping: dict[str, str]) -> None: ...

    def scan(self, prefix: str) -> Iterator[str]: ...


class MemoryBackend:
    """Process-local backend, used for development and tests."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def get_many(self, keys: list[str]) -> list[Optional[str]]:
        return [self._data.get(key) for key in keys]

    def set_many(self, mapping: dict[str, str]) -> None:
        self._data.update(mapping)

    def scan(self, prefix: str) -> Iterator[str]:
        return iter(sorted(k for k in self._data if k.startswith(prefix)))


class RedisBackend:
    """Backend on a Redis instance. ``MSET`` makes each batch atomic."""

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> RedisBackend:
        return cls(redis.Redis.from_url(url, decode_responses=True))

    def get(self, key: str) -> Optional[str]:
        return self._client.get(key)

    def get_many(self, keys: list[str]) -> list[Optional[str]]:
        if not keys:
            return []
        return self._client.mget(keys)

    def set_many(self, mapping: dict[str, str]) -> None:
        if mapping:
            self._client.mset(mapping)

    def scan(self, prefix: str) -> Iterator[str]:
        return iter(sorted(self._client.scan_iter(match=f"{prefix}*")))


class RecordStore:
    """Typed access to doctor and consultation records."""

    def __init__(self, backend: KeyValueBackend, prefix: str = "telemed") -> None:
        self.backend = backend
        self.prefix = prefix

    # ── Keys ─────────────────────────────────────────────────────

    def _doctor_key(self, identity: str) -> str:
        return f"{self.prefix}:doctor:{identity}"

    def _consultation_key(self, consultation_id: int) -> str:
        return f"{self.prefix}:consultation:{consultation_id}"

    @property
    def _next_id_key(self) -> str:
        return f"{self.prefix}:consultation:next_id"

    def _doctor_index_key(self, identity: str) -> str:
        return f"{self.prefix}:doctor_bookings:{identity}"

    def _patient_index_key(self, identity: str) -> str:
        return f"{self.prefix}:patient_bookings:{identity}"

    # ── Reads ────────────────────────────────────────────────────

    def get_doctor(self, identity: str) -> Doctor | None:
        raw = self.backend.get(self._doctor_key(identity))
        return Doctor.model_validate_json(raw) if raw is not None else None

    def iter_doctors(self) -> Iterator[Doctor]:
        for key in self.backend.scan(f"{self.prefix}:doctor:"):
            raw = self.backend.get(key)
            if raw is not None:
                yield Doctor.model_validate_json(raw)

    def get_consultation(self, consultation_id: int) -> Consultation | None:
        raw = self.backend.get(self._consultation_key(consultation_id))
        return Consultation.model_validate_json(raw) if raw is not None else None

    def get_consultations(self, ids: Iterable[int]) -> list[Consultation]:
        keys = [self._consultation_key(i) for i in ids]
        return [Consultation.model_validate_json(raw) for raw in self.backend.get_many(keys) if raw is not None]

    def doctor_booking_ids(self, identity: str) -> list[int]:
        return self._read_index(self._doctor_index_key(identity))

    def patient_booking_ids(self, identity: str) -> list[int]:
        return self._read_index(self._patient_index_key(identity))

    def next_consultation_id(self) -> int:
        raw = self.backend.get(self._next_id_key)
        return int(raw) if raw is not None else 1

    def _read_index(self, key: str) -> list[int]:
        raw = self.backend.get(key)
        return json.loads(raw) if raw is not None else []

    # ── Writes ───────────────────────────────────────────────────

    def save_doctor(self, doctor: Doctor) -> None:
        self.backend.set_many({self._doctor_key(doctor.identity): doctor.model_dump_json()})

    def save_consultation(self, consultation: Consultation) -> None:
        """Overwrite an existing consultation record."""
        self.backend.set_many({self._consultation_key(consultation.id): consultation.model_dump_json()})

    def add_consultation(self, consultation: Consultation) -> None:
        """
        Insert a new consultation, advance the id counter and append it to
        the doctor and patient indexes in one batch.
        """
        if consultation.id != self.next_consultation_id():
            raise ValueError(f"Consultation id {consultation.id} is not the next id to allocate")

        doctor_key = self._doctor_index_key(consultation.doctor)
        patient_key = self._patient_index_key(consultation.patient)
        self.backend.set_many({
            self._consultation_key(consultation.id): consultation.model_dump_json(),
            self._next_id_key: str(consultation.id + 1),
            doctor_key: json.dumps(self._read_index(doctor_key) + [consultation.id]),
            patient_key: json.dumps(self._read_index(patient_key) + [consultation.id]),
        })


def build_store(settings: Settings) -> RecordStore:
    """Create a record store for the configured backend."""
    if settings.store_backend == StoreBackend.REDIS:
        backend: KeyValueBackend = RedisBackend.from_url(settings.redis_url)
    else:
        backend = MemoryBackend()

    logger.info(
        "record_store_initialized",
        backend=settings.store_backend.value,
        prefix=settings.store_key_prefix,
    )
    return RecordStore(backend, prefix=settings.store_key_prefix)


@lru_cache(maxsize=1)
def get_store() -> RecordStore:
    """Process-wide record store built from settings."""
    return build_store(get_settings())
