"""
Pytest Configuration and Fixtures

Shared fixtures for registry, scheduling and consultation tests. Every
test gets a fresh in-memory record store.
"""
from datetime import datetime
from typing import Callable

import pytest

from telemed.services.consultations import ConsultationStateMachine
from telemed.services.doctor_registry import DoctorRegistry, allow_list
from telemed.services.queries import QueryService
from telemed.store import MemoryBackend, RecordStore

from tests.constants import DOCTOR, FIXED_NOW, PATIENT, VERIFIER


def fixed_clock() -> datetime:
    return FIXED_NOW


@pytest.fixture
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def snapshot(backend: MemoryBackend) -> Callable[[], dict[str, str]]:
    """Copy of the raw key-value contents, for asserting a write did not happen."""
    return lambda: dict(backend._data)


@pytest.fixture
def store(backend: MemoryBackend) -> RecordStore:
    return RecordStore(backend, prefix="test")


@pytest.fixture
def registry(store: RecordStore) -> DoctorRegistry:
    return DoctorRegistry(store, is_verifier=allow_list([VERIFIER]), clock=fixed_clock)


@pytest.fixture
def machine(store: RecordStore) -> ConsultationStateMachine:
    return ConsultationStateMachine(store, clock=fixed_clock)


@pytest.fixture
def queries(store: RecordStore) -> QueryService:
    return QueryService(store)


@pytest.fixture
def verified_doctor(registry: DoctorRegistry) -> str:
    """Cardiology doctor, registered and verified."""
    registry.register(DOCTOR, "Cardiology   ")
    registry.verify(VERIFIER, DOCTOR)
    return DOCTOR


@pytest.fixture
def consultation_id(machine: ConsultationStateMachine, verified_doctor: str) -> int:
    """A scheduled consultation between DOCTOR and PATIENT."""
    return machine.schedule(PATIENT, verified_doctor, start=100000, duration=30)
