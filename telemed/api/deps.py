"""
API dependencies.

Wires the core services to the configured record store and provides the
authenticated caller for each request. All mutating endpoints run under
``serialized()`` so operations reach the core one at a time.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterator, Optional

import structlog
from fastapi import Header, HTTPException

from telemed.config import get_settings
from telemed.services.consultations import ConsultationStateMachine
from telemed.services.doctor_registry import DoctorRegistry, allow_list
from telemed.services.queries import QueryService
from telemed.store import RecordStore, get_store

_write_lock = threading.Lock()


@dataclass(frozen=True)
class Services:
    registry: DoctorRegistry
    consultations: ConsultationStateMachine
    queries: QueryService


def build_services(store: RecordStore, verifier_identities: list[str]) -> Services:
    return Services(
        registry=DoctorRegistry(store, is_verifier=allow_list(verifier_identities)),
        consultations=ConsultationStateMachine(store),
        queries=QueryService(store),
    )


@lru_cache(maxsize=1)
def get_services() -> Services:
    return build_services(get_store(), get_settings().verifier_identities)


@contextmanager
def serialized() -> Iterator[None]:
    """Run the enclosed operation exclusively."""
    with _write_lock:
        yield


async def get_caller(x_caller_identity: Optional[str] = Header(default=None)) -> str:
    """Caller identity, authenticated upstream and forwarded in a header."""
    if not x_caller_identity or not x_caller_identity.strip():
        raise HTTPException(status_code=401, detail="Missing X-Caller-Identity header")
    caller = x_caller_identity.strip()
    structlog.contextvars.bind_contextvars(caller=caller)
    return caller
