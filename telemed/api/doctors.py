"""
API Router — Doctor Directory Endpoints.

Registration, verification and read access to doctors.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from telemed.api.deps import Services, get_caller, get_services, serialized
from telemed.schemas.consultation import ConsultationState
from telemed.schemas.doctor import Specialization

router = APIRouter(prefix="/doctors", tags=["Doctors"])


class RegisterDoctorRequest(BaseModel):
    specialization: str


@router.post("", status_code=201)
def register_doctor(
    body: RegisterDoctorRequest,
    caller: str = Depends(get_caller),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    """Register the caller as an unverified doctor."""
    with serialized():
        doctor = services.registry.register(caller, body.specialization)
    return doctor.model_dump(mode="json")


@router.post("/{identity}/verify")
def verify_doctor(
    identity: str,
    caller: str = Depends(get_caller),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    """Mark a doctor verified. Caller must be a verifier."""
    with serialized():
        doctor = services.registry.verify(caller, identity)
    return doctor.model_dump(mode="json")


@router.get("")
def list_doctors(
    specialization: Specialization | None = None,
    verified_only: bool = False,
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    """List doctors with optional filtering."""
    doctors = services.queries.list_doctors(specialization=specialization, verified_only=verified_only)
    return {
        "data": [d.model_dump(mode="json") for d in doctors],
        "total": len(doctors),
    }


@router.get("/{identity}")
def get_doctor(identity: str, services: Services = Depends(get_services)) -> dict[str, Any]:
    doctor = services.queries.get_doctor(identity)
    if doctor is None:
        raise HTTPException(status_code=404, detail="Doctor not found")
    return doctor.model_dump(mode="json")


@router.get("/{identity}/consultations")
def get_doctor_consultations(
    identity: str,
    state: ConsultationState | None = None,
    services: Services = Depends(get_services),
) -> list[dict[str, Any]]:
    """Bookings for a doctor, optionally limited to one state."""
    states = [state] if state is not None else None
    bookings = services.queries.list_bookings_for_doctor(identity, states)
    return [c.model_dump(mode="json") for c in bookings]


@router.get("/{identity}/rating")
def get_doctor_rating(identity: str, services: Services = Depends(get_services)) -> dict[str, Any]:
    if services.queries.get_doctor(identity) is None:
        raise HTTPException(status_code=404, detail="Doctor not found")
    return services.queries.rating_summary(identity).model_dump(mode="json")
