"""
API Router — Consultation Endpoints.

Booking, lifecycle transitions and rating. The caller's identity decides
which role (patient or doctor) an action is performed under.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator

from telemed.api.deps import Services, get_caller, get_services, serialized
from telemed.schemas.consultation import ConsultationState

router = APIRouter(tags=["Consultations"])


class ScheduleConsultationRequest(BaseModel):
    """Times pass through unconverted; the scheduler rejects anything but positive ints."""

    doctor: str
    start: Any
    duration: Any


class CompleteConsultationRequest(BaseModel):
    record_ref: str = ""

    @field_validator("record_ref")
    @classmethod
    def _must_be_hex(cls, value: str) -> str:
        digits = value[2:] if value.lower().startswith("0x") else value
        try:
            bytes.fromhex(digits)
        except ValueError:
            raise ValueError("record_ref must be a hex string") from None
        return digits

    def record_bytes(self) -> bytes:
        return bytes.fromhex(self.record_ref)


class RateConsultationRequest(BaseModel):
    # Unconverted so `true` or 4.5 surface as INVALID_RATING
    score: Any


@router.post("/consultations", status_code=201)
def schedule_consultation(
    body: ScheduleConsultationRequest,
    caller: str = Depends(get_caller),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    """Book a consultation with the caller as patient."""
    with serialized():
        consultation_id = services.consultations.schedule(
            patient=caller,
            doctor=body.doctor,
            start=body.start,
            duration=body.duration,
        )
    return {"id": consultation_id, "state": ConsultationState.SCHEDULED.value}


@router.get("/consultations/{consultation_id}")
def get_consultation(consultation_id: int, services: Services = Depends(get_services)) -> dict[str, Any]:
    consultation = services.queries.get_consultation(consultation_id)
    if consultation is None:
        raise HTTPException(status_code=404, detail="Consultation not found")
    return consultation.model_dump(mode="json")


@router.post("/consultations/{consultation_id}/start")
def start_consultation(
    consultation_id: int,
    caller: str = Depends(get_caller),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    with serialized():
        consultation = services.consultations.start(caller, consultation_id)
    return consultation.model_dump(mode="json")


@router.post("/consultations/{consultation_id}/complete")
def complete_consultation(
    consultation_id: int,
    body: CompleteConsultationRequest,
    caller: str = Depends(get_caller),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    """Close the consultation and attach the clinical record reference."""
    with serialized():
        consultation = services.consultations.complete(caller, consultation_id, body.record_bytes())
    return consultation.model_dump(mode="json")


@router.post("/consultations/{consultation_id}/rate")
def rate_consultation(
    consultation_id: int,
    body: RateConsultationRequest,
    caller: str = Depends(get_caller),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    with serialized():
        consultation = services.consultations.rate(caller, consultation_id, body.score)
    return consultation.model_dump(mode="json")


@router.get("/patients/{identity}/consultations")
def get_patient_consultations(
    identity: str,
    state: ConsultationState | None = None,
    services: Services = Depends(get_services),
) -> list[dict[str, Any]]:
    states = [state] if state is not None else None
    bookings = services.queries.list_consultations_for_patient(identity, states)
    return [c.model_dump(mode="json") for c in bookings]
