"""
Integration Tests for the REST API

Drives the FastAPI app end to end against a fresh in-memory store.
"""
from concurrent.futures import ThreadPoolExecutor

import pytest
import structlog
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from telemed.api.deps import build_services, get_caller, get_services
from telemed.api.middleware import RequestIdMiddleware
from telemed.api_server import app
from telemed.store import MemoryBackend, RecordStore

from tests.constants import DOCTOR, OTHER_PATIENT, PATIENT, UNVERIFIED_DOCTOR, VERIFIER


def as_caller(identity):
    return {"X-Caller-Identity": identity}


@pytest.fixture
def client():
    services = build_services(RecordStore(MemoryBackend(), prefix="api"), [VERIFIER])
    app.dependency_overrides[get_services] = lambda: services
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def verified(client):
    client.post("/doctors", json={"specialization": "Cardiology   "}, headers=as_caller(DOCTOR))
    client.post(f"/doctors/{DOCTOR}/verify", headers=as_caller(VERIFIER))
    return DOCTOR


@pytest.fixture
def consultation_id(client, verified):
    response = client.post(
        "/consultations",
        json={"doctor": verified, "start": 100000, "duration": 30},
        headers=as_caller(PATIENT),
    )
    return response.json()["id"]


class TestSystem:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_request_id_is_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "abc123"})

        assert response.headers["X-Request-ID"] == "abc123"
        assert "X-Response-Time-Ms" in response.headers

    def test_trace_id_and_caller_are_bound_for_the_request(self):
        context_app = FastAPI()
        context_app.add_middleware(RequestIdMiddleware)

        @context_app.get("/context")
        async def bound_context(caller: str = Depends(get_caller)):
            return structlog.contextvars.get_contextvars()

        with TestClient(context_app) as context_client:
            response = context_client.get(
                "/context", headers={"X-Request-ID": "req-42", "X-Caller-Identity": PATIENT}
            )

        assert response.json() == {"trace_id": "req-42", "caller": PATIENT}


class TestDoctorEndpoints:
    def test_register(self, client):
        response = client.post("/doctors", json={"specialization": "Cardiology   "}, headers=as_caller(DOCTOR))

        assert response.status_code == 201
        assert response.json()["specialization"] == "Cardiology"
        assert response.json()["verified"] is False

    def test_register_invalid_specialization(self, client):
        response = client.post("/doctors", json={"specialization": "InvalidSpec  "}, headers=as_caller(DOCTOR))

        assert response.status_code == 422
        assert response.json()["error"] == "INVALID_SPECIALIZATION"

    def test_register_twice(self, client, verified):
        response = client.post("/doctors", json={"specialization": "Cardiology"}, headers=as_caller(DOCTOR))

        assert response.status_code == 409
        assert response.json()["error"] == "ALREADY_REGISTERED"

    def test_missing_caller_header(self, client):
        response = client.post("/doctors", json={"specialization": "Cardiology"})

        assert response.status_code == 401

    def test_verify_requires_verifier(self, client):
        client.post("/doctors", json={"specialization": "Pediatrics"}, headers=as_caller(DOCTOR))

        response = client.post(f"/doctors/{DOCTOR}/verify", headers=as_caller(DOCTOR))

        assert response.status_code == 403
        assert response.json()["error"] == "UNAUTHORIZED"

    def test_verify_unknown_doctor(self, client):
        response = client.post(f"/doctors/{DOCTOR}/verify", headers=as_caller(VERIFIER))

        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"

    def test_verify_is_idempotent(self, client, verified):
        response = client.post(f"/doctors/{DOCTOR}/verify", headers=as_caller(VERIFIER))

        assert response.status_code == 200
        assert response.json()["verified"] is True

    def test_directory_listing(self, client, verified):
        client.post("/doctors", json={"specialization": "Dermatology"}, headers=as_caller(UNVERIFIED_DOCTOR))

        assert client.get("/doctors").json()["total"] == 2
        verified_only = client.get("/doctors", params={"verified_only": True}).json()
        assert [d["identity"] for d in verified_only["data"]] == [DOCTOR]
        derm = client.get("/doctors", params={"specialization": "Dermatology"}).json()
        assert [d["identity"] for d in derm["data"]] == [UNVERIFIED_DOCTOR]

    def test_get_doctor(self, client, verified):
        assert client.get(f"/doctors/{DOCTOR}").json()["verified"] is True
        assert client.get("/doctors/unknown").status_code == 404


class TestConsultationEndpoints:
    def test_schedule(self, client, verified):
        response = client.post(
            "/consultations",
            json={"doctor": DOCTOR, "start": 100000, "duration": 30},
            headers=as_caller(PATIENT),
        )

        assert response.status_code == 201
        assert response.json() == {"id": 1, "state": "scheduled"}

    def test_schedule_with_unverified_doctor(self, client):
        client.post("/doctors", json={"specialization": "Cardiology"}, headers=as_caller(UNVERIFIED_DOCTOR))

        response = client.post(
            "/consultations",
            json={"doctor": UNVERIFIED_DOCTOR, "start": 100000, "duration": 30},
            headers=as_caller(PATIENT),
        )

        assert response.status_code == 409
        assert response.json()["error"] == "DOCTOR_UNVERIFIED"

    def test_schedule_conflict_and_back_to_back(self, client, consultation_id):
        clash = client.post(
            "/consultations",
            json={"doctor": DOCTOR, "start": 100000, "duration": 30},
            headers=as_caller(OTHER_PATIENT),
        )
        follow_on = client.post(
            "/consultations",
            json={"doctor": DOCTOR, "start": 100030, "duration": 30},
            headers=as_caller(OTHER_PATIENT),
        )

        assert clash.status_code == 409
        assert clash.json()["error"] == "TIME_CONFLICT"
        assert follow_on.status_code == 201
        assert follow_on.json()["id"] == consultation_id + 1

    def test_schedule_invalid_duration(self, client, verified):
        response = client.post(
            "/consultations",
            json={"doctor": DOCTOR, "start": 100000, "duration": 0},
            headers=as_caller(PATIENT),
        )

        assert response.status_code == 422
        assert response.json()["error"] == "INVALID_SCHEDULE"

    def test_complete_by_patient_is_forbidden(self, client, consultation_id):
        client.post(f"/consultations/{consultation_id}/start", headers=as_caller(DOCTOR))

        response = client.post(
            f"/consultations/{consultation_id}/complete",
            json={"record_ref": "0x0123456789abcdef"},
            headers=as_caller(PATIENT),
        )

        assert response.status_code == 403

    def test_complete_rejects_non_hex_record_ref(self, client, consultation_id):
        client.post(f"/consultations/{consultation_id}/start", headers=as_caller(DOCTOR))

        response = client.post(
            f"/consultations/{consultation_id}/complete",
            json={"record_ref": "not-hex"},
            headers=as_caller(DOCTOR),
        )

        assert response.status_code == 422

    def test_unknown_consultation(self, client):
        assert client.get("/consultations/99").status_code == 404
        response = client.post("/consultations/99/start", headers=as_caller(DOCTOR))
        assert response.status_code == 404

    def test_full_lifecycle(self, client, consultation_id):
        path = f"/consultations/{consultation_id}"

        start = client.post(f"{path}/start", headers=as_caller(DOCTOR))
        assert start.status_code == 200
        assert start.json()["state"] == "in_progress"
        assert client.post(f"{path}/start", headers=as_caller(DOCTOR)).json()["error"] == "INVALID_TRANSITION"

        complete = client.post(
            f"{path}/complete", json={"record_ref": "0x0123456789abcdef"}, headers=as_caller(DOCTOR)
        )
        assert complete.status_code == 200
        assert complete.json()["record_ref"] == "0123456789abcdef"

        for bad_score in (0, 6):
            rejected = client.post(f"{path}/rate", json={"score": bad_score}, headers=as_caller(PATIENT))
            assert rejected.json()["error"] == "INVALID_RATING"

        rate = client.post(f"{path}/rate", json={"score": 5}, headers=as_caller(PATIENT))
        assert rate.status_code == 200
        assert rate.json()["rating"] == 5
        again = client.post(f"{path}/rate", json={"score": 5}, headers=as_caller(PATIENT))
        assert again.status_code == 409
        assert again.json()["error"] == "ALREADY_RATED"

        assert client.get(f"/doctors/{DOCTOR}/rating").json() == {"doctor": DOCTOR, "count": 1, "average": 5.0}
        history = client.get(f"/patients/{PATIENT}/consultations", params={"state": "completed"}).json()
        assert [c["id"] for c in history] == [consultation_id]
        assert client.get(f"/doctors/{DOCTOR}/consultations", params={"state": "scheduled"}).json() == []

    def test_concurrent_bookings_for_one_slot(self, client, verified):
        def book(n):
            return client.post(
                "/consultations",
                json={"doctor": DOCTOR, "start": 100000, "duration": 30},
                headers=as_caller(f"{PATIENT}-{n}"),
            )

        with ThreadPoolExecutor(max_workers=8) as pool:
            responses = list(pool.map(book, range(8)))

        statuses = sorted(r.status_code for r in responses)
        assert statuses == [201] + [409] * 7
        assert [r.json()["error"] for r in responses if r.status_code == 409] == ["TIME_CONFLICT"] * 7
        assert len(client.get(f"/doctors/{DOCTOR}/consultations").json()) == 1


class TestLooselyTypedPayloads:
    """JSON values the core does not accept surface as its typed errors, not as coerced ints."""

    @pytest.mark.parametrize(
        "start, duration",
        [(True, 30), (100000, True), ("100000", 30), (100000, "30"), (100000.5, 30)],
    )
    def test_schedule_rejects_non_integer_times(self, client, verified, start, duration):
        response = client.post(
            "/consultations",
            json={"doctor": DOCTOR, "start": start, "duration": duration},
            headers=as_caller(PATIENT),
        )

        assert response.status_code == 422
        assert response.json()["error"] == "INVALID_SCHEDULE"
        assert client.get(f"/patients/{PATIENT}/consultations").json() == []

    def test_rate_rejects_non_integer_scores(self, client, consultation_id):
        path = f"/consultations/{consultation_id}"
        client.post(f"{path}/start", headers=as_caller(DOCTOR))
        client.post(f"{path}/complete", json={"record_ref": "0xabcd"}, headers=as_caller(DOCTOR))

        for score in (True, 4.5, "5", None):
            response = client.post(f"{path}/rate", json={"score": score}, headers=as_caller(PATIENT))
            assert response.status_code == 422
            assert response.json()["error"] == "INVALID_RATING"

        assert client.get(path).json()["rating"] is None
