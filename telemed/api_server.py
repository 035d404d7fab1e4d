"""
FastAPI API Server.

REST surface over the doctor registry and the consultation state
machine. Callers are authenticated upstream; their identity arrives in
the ``X-Caller-Identity`` header.

Start with:
    uvicorn telemed.api_server:app --reload --port 8000
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from dotenv import load_dotenv
load_dotenv(".env.local")

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from telemed import errors
from telemed.api.consultations import router as consultations_router
from telemed.api.doctors import router as doctors_router
from telemed.api.middleware import RequestIdMiddleware
from telemed.logging_config import get_logger, setup_logging

setup_logging()
logger = get_logger(__name__)

ERROR_STATUS: dict[type[errors.TelemedError], int] = {
    errors.InvalidSpecialization: 422,
    errors.InvalidSchedule: 422,
    errors.InvalidRating: 422,
    errors.NotFound: 404,
    errors.Unauthorized: 403,
    errors.AlreadyRegistered: 409,
    errors.DoctorUnverified: 409,
    errors.TimeConflict: 409,
    errors.InvalidTransition: 409,
    errors.AlreadyRated: 409,
}


def status_for(exc: errors.TelemedError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return 400


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle hooks."""
    logger.info("api_server_starting")
    yield
    logger.info("api_server_stopping")


app = FastAPI(
    title="Telemedicine Consultation API",
    description="Doctor verification, consultation scheduling and lifecycle",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(doctors_router)
app.include_router(consultations_router)


@app.exception_handler(errors.TelemedError)
async def telemed_error_handler(request: Request, exc: errors.TelemedError) -> JSONResponse:
    return JSONResponse(status_code=status_for(exc), content=exc.to_dict())


@app.get("/health", tags=["System"])
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok", "service": "telemed"}


@app.get("/", tags=["System"])
async def root() -> dict[str, str]:
    """API root."""
    return {
        "service": "Telemedicine Consultation API",
        "version": "0.1.0",
        "docs": "/docs",
    }
