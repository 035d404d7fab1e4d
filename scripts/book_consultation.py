"""
CLI tool to book a consultation in the Redis-backed record store.

Usage:
    python scripts/book_consultation.py <patient> <doctor> --start 100000 [--duration 30]

Example:
    python scripts/book_consultation.py ST2CY5V39NHDPWSXMW9QDT3HC3GD6Q6XX4CFRK9AG \
        ST1PQHQKV0RJXZFY1DGX8MNSNYVE3VGZJSRTPGZGM --start 100000 --duration 30
"""

import argparse
import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from dotenv import load_dotenv
load_dotenv(".env.local")

from telemed.errors import TelemedError
from telemed.logging_config import setup_logging, get_logger
from telemed.services.consultations import ConsultationStateMachine
from telemed.store import get_store

setup_logging()
logger = get_logger(__name__)


def book(patient: str, doctor: str, start: int, duration: int) -> int:
    """Schedule a single consultation and return its id."""
    machine = ConsultationStateMachine(get_store())
    return machine.schedule(patient=patient, doctor=doctor, start=start, duration=duration)


def main() -> None:
    parser = argparse.ArgumentParser(description="Book a consultation with a verified doctor")
    parser.add_argument("patient", help="Patient identity")
    parser.add_argument("doctor", help="Doctor identity")
    parser.add_argument("--start", type=int, required=True, help="Start timestamp")
    parser.add_argument("--duration", type=int, default=30, help="Length in minutes")

    args = parser.parse_args()

    try:
        consultation_id = book(args.patient, args.doctor, args.start, args.duration)
    except TelemedError as e:
        print(f"Booking rejected: {e.code}: {e.message}")
        sys.exit(1)

    print(f"Consultation scheduled: {consultation_id}")


if __name__ == "__main__":
    main()
