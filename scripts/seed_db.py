"""
Database Seeding Script.

Registers and verifies a set of sample doctors in the configured record
store. Doctors that already exist are skipped. Use STORE_BACKEND=redis;
the memory backend does not outlive the script.

Usage:
    VERIFIER_IDENTITIES='["ST2JHG361ZXG51QTKY2NQCVBPPRRE2KZB1HR05NNC"]' python scripts/seed_db.py
"""

import os
import sys

# Add project root to path so we can import telemed
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from dotenv import load_dotenv
load_dotenv(".env.local")

from telemed.config import get_settings
from telemed.logging_config import setup_logging, get_logger
from telemed.services.doctor_registry import DoctorRegistry, allow_list
from telemed.store import get_store

setup_logging()
logger = get_logger(__name__)

SAMPLE_DOCTORS = [
    {"identity": "ST1PQHQKV0RJXZFY1DGX8MNSNYVE3VGZJSRTPGZGM", "specialization": "Cardiology"},
    {"identity": "ST3AM1A56AK2C1XAFJ4115ZSV26EB49BVQ10MGCS0", "specialization": "Dermatology"},
    {"identity": "ST3PF13W7Z0RRM42A8VZRVFQ75SV1K26RXEP8YGKJ", "specialization": "Pediatrics"},
    {"identity": "ST3NBRSFKX28FQ2ZJ1MAKX58HKHSDGNV5N7R21XCP", "specialization": "GeneralPractice"},
]


def seed() -> None:
    settings = get_settings()
    if not settings.verifier_identities:
        logger.error("seed_aborted", reason="VERIFIER_IDENTITIES is empty")
        sys.exit(1)

    verifier = settings.verifier_identities[0]
    registry = DoctorRegistry(get_store(), is_verifier=allow_list(settings.verifier_identities))

    logger.info("Seeding record store...", backend=settings.store_backend.value)

    for sample in SAMPLE_DOCTORS:
        if registry.specialization(sample["identity"]) is not None:
            logger.info(f"Skipping {sample['identity']} (already registered)")
            continue
        registry.register(sample["identity"], sample["specialization"])
        registry.verify(verifier, sample["identity"])
        logger.info(f"Created {sample['specialization']} doctor", identity=sample["identity"])

    logger.info("Seeding complete.")


if __name__ == "__main__":
    seed()
