"""
Run a settlement batch job.

Usage: python run_batch.py <job>
"""
import sys
import os
import argparse
import logging
from datetime import datetime

# Add the backend directory to Python path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from consult_settlement.core.config import JAPANESE_TIME_ZONE, settings
from consult_settlement.db.session import SessionLocal
from consult_settlement.services.batch_service import BatchService
from consult_settlement.services.payment_gateway import create_payment_gateway

JOBS = (
    "make_payment_of_unhandled_settlements",
    "refund_expired_settlements",
    "delete_expired_stopped_settlements",
    "delete_expired_consultation_reqs",
)


def run(job: str) -> int:
    """Run one job and return the process exit code."""
    db = SessionLocal()
    payment_gateway = create_payment_gateway()
    try:
        service = BatchService(db, settings.settlement_policy(), payment_gateway)
        result = getattr(service, job)(datetime.now(JAPANESE_TIME_ZONE))
        print(f"{result.job}: {result.processed} processed")
        if not result.succeeded:
            print(f"failed ids: {result.failed_ids}")
            return 1
        return 0
    finally:
        payment_gateway.close()
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run a settlement batch job")
    parser.add_argument("job", choices=JOBS)
    args = parser.parse_args()
    logging.basicConfig(level=settings.LOG_LEVEL)
    sys.exit(run(args.job))
