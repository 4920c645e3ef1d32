"""
Run Celery worker for async engine runs.
"""

import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from studio_scheduler.core.celery_app import celery_app
from studio_scheduler.core.config import REDIS_URL

if __name__ == "__main__":
    concurrency = os.getenv("CELERY_CONCURRENCY", "2")

    print("=" * 60)
    print("Studio Class Scheduling - Celery Worker")
    print("=" * 60)
    print(f"Broker: {REDIS_URL}")
    print("Worker will process seed, optimize and gap-fill tasks")
    print("=" * 60)

    celery_app.worker_main([
        "worker",
        "--loglevel=info",
        f"--concurrency={concurrency}",
        "--pool=solo" if os.name == "nt" else "--pool=prefork"  # Use solo pool on Windows
    ])
