"""
Celery tasks for long engine runs.

Tasks receive a JSON payload ({"context": ..., "state": ..., "options": ...}),
run one engine against it and return the candidate schedule plus the outcome.
Nothing is committed here; the caller applies the candidate through the
normal apply_schedule path.
"""

from datetime import datetime
from typing import Callable, Dict, Optional
import traceback

from studio_scheduler.core.celery_app import celery_app
from studio_scheduler.core.logging_config import get_logger
from studio_scheduler.services.operations import StudioState, StudioContext, OPERATIONS

logger = get_logger(__name__)

ENGINE_OPERATIONS = ("seed", "optimize", "fill_gaps")


def run_engine_payload(operation: str, payload: Dict,
                       progress: Optional[Callable[[str], None]] = None) -> Dict:
    """
    Run one engine operation on a serialized payload.

    Args:
        operation: One of seed, optimize, fill_gaps
        payload: Serialized context, state and options
        progress: Optional status callback

    Returns:
        dict: success flag, message, outcome and candidate instance records
    """
    if operation not in ENGINE_OPERATIONS:
        raise ValueError(f"Unknown engine operation: {operation}")

    def report(status: str):
        if progress:
            progress(status)

    start_time = datetime.now()
    report("Loading performance data...")
    context = StudioContext.from_payload(payload.get("context"))
    state = StudioState.from_dict(payload.get("state"))
    options = payload.get("options", {})

    report(f"Running {operation} over {len(context.index)} performance records...")
    new_state, outcome = OPERATIONS[operation](state, context, **options)

    return {
        "success": outcome.success,
        "message": outcome.message,
        "operation": operation,
        "outcome": outcome.to_dict(),
        "candidate": new_state.to_dict(),
        "generation_time": (datetime.now() - start_time).total_seconds()
    }


def _run_task(task, operation: str, payload: Dict) -> Dict:
    try:
        return run_engine_payload(
            operation,
            payload,
            progress=lambda status: task.update_state(state="PROGRESS", meta={"status": status})
        )
    except Exception as e:
        error_trace = traceback.format_exc()
        logger.error(f"Error in {operation} task: {error_trace}")
        return {
            "success": False,
            "message": f"{operation} failed: {str(e)}",
            "operation": operation,
            "error": str(e),
            "traceback": error_trace
        }


@celery_app.task(bind=True, name="seed_schedule")
def seed_schedule_task(self, payload: Dict):
    """Seed a candidate schedule from the priority catalog."""
    return _run_task(self, "seed", payload)


@celery_app.task(bind=True, name="optimize_schedule")
def optimize_schedule_task(self, payload: Dict):
    """Generate one optimizer iteration as a candidate schedule."""
    return _run_task(self, "optimize", payload)


@celery_app.task(bind=True, name="fill_gaps")
def fill_gaps_task(self, payload: Dict):
    """Append a batch of gap-filling classes to the payload's schedule."""
    return _run_task(self, "fill_gaps", payload)
