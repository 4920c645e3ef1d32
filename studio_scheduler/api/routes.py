"""
API routes for schedule generation and management.
"""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
from typing import List, Dict, Any, Optional
from datetime import datetime
from celery.result import AsyncResult

from studio_scheduler.models import ScheduledClassInstance, schedule_from_records
from studio_scheduler.core.exceptions import InputDataError, OperationInProgressError, FatalEngineError
from studio_scheduler.core.config import MAX_TEACHER_HOURS, SOFT_WARNING_HOURS, GAP_FILL_BATCH_SIZE
from studio_scheduler.core.celery_app import celery_app
from studio_scheduler.core.logging_config import get_logger
from studio_scheduler.services import operations
from studio_scheduler.services.advisory import RuleBasedAdvisoryProvider
from studio_scheduler.services.operations import StudioContext, new_manual_id
from studio_scheduler.services.session import ScheduleSession
from studio_scheduler.tasks.scheduler_tasks import (
    seed_schedule_task, optimize_schedule_task, fill_gaps_task
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["schedule"])

# Single owner of the committed schedule for this process
session = ScheduleSession()
_loaded_payload: Dict[str, Any] = {}

ASYNC_TASKS = {
    "seed": seed_schedule_task,
    "optimize": optimize_schedule_task,
    "fill_gaps": fill_gaps_task
}


class ClassRecord(BaseModel):
    """One scheduled class in the persisted camelCase layout."""
    id: Optional[str] = None
    day: str
    time: str
    location: str
    classFormat: str
    teacherFirstName: Optional[str] = None
    teacherLastName: Optional[str] = None
    teacherName: Optional[str] = None
    durationHours: Optional[float] = None
    participants: float = 0.0
    revenue: float = 0.0
    isTopPerformer: bool = False
    isPrivate: bool = False
    adjustedScore: float = 0.0
    avgAttendance: float = 0.0
    fillRate: float = 0.0
    isPriorityClass: bool = False


class LoadDataRequest(BaseModel):
    """Pre-validated ingester output."""
    performance: List[Dict[str, Any]]
    priorities: List[Dict[str, Any]] = []
    roster: Optional[Dict[str, Any]] = None
    availability: Optional[Dict[str, Any]] = None
    settings: Optional[Dict[str, Any]] = None
    batchSize: int = GAP_FILL_BATCH_SIZE


class OverrideRequest(BaseModel):
    override: bool = False


class OptimizeRequest(BaseModel):
    iteration: Optional[int] = None
    override: bool = False


class FillGapsRequest(BaseModel):
    batch_size: Optional[int] = None


class ValidateRequest(BaseModel):
    candidate: ClassRecord
    override: bool = False
    replacing_id: Optional[str] = None


class AddClassRequest(BaseModel):
    candidate: ClassRecord
    override: bool = False


class UpdateClassRequest(BaseModel):
    changes: Dict[str, Any]
    override: bool = False


class ApplyScheduleRequest(BaseModel):
    instances: List[ClassRecord]
    override: bool = False


class LockRequest(BaseModel):
    """Ids or teacher names; omit to lock or unlock everything."""
    names: Optional[List[str]] = None


class AsyncTaskRequest(BaseModel):
    options: Dict[str, Any] = {}


class OperationResponse(BaseModel):
    success: bool
    message: str
    outcome: Dict[str, Any]
    schedule: List[Dict[str, Any]]


def _to_instance(record: ClassRecord) -> ScheduledClassInstance:
    data = record.model_dump(exclude_none=True)
    data.setdefault("id", new_manual_id())
    try:
        return ScheduledClassInstance.from_record(data)
    except InputDataError as e:
        raise HTTPException(status_code=422, detail=f"Invalid class: {str(e)}")


def _run(operation, *args, **kwargs) -> OperationResponse:
    """Run an operation on the session and map engine failures to HTTP errors."""
    try:
        outcome = session.run(operation, *args, **kwargs)
    except OperationInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except FatalEngineError as e:
        raise HTTPException(status_code=500, detail=f"Scheduling engine failed: {str(e)}")

    return OperationResponse(
        success=outcome.success,
        message=outcome.message,
        outcome=outcome.to_dict(),
        schedule=session.state.to_dict()["instances"]
    )


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}


@router.post("/data")
async def load_data(request: LoadDataRequest):
    """
    Load performance history, priority catalog, roster and availability.

    The committed schedule is kept; only the engine inputs are replaced.
    """
    global _loaded_payload
    payload = request.model_dump()
    try:
        context = StudioContext.from_payload(payload)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=f"Invalid input data: {str(e)}")
    context.advisory = RuleBasedAdvisoryProvider(context.index, context.soft_warning_hours)
    try:
        records, entries = session.load(context)
    except OperationInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    _loaded_payload = payload

    return {
        "success": True,
        "performance_records": records,
        "priority_entries": entries,
        "skipped_rows": context.skipped_rows,
        "teachers": len(context.index.teachers()),
        "locations": context.index.locations()
    }


@router.get("/schedule")
async def get_schedule():
    """Current schedule with the teacher hour ledger."""
    state = session.state
    return {
        **state.to_dict(),
        "teacher_hours": {t: round(h, 1) for t, h in sorted(state.teacher_hours.items())},
        "total_classes": len(state.instances),
        "can_undo": state.history.can_undo,
        "can_redo": state.history.can_redo,
        "in_progress": session.in_progress,
        "limits": {"max_hours": MAX_TEACHER_HOURS, "soft_warning_hours": SOFT_WARNING_HOURS}
    }


@router.post("/schedule/seed", response_model=OperationResponse)
async def seed_schedule(request: OverrideRequest):
    return _run(operations.seed, override=request.override)


@router.post("/schedule/optimize", response_model=OperationResponse)
async def optimize_schedule(request: OptimizeRequest):
    return _run(operations.optimize, iteration=request.iteration, override=request.override)


@router.post("/schedule/fill-gaps", response_model=OperationResponse)
async def fill_gaps(request: FillGapsRequest):
    return _run(operations.fill_gaps, batch_size=request.batch_size)


@router.post("/schedule/validate", response_model=OperationResponse)
async def validate_class(request: ValidateRequest):
    """Check a candidate against the hour policy without committing it."""
    return _run(
        operations.validate_class,
        _to_instance(request.candidate),
        override=request.override,
        replacing_id=request.replacing_id
    )


@router.post("/schedule/classes", response_model=OperationResponse)
async def add_class(request: AddClassRequest):
    return _run(operations.add_class, _to_instance(request.candidate), override=request.override)


@router.put("/schedule/classes/{class_id}", response_model=OperationResponse)
async def update_class(class_id: str, request: UpdateClassRequest):
    return _run(operations.update_class, class_id, request.changes, override=request.override)


@router.delete("/schedule/classes/{class_id}", response_model=OperationResponse)
async def remove_class(class_id: str):
    return _run(operations.remove_class, class_id)


@router.post("/schedule/apply", response_model=OperationResponse)
async def apply_schedule(request: ApplyScheduleRequest):
    """Commit a candidate schedule, for example the result of an async task."""
    try:
        instances = schedule_from_records([r.model_dump(exclude_none=True) for r in request.instances])
    except InputDataError as e:
        raise HTTPException(status_code=422, detail=f"Invalid schedule: {str(e)}")
    return _run(operations.apply_schedule, instances, override=request.override)


@router.post("/schedule/undo", response_model=OperationResponse)
async def undo():
    return _run(operations.undo)


@router.post("/schedule/redo", response_model=OperationResponse)
async def redo():
    return _run(operations.redo)


@router.post("/schedule/clear", response_model=OperationResponse)
async def clear_schedule():
    return _run(operations.clear)


@router.post("/schedule/lock-classes", response_model=OperationResponse)
async def lock_classes(request: LockRequest):
    return _run(operations.lock_classes, request.names)


@router.post("/schedule/unlock-classes", response_model=OperationResponse)
async def unlock_classes(request: LockRequest):
    return _run(operations.unlock_classes, request.names)


@router.post("/schedule/lock-teachers", response_model=OperationResponse)
async def lock_teachers(request: LockRequest):
    return _run(operations.lock_teachers, request.names)


@router.post("/schedule/unlock-teachers", response_model=OperationResponse)
async def unlock_teachers(request: LockRequest):
    return _run(operations.unlock_teachers, request.names)


@router.get("/schedule/suggestions")
async def get_suggestions():
    """Non-binding hints for the current schedule."""
    state = session.state
    advisory = session.context.advisory
    try:
        suggestions = advisory.suggest(state.instances, state.teacher_hours, session.context.roster)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to get suggestions: {str(e)}")
    return {"suggestions": suggestions}


@router.post("/schedule/async/{operation}")
async def start_async_operation(operation: str, request: AsyncTaskRequest):
    """
    Start an engine run as a Celery task on the current data and schedule.

    Returns:
        dict: Task ID for polling status
    """
    task = ASYNC_TASKS.get(operation)
    if task is None:
        raise HTTPException(status_code=404, detail=f"Unknown operation: {operation}")
    if not _loaded_payload:
        raise HTTPException(status_code=400, detail="No performance data loaded")

    payload = {
        "context": _loaded_payload,
        "state": session.state.to_dict(),
        "options": request.options
    }
    try:
        result = task.delay(payload)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to start task: {str(e)}")

    return {
        "task_id": result.id,
        "status": "PENDING",
        "message": f"{operation} started"
    }


@router.get("/schedule/status/{task_id}")
async def get_task_status(task_id: str):
    """
    Get status of an async engine task.

    Args:
        task_id: Celery task ID

    Returns:
        dict: Task status and result (if complete)
    """
    try:
        task_result = AsyncResult(task_id, app=celery_app)

        if task_result.state == "PENDING":
            response = {
                "task_id": task_id,
                "status": "PENDING",
                "message": "Task is waiting to start..."
            }
        elif task_result.state == "PROGRESS":
            response = {
                "task_id": task_id,
                "status": "PROGRESS",
                "message": task_result.info.get("status", "Processing...")
            }
        elif task_result.state == "SUCCESS":
            response = {
                "task_id": task_id,
                "status": "SUCCESS",
                "result": task_result.result
            }
        elif task_result.state == "FAILURE":
            response = {
                "task_id": task_id,
                "status": "FAILURE",
                "message": str(task_result.info)
            }
        else:
            response = {
                "task_id": task_id,
                "status": task_result.state,
                "message": f"Task state: {task_result.state}"
            }

        return response
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to get task status: {str(e)}")
