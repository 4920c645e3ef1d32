"""
Schedule operations exposed to the API, tasks and CLI.

Every operation takes the current StudioState and the loaded StudioContext
and returns (new_state, OperationOutcome). States are immutable values: an
operation that fails or is refused returns the state it was given.
"""

import functools
import uuid
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from studio_scheduler.models import (
    ScheduledClassInstance, Roster, AvailabilityCalendar, LockSet, PolicyBreach,
    OperationOutcome, schedule_to_records, schedule_from_records
)
from studio_scheduler.core.config import SOFT_WARNING_HOURS, GAP_FILL_BATCH_SIZE, HOURS_EPSILON
from studio_scheduler.core.exceptions import (
    SchedulingError, InputDataError, EmptyResultError, FatalEngineError
)
from studio_scheduler.core.logging_config import get_logger
from studio_scheduler.services.performance_index import PerformanceIndex
from studio_scheduler.services.priority_catalog import PriorityCatalog
from studio_scheduler.services.validator import TeacherHourValidator, compute_ledger, rounded_ledger
from studio_scheduler.services.seeding import PrioritySeeder
from studio_scheduler.services.scheduler import ScheduleOptimizer, OptimizerSettings
from studio_scheduler.services.gap_filler import GapFiller
from studio_scheduler.services.history import ScheduleHistory
from studio_scheduler.services.advisory import AdvisoryProvider, NullAdvisoryProvider
from studio_scheduler.services.metrics import schedule_metrics, trainer_assignments

logger = get_logger(__name__)


@dataclass(frozen=True)
class StudioState:
    """Committed schedule, its history, the active locks and the optimizer iteration."""
    instances: Tuple[ScheduledClassInstance, ...] = ()
    history: ScheduleHistory = field(default_factory=ScheduleHistory)
    locks: LockSet = field(default_factory=LockSet)
    iteration: int = 0

    @property
    def teacher_hours(self) -> Dict[str, float]:
        return compute_ledger(self.instances)

    def find(self, instance_id: str) -> Optional[ScheduledClassInstance]:
        for instance in self.instances:
            if instance.id == instance_id:
                return instance
        return None

    def locked_instances(self) -> List[ScheduledClassInstance]:
        return [i for i in self.instances if self.locks.is_locked(i)]

    def to_dict(self) -> Dict:
        return {
            "instances": list(schedule_to_records(self.instances).values()),
            "locks": self.locks.to_dict(),
            "iteration": self.iteration
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> "StudioState":
        """Rebuild a state without history (task payloads)."""
        data = data or {}
        locks = data.get("locks", {})
        return cls(
            instances=schedule_from_records(data.get("instances", [])),
            locks=LockSet(
                class_ids=frozenset(locks.get("classIds", [])),
                teacher_names=frozenset(locks.get("teacherNames", []))
            ),
            iteration=int(data.get("iteration", 0))
        )


@dataclass
class StudioContext:
    """Read-only inputs shared by every operation."""
    index: PerformanceIndex = field(default_factory=PerformanceIndex)
    catalog: PriorityCatalog = field(default_factory=PriorityCatalog)
    roster: Roster = field(default_factory=Roster)
    availability: AvailabilityCalendar = field(default_factory=AvailabilityCalendar)
    settings: OptimizerSettings = field(default_factory=OptimizerSettings)
    soft_warning_hours: float = SOFT_WARNING_HOURS
    batch_size: int = GAP_FILL_BATCH_SIZE
    advisory: AdvisoryProvider = field(default_factory=NullAdvisoryProvider)

    @property
    def skipped_rows(self) -> int:
        return self.index.skipped_rows + self.catalog.skipped_rows

    def validator(self) -> TeacherHourValidator:
        return TeacherHourValidator(self.roster, self.roster.default_max_hours, self.soft_warning_hours)

    @classmethod
    def from_payload(cls, data: Optional[Dict], advisory: Optional[AdvisoryProvider] = None) -> "StudioContext":
        """
        Build a context from pre-validated ingester output.

        Expected keys: performance (rows), priorities (rows), roster,
        availability, settings, batchSize. All optional.
        """
        data = data or {}
        index = PerformanceIndex.from_rows(data.get("performance", []))
        return cls(
            index=index,
            catalog=PriorityCatalog.from_rows(data.get("priorities", []), index),
            roster=Roster.from_dict(data.get("roster")),
            availability=AvailabilityCalendar.from_dict(data.get("availability")),
            settings=OptimizerSettings.from_dict(data.get("settings")),
            batch_size=int(data.get("batchSize", GAP_FILL_BATCH_SIZE)),
            advisory=advisory or NullAdvisoryProvider()
        )


def new_manual_id() -> str:
    return f"manual-{uuid.uuid4().hex[:12]}"


def _suggestions(ctx: StudioContext, instances: Sequence[ScheduledClassInstance]) -> List[str]:
    try:
        return ctx.advisory.suggest(instances, rounded_ledger(instances), ctx.roster)
    except Exception as e:
        logger.warning(f"Advisory provider failed, continuing without suggestions: {e}")
        return []


def _summarize(operation: str, instances: Sequence[ScheduledClassInstance], ctx: StudioContext,
               success: bool = True, message: str = "", **extra) -> OperationOutcome:
    ledger = compute_ledger(instances)
    return OperationOutcome(
        operation=operation,
        success=success,
        message=message,
        total_classes=len(instances),
        total_teachers=len(ledger),
        total_hours=round(sum(ledger.values()), 2),
        teacher_hours=rounded_ledger(instances),
        metrics=schedule_metrics(instances, ctx.roster),
        trainer_assignments=trainer_assignments(instances),
        suggestions=_suggestions(ctx, instances) if success else [],
        **extra
    )


def _commit(state: StudioState, instances: Iterable[ScheduledClassInstance], **changes) -> StudioState:
    instances = tuple(instances)
    return replace(
        state,
        instances=instances,
        history=state.history.commit(instances),
        locks=state.locks.restrict_to(instances),
        **changes
    )


def _new_breaches(ctx: StudioContext, state: StudioState,
                  instances: Sequence[ScheduledClassInstance]) -> List[PolicyBreach]:
    """Breaches in the candidate that are new or worse than in the committed state."""
    before = state.teacher_hours
    return [
        breach for breach in ctx.validator().find_policy_breaches(instances)
        if breach.projected_hours > before.get(breach.teacher, 0.0) + HOURS_EPSILON
    ]


def _override_required(operation: str, state: StudioState, ctx: StudioContext,
                       breaches: List[PolicyBreach]) -> OperationOutcome:
    names = "; ".join(b.describe() for b in breaches)
    logger.info(f"{operation} refused pending override: {names}")
    return _summarize(
        operation, state.instances, ctx,
        success=False,
        message=f"Teacher hour limit would be exceeded ({names}). Confirm with override to apply.",
        policy_breaches=breaches,
        requires_override=True
    )


def _failure(operation: str, state: StudioState, ctx: StudioContext, message: str, **extra) -> OperationOutcome:
    return _summarize(operation, state.instances, ctx, success=False, message=message, **extra)


def schedule_operation(func):
    """
    Common failure handling for operations.

    EmptyResultError becomes a failed outcome with the state unchanged. Any
    unexpected exception is wrapped in FatalEngineError.
    """
    @functools.wraps(func)
    def wrapper(state: StudioState, ctx: StudioContext, *args, **kwargs):
        try:
            return func(state, ctx, *args, **kwargs)
        except EmptyResultError as e:
            logger.warning(f"{func.__name__}: {e}")
            return state, _failure(func.__name__, state, ctx, str(e))
        except SchedulingError:
            raise
        except Exception as e:
            logger.exception(f"{func.__name__} failed")
            raise FatalEngineError(f"{func.__name__} failed: {e}") from e
    return wrapper


@schedule_operation
def seed(state: StudioState, ctx: StudioContext, override: bool = False):
    """Replace the schedule with the priority catalog placements."""
    result = PrioritySeeder(ctx.index, ctx.roster, ctx.availability).seed(ctx.catalog)
    if not result.instances:
        raise EmptyResultError(f"Seeding produced no classes from {len(ctx.catalog)} priority entries")

    breaches = _new_breaches(ctx, state, result.instances)
    if breaches and not override:
        return state, _override_required("seed", state, ctx, breaches)

    new_state = _commit(state, result.instances, iteration=0)
    return new_state, _summarize(
        "seed", new_state.instances, ctx,
        message=f"Seeded {len(result.instances)} priority classes",
        classes_added=len(result.instances),
        classes_removed=len(state.instances),
        conflicts_skipped=result.conflicts_skipped,
        skipped_rows=ctx.skipped_rows,
        warnings=list(result.skipped),
        policy_breaches=breaches
    )


@schedule_operation
def optimize(state: StudioState, ctx: StudioContext, iteration: Optional[int] = None,
             override: bool = False):
    """Regenerate the schedule around the locked classes and advance the iteration."""
    iteration = state.iteration if iteration is None else iteration
    must_include = list(ctx.settings.must_include_formats)
    for class_format in ctx.catalog.must_include_formats():
        if class_format not in must_include:
            must_include.append(class_format)
    settings = replace(ctx.settings, must_include_formats=must_include)

    optimizer = ScheduleOptimizer(ctx.index, ctx.roster, settings, ctx.availability)
    result = optimizer.optimize(iteration, state.locked_instances(), state.locks.teacher_names)
    if result.generated_count == 0:
        raise EmptyResultError(f"Optimization iteration {iteration} produced no new classes")

    breaches = _new_breaches(ctx, state, result.instances)
    if breaches and not override:
        return state, _override_required("optimize", state, ctx, breaches)

    new_state = _commit(state, result.instances, iteration=iteration + 1)
    warnings = [f"Must-include format could not be placed: {f}" for f in result.dropped_formats]
    return new_state, _summarize(
        "optimize", new_state.instances, ctx,
        message=f"Generated {result.generated_count} classes ({result.objective.value} objective)",
        classes_added=result.generated_count,
        classes_removed=len(state.instances) - result.locked_count,
        conflicts_skipped=result.conflicts_skipped,
        skipped_rows=ctx.skipped_rows,
        objective=result.objective.value,
        iteration=iteration,
        dropped_formats=list(result.dropped_formats),
        warnings=warnings,
        policy_breaches=breaches
    )


@schedule_operation
def fill_gaps(state: StudioState, ctx: StudioContext, batch_size: Optional[int] = None):
    """Append up to a batch of classes. Nothing to add is a success, not a failure."""
    filler = GapFiller(
        ctx.index, ctx.roster, ctx.availability,
        batch_size=ctx.batch_size if batch_size is None else batch_size,
        max_hours=ctx.roster.default_max_hours
    )
    result = filler.fill(state.instances, state.locks)
    if result.already_optimal:
        return state, _summarize(
            "fill_gaps", state.instances, ctx,
            message="No further gaps to fill, schedule is already optimal",
            already_optimal=True
        )

    new_state = _commit(state, result.instances)
    return new_state, _summarize(
        "fill_gaps", new_state.instances, ctx,
        message=f"Added {len(result.added)} classes",
        classes_added=len(result.added)
    )


@schedule_operation
def validate_class(state: StudioState, ctx: StudioContext, candidate: ScheduledClassInstance,
                   override: bool = False, replacing_id: Optional[str] = None):
    """Run the validation gate for a candidate. Never changes the state."""
    verdict = ctx.validator().validate(state.instances, candidate, override, replacing_id)
    return state, _summarize(
        "validate_class", state.instances, ctx,
        success=verdict.is_valid,
        message=verdict.message,
        warnings=[verdict.warning] if verdict.warning else [],
        policy_breaches=[verdict.breach] if verdict.breach else [],
        requires_override=not verdict.is_valid and verdict.overridable,
        validation=verdict
    )


@schedule_operation
def add_class(state: StudioState, ctx: StudioContext, candidate: ScheduledClassInstance,
              override: bool = False):
    if not candidate.id:
        candidate = replace(candidate, id=new_manual_id())
    if state.find(candidate.id):
        return state, _failure("add_class", state, ctx, f"Class {candidate.id} already exists")

    _, check = validate_class(state, ctx, candidate, override)
    if not check.success:
        return state, replace(check, operation="add_class")

    new_state = _commit(state, state.instances + (candidate,))
    return new_state, _summarize(
        "add_class", new_state.instances, ctx,
        message=f"Added {candidate}",
        classes_added=1,
        warnings=check.warnings,
        policy_breaches=check.policy_breaches,
        validation=check.validation
    )


@schedule_operation
def update_class(state: StudioState, ctx: StudioContext, instance_id: str, changes: Dict,
                 override: bool = False):
    """Replace a class with an edited copy. changes use the camelCase record keys."""
    existing = state.find(instance_id)
    if existing is None:
        return state, _failure("update_class", state, ctx, f"Class {instance_id} not found")

    record = existing.to_record()
    if "teacherName" in changes:
        del record["teacherFirstName"], record["teacherLastName"]
    record.update(changes)
    record["id"] = instance_id
    if "classFormat" in changes and "durationHours" not in changes:
        record["durationHours"] = None
    try:
        updated = ScheduledClassInstance.from_record(record)
    except InputDataError as e:
        return state, _failure("update_class", state, ctx, f"Invalid class data: {e}")

    _, check = validate_class(state, ctx, updated, override, replacing_id=instance_id)
    if not check.success:
        return state, replace(check, operation="update_class")

    instances = tuple(updated if i.id == instance_id else i for i in state.instances)
    new_state = _commit(state, instances)
    return new_state, _summarize(
        "update_class", new_state.instances, ctx,
        message=f"Updated {updated}",
        warnings=check.warnings,
        policy_breaches=check.policy_breaches,
        validation=check.validation
    )


@schedule_operation
def remove_class(state: StudioState, ctx: StudioContext, instance_id: str):
    existing = state.find(instance_id)
    if existing is None:
        return state, _failure("remove_class", state, ctx, f"Class {instance_id} not found")

    new_state = _commit(state, (i for i in state.instances if i.id != instance_id))
    return new_state, _summarize(
        "remove_class", new_state.instances, ctx,
        message=f"Removed {existing}",
        classes_removed=1
    )


@schedule_operation
def apply_schedule(state: StudioState, ctx: StudioContext,
                   instances: Iterable[ScheduledClassInstance], override: bool = False):
    """
    Commit an externally computed candidate (for example a task result).

    The candidate must keep every locked class unchanged and satisfy the
    exclusivity rules. New hour breaches need an override.
    """
    instances = tuple(instances)
    candidate_set = set(instances)
    missing = [i for i in state.locked_instances() if i not in candidate_set]
    if missing:
        return state, _failure(
            "apply_schedule", state, ctx,
            f"Candidate changes {len(missing)} locked classes",
            warnings=[f"Locked class missing or changed: {i}" for i in missing]
        )

    audit = ctx.validator().validate_schedule(instances)
    if not audit.is_valid:
        return state, _failure(
            "apply_schedule", state, ctx,
            f"Candidate has {len(audit.violations)} conflicts",
            warnings=list(audit.violations)
        )

    breaches = _new_breaches(ctx, state, instances)
    if breaches and not override:
        return state, _override_required("apply_schedule", state, ctx, breaches)

    previous_ids = {i.id for i in state.instances}
    new_ids = {i.id for i in instances}
    new_state = _commit(state, instances)
    return new_state, _summarize(
        "apply_schedule", new_state.instances, ctx,
        message=f"Applied schedule with {len(instances)} classes",
        classes_added=len(new_ids - previous_ids),
        classes_removed=len(previous_ids - new_ids),
        policy_breaches=breaches
    )


def _restore(state: StudioState, history: ScheduleHistory) -> StudioState:
    instances = history.current or ()
    return replace(state, instances=instances, history=history, locks=state.locks.restrict_to(instances))


@schedule_operation
def undo(state: StudioState, ctx: StudioContext):
    if not state.history.can_undo:
        return state, _failure("undo", state, ctx, "Nothing to undo")
    new_state = _restore(state, state.history.undo())
    return new_state, _summarize("undo", new_state.instances, ctx, message="Undid last change")


@schedule_operation
def redo(state: StudioState, ctx: StudioContext):
    if not state.history.can_redo:
        return state, _failure("redo", state, ctx, "Nothing to redo")
    new_state = _restore(state, state.history.redo())
    return new_state, _summarize("redo", new_state.instances, ctx, message="Redid last change")


@schedule_operation
def clear(state: StudioState, ctx: StudioContext):
    new_state = _commit(state, ())
    return new_state, _summarize(
        "clear", new_state.instances, ctx,
        message=f"Cleared {len(state.instances)} classes",
        classes_removed=len(state.instances)
    )


@schedule_operation
def lock_classes(state: StudioState, ctx: StudioContext, class_ids: Optional[Iterable[str]] = None):
    """Lock the given classes, or every class when no ids are given."""
    known = {i.id for i in state.instances}
    requested = known if class_ids is None else set(class_ids)
    unknown = sorted(requested - known)
    new_state = replace(state, locks=state.locks.with_classes(requested & known))
    return new_state, _summarize(
        "lock_classes", new_state.instances, ctx,
        message=f"{len(new_state.locks.class_ids)} classes locked",
        warnings=[f"Unknown class id: {i}" for i in unknown]
    )


@schedule_operation
def unlock_classes(state: StudioState, ctx: StudioContext, class_ids: Optional[Iterable[str]] = None):
    requested = state.locks.class_ids if class_ids is None else class_ids
    new_state = replace(state, locks=state.locks.without_classes(requested))
    return new_state, _summarize(
        "unlock_classes", new_state.instances, ctx,
        message=f"{len(new_state.locks.class_ids)} classes locked"
    )


@schedule_operation
def lock_teachers(state: StudioState, ctx: StudioContext, teacher_names: Optional[Iterable[str]] = None):
    """Lock the given teachers, or every teacher on the schedule when none are given."""
    requested = {i.teacher_name for i in state.instances} if teacher_names is None else set(teacher_names)
    new_state = replace(state, locks=state.locks.with_teachers(requested))
    return new_state, _summarize(
        "lock_teachers", new_state.instances, ctx,
        message=f"{len(new_state.locks.teacher_names)} teachers locked"
    )


@schedule_operation
def unlock_teachers(state: StudioState, ctx: StudioContext, teacher_names: Optional[Iterable[str]] = None):
    requested = state.locks.teacher_names if teacher_names is None else teacher_names
    new_state = replace(state, locks=state.locks.without_teachers(requested))
    return new_state, _summarize(
        "unlock_teachers", new_state.instances, ctx,
        message=f"{len(new_state.locks.teacher_names)} teachers locked"
    )


OPERATIONS = {
    "seed": seed,
    "optimize": optimize,
    "fill_gaps": fill_gaps,
    "validate_class": validate_class,
    "add_class": add_class,
    "update_class": update_class,
    "remove_class": remove_class,
    "apply_schedule": apply_schedule,
    "undo": undo,
    "redo": redo,
    "clear": clear,
    "lock_classes": lock_classes,
    "unlock_classes": unlock_classes,
    "lock_teachers": lock_teachers,
    "unlock_teachers": unlock_teachers
}
