"""
Single-owner session holding the committed studio state.
"""

from typing import Callable, Optional, Tuple

from studio_scheduler.models import OperationOutcome
from studio_scheduler.core.exceptions import OperationInProgressError
from studio_scheduler.core.logging_config import get_logger
from studio_scheduler.services.operations import StudioState, StudioContext

logger = get_logger(__name__)


class ScheduleSession:
    """
    Owns one StudioState and serializes operations against it.

    Only one operation may run at a time; a second call while one is in
    progress raises OperationInProgressError. The state is replaced only
    when an operation returns, so a failed run leaves it untouched.
    """

    def __init__(self, context: Optional[StudioContext] = None, state: Optional[StudioState] = None):
        self.context = context or StudioContext()
        self.state = state or StudioState()
        self._running: Optional[str] = None

    @property
    def in_progress(self) -> bool:
        return self._running is not None

    def run(self, operation: Callable, *args, **kwargs) -> OperationOutcome:
        name = getattr(operation, "__name__", str(operation))
        if self._running is not None:
            raise OperationInProgressError(f"Cannot run {name} while {self._running} is in progress")

        self._running = name
        try:
            new_state, outcome = operation(self.state, self.context, *args, **kwargs)
        finally:
            self._running = None

        self.state = new_state
        logger.info(f"{name}: {outcome.message}")
        return outcome

    def load(self, context: StudioContext) -> Tuple[int, int]:
        """Swap in freshly loaded inputs. The committed schedule is kept."""
        if self._running is not None:
            raise OperationInProgressError(f"Cannot load data while {self._running} is in progress")
        self.context = context
        return len(context.index), len(context.catalog)

    def reset(self):
        if self._running is not None:
            raise OperationInProgressError(f"Cannot reset while {self._running} is in progress")
        self.state = StudioState()
