"""
Linear undo/redo history of committed schedule snapshots.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from studio_scheduler.models import ScheduledClassInstance

Snapshot = Tuple[ScheduledClassInstance, ...]


@dataclass(frozen=True)
class ScheduleHistory:
    """
    Immutable snapshot list with a cursor.

    cursor is -1 while nothing has been committed. Committing after an undo
    discards every snapshot past the cursor, so redo is impossible until the
    next undo.
    """
    snapshots: Tuple[Snapshot, ...] = ()
    cursor: int = -1

    @property
    def current(self) -> Optional[Snapshot]:
        if self.cursor < 0:
            return None
        return self.snapshots[self.cursor]

    @property
    def can_undo(self) -> bool:
        return self.cursor > 0

    @property
    def can_redo(self) -> bool:
        return self.cursor < len(self.snapshots) - 1

    def commit(self, instances: Iterable[ScheduledClassInstance]) -> "ScheduleHistory":
        snapshots = self.snapshots[:self.cursor + 1] + (tuple(instances),)
        return ScheduleHistory(snapshots=snapshots, cursor=len(snapshots) - 1)

    def undo(self) -> "ScheduleHistory":
        if not self.can_undo:
            return self
        return ScheduleHistory(snapshots=self.snapshots, cursor=self.cursor - 1)

    def redo(self) -> "ScheduleHistory":
        if not self.can_redo:
            return self
        return ScheduleHistory(snapshots=self.snapshots, cursor=self.cursor + 1)

    def __len__(self) -> int:
        return len(self.snapshots)
