"""
Priority catalog: ranked must-consider class placements.
"""

from dataclasses import replace
from typing import Dict, Iterable, List, Optional

from studio_scheduler.core.exceptions import InputDataError
from studio_scheduler.core.logging_config import get_logger
from studio_scheduler.models import PriorityEntry
from studio_scheduler.services.performance_index import PerformanceIndex

logger = get_logger(__name__)


class PriorityCatalog:
    """Priority entries ordered by rank descending, stable on ties."""

    def __init__(self, entries: Iterable[PriorityEntry] = (), skipped_rows: int = 0):
        # sorted() is stable, so equal ranks keep their load order
        self.entries: List[PriorityEntry] = sorted(entries, key=lambda e: -e.priority_rank)
        self.skipped_rows = skipped_rows

    @classmethod
    def from_rows(cls, rows: Iterable[Dict], index: Optional[PerformanceIndex] = None) -> "PriorityCatalog":
        """
        Build a catalog from ingester rows.

        When an index is given, each entry gets a snapshot of its exact-match
        performance record at load time.
        """
        entries = []
        skipped = 0
        for position, row in enumerate(rows):
            try:
                entry = PriorityEntry.from_row(row)
            except InputDataError as e:
                skipped += 1
                logger.warning(f"Skipping priority row {position}: {e}")
                continue
            if index is not None:
                entry = replace(entry, performance=index.lookup(*entry.performance_key))
            entries.append(entry)
        logger.info(f"Loaded {len(entries)} priority entries ({skipped} rows skipped)")
        return cls(entries, skipped_rows=skipped)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def priority_formats(self) -> List[str]:
        formats = []
        for entry in self.entries:
            if entry.class_format not in formats:
                formats.append(entry.class_format)
        return formats

    def must_include_formats(self) -> List[str]:
        formats = []
        for entry in self.entries:
            if entry.must_include and entry.class_format not in formats:
                formats.append(entry.class_format)
        return formats
