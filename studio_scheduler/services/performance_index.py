"""
Historical performance index.
Read-only lookup of (class format, day, time, location, teacher) -> metrics.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple

from studio_scheduler.core.exceptions import InputDataError
from studio_scheduler.core.logging_config import get_logger
from studio_scheduler.models import PerformanceRecord

logger = get_logger(__name__)


class PerformanceIndex:
    """
    Immutable index over historical performance records.

    Records are keyed by their exact combination; secondary views group them
    by slot (location, day, time), by teacher and by format. Insertion order is
    preserved everywhere so iteration is deterministic.
    """

    def __init__(self, records: Iterable[PerformanceRecord] = (), skipped_rows: int = 0):
        self._records: Dict[Tuple[str, str, str, str, str], PerformanceRecord] = {}
        self._by_slot = defaultdict(list)
        self._by_teacher = defaultdict(list)
        self._by_format = defaultdict(list)
        self.skipped_rows = skipped_rows

        for record in records:
            if record.key in self._records:
                logger.debug(f"Duplicate performance record for {record.key}, keeping first")
                continue
            self._records[record.key] = record
            self._by_slot[(record.location, record.day, record.time)].append(record)
            self._by_teacher[record.teacher_name].append(record)
            self._by_format[record.class_format].append(record)

        self._max_metrics = self._calculate_max_metrics()

    @classmethod
    def from_rows(cls, rows: Iterable[Dict]) -> "PerformanceIndex":
        """
        Build an index from ingester rows.

        Malformed rows are skipped and logged; they never abort the load.
        """
        records = []
        skipped = 0
        for position, row in enumerate(rows):
            try:
                records.append(PerformanceRecord.from_row(row))
            except InputDataError as e:
                skipped += 1
                logger.warning(f"Skipping performance row {position}: {e}")
        logger.info(f"Loaded {len(records)} performance records ({skipped} rows skipped)")
        return cls(records, skipped_rows=skipped)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(self._records.values())

    def lookup(self, class_format: str, day: str, time: str, location: str,
               teacher_name: str) -> Optional[PerformanceRecord]:
        return self._records.get((class_format, day, time, location, teacher_name))

    def records_for_slot(self, location: str, day: str, time: str) -> List[PerformanceRecord]:
        return list(self._by_slot.get((location, day, time), []))

    def records_for_format(self, class_format: str) -> List[PerformanceRecord]:
        return list(self._by_format.get(class_format, []))

    def times_for(self, location: str, day: str) -> List[str]:
        return sorted({time for (loc, d, time) in self._by_slot if loc == location and d == day})

    def locations(self) -> List[str]:
        seen = []
        for (location, _, _) in self._by_slot:
            if location not in seen:
                seen.append(location)
        return seen

    def teachers(self) -> List[str]:
        return list(self._by_teacher.keys())

    def class_formats(self) -> List[str]:
        return list(self._by_format.keys())

    def max_metric(self, name: str) -> float:
        return self._max_metrics.get(name, 0.0)

    def _calculate_max_metrics(self) -> Dict[str, float]:
        metrics = ["revenue_per_class", "avg_attendance", "fill_rate_pct", "score", "late_cancel_rate"]
        maxima = {name: 0.0 for name in metrics}
        for record in self._records.values():
            for name in metrics:
                maxima[name] = max(maxima[name], getattr(record, name))
        return maxima

    def normalized(self, record: PerformanceRecord, name: str) -> float:
        """Metric scaled to 0..1 against the largest value in the index."""
        maximum = self.max_metric(name)
        if maximum <= 0:
            return 0.0
        return max(getattr(record, name), 0.0) / maximum
