"""
Services for seeding, optimization, gap filling, validation and history.
"""

from .performance_index import PerformanceIndex
from .priority_catalog import PriorityCatalog
from .validator import TeacherHourValidator, compute_ledger, rounded_ledger
from .seeding import PrioritySeeder, SeedResult
from .scheduler import ScheduleOptimizer, OptimizerSettings, OptimizationResult, objective_for_iteration
from .gap_filler import GapFiller, GapFillResult
from .history import ScheduleHistory
from .advisory import AdvisoryProvider, NullAdvisoryProvider, RuleBasedAdvisoryProvider
from .operations import StudioState, StudioContext, OPERATIONS
from .session import ScheduleSession

__all__ = [
    "PerformanceIndex",
    "PriorityCatalog",
    "TeacherHourValidator",
    "compute_ledger",
    "rounded_ledger",
    "PrioritySeeder",
    "SeedResult",
    "ScheduleOptimizer",
    "OptimizerSettings",
    "OptimizationResult",
    "objective_for_iteration",
    "GapFiller",
    "GapFillResult",
    "ScheduleHistory",
    "AdvisoryProvider",
    "NullAdvisoryProvider",
    "RuleBasedAdvisoryProvider",
    "StudioState",
    "StudioContext",
    "OPERATIONS",
    "ScheduleSession"
]
