from .aggregator import SuiteTask, discover_targets, run_suite
from .runner import PageRunner, QUnitPageRunner
from .types import (
    AssertionFailure,
    PageStats,
    SuiteFailed,
    SuiteResult,
    TargetRecord,
    TargetState,
)

__all__ = [
    "SuiteTask",
    "discover_targets",
    "run_suite",
    "PageRunner",
    "QUnitPageRunner",
    "AssertionFailure",
    "PageStats",
    "SuiteFailed",
    "SuiteResult",
    "TargetRecord",
    "TargetState",
]
