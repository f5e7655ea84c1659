from __future__ import annotations

import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import StrEnum


class TargetState(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"


@dataclass(frozen=True)
class AssertionFailure:
    module: str
    test: str
    message: str = ""
    actual: str | None = None
    expected: str | None = None


@dataclass(frozen=True)
class PageStats:
    """What a page runner reports for one test page."""

    passed: int
    failed: int
    total: int
    runtime_ms: float = 0.0
    failures: tuple[AssertionFailure, ...] = ()


@dataclass
class TargetRecord:
    """Run record of one test target: pending -> running -> passed | failed."""

    target: str
    state: TargetState = TargetState.PENDING
    passed: int = 0
    failed: int = 0
    total: int = 0
    runtime_ms: float = 0.0
    duration_s: float = 0.0
    error: str | None = None
    failures: tuple[AssertionFailure, ...] = ()
    _started: float | None = field(default=None, repr=False)

    @property
    def ok(self) -> bool:
        return self.state == TargetState.PASSED

    @property
    def done(self) -> bool:
        return self.state in (TargetState.PASSED, TargetState.FAILED)

    def start(self) -> None:
        if self.state != TargetState.PENDING:
            raise RuntimeError(f"{self.target}: cannot start from state {self.state.value}")
        self.state = TargetState.RUNNING
        self._started = time.monotonic()

    def finish(self, stats: PageStats) -> None:
        self._check_running()
        self.passed = stats.passed
        self.failed = stats.failed
        self.total = stats.total
        self.runtime_ms = stats.runtime_ms
        self.failures = tuple(stats.failures)
        self._close(TargetState.FAILED if stats.failed > 0 else TargetState.PASSED)

    def fail(self, error: str) -> None:
        """Record a target that never reported results as one failing test."""
        self._check_running()
        self.passed = 0
        self.failed = 1
        self.total = 1
        self.error = error
        self._close(TargetState.FAILED)

    def _check_running(self) -> None:
        if self.state != TargetState.RUNNING:
            raise RuntimeError(f"{self.target}: cannot finish from state {self.state.value}")

    def _close(self, state: TargetState) -> None:
        self.duration_s = time.monotonic() - (self._started or time.monotonic())
        if not self.runtime_ms:
            self.runtime_ms = self.duration_s * 1000
        self.state = state


@dataclass(frozen=True)
class SuiteResult:
    total: int
    failed: int
    records: tuple[TargetRecord, ...] = ()

    @property
    def passed(self) -> int:
        return sum(r.passed for r in self.records)

    @property
    def ok(self) -> bool:
        return self.failed == 0

    @classmethod
    def from_records(cls, records: Iterable[TargetRecord]) -> SuiteResult:
        records = tuple(records)
        return cls(
            total=sum(r.total for r in records),
            failed=sum(r.failed for r in records),
            records=records,
        )


class SuiteFailed(Exception):
    def __init__(self, result: SuiteResult):
        super().__init__(f"{result.failed}/{result.total} tests failed")
        self.result = result
