from __future__ import annotations

from .types import SuiteResult, TargetRecord


def format_record(record: TargetRecord) -> list[str]:
    mark = "✔" if record.ok else "!"
    lines = [
        f"{mark} {record.target} [{record.passed}/{record.total}] in {record.runtime_ms:.0f}ms"
    ]
    if record.error:
        lines.append(f"  {record.error}")
    for failure in record.failures:
        lines.append(f"  {failure.module} > {failure.test}: {failure.message}".rstrip())
        if failure.expected is not None or failure.actual is not None:
            lines.append(f"    expected: {failure.expected}")
            lines.append(f"    actual:   {failure.actual}")
    return lines


def print_record(record: TargetRecord) -> None:
    for line in format_record(record):
        print(line, flush=True)


def format_summary(result: SuiteResult) -> str:
    if result.ok:
        return f"✔ Passed {result.total} tests"
    return f"{result.failed}/{result.total} tests failed"
