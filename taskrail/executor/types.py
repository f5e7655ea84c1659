from dataclasses import dataclass, field


@dataclass(frozen=True)
class TaskResult:
    task_id: str
    ok: bool
    duration_s: float
    error: BaseException | None = None


@dataclass(frozen=True)
class RunResult:
    ok: bool
    task_id: str | None = None
    error: BaseException | None = None
    results: list[TaskResult] = field(default_factory=list)

    @property
    def failed(self) -> list[str]:
        return [r.task_id for r in self.results if not r.ok]


class TaskFailed(Exception):
    """Carries a leaf failure up through composites without altering it."""

    def __init__(self, task_id: str, error: BaseException):
        super().__init__(f"{task_id}: {error}")
        self.task_id = task_id
        self.error = error


class CommandFailed(Exception):
    def __init__(self, command: str, returncode: int, stderr: str = ""):
        message = f"Command exited with code {returncode}: {command}"
        tail = stderr.strip().splitlines()[-5:]
        if tail:
            message += "\n" + "\n".join(tail)
        super().__init__(message)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
