"""Error kinds raised by workflow steps."""

from __future__ import annotations

from collections.abc import Sequence


class WorkflowError(RuntimeError):
    """Base class for every fatal workflow failure."""


class ExternalToolError(WorkflowError):
    """The marketplace CLI exited with a nonzero status."""

    def __init__(self, exit_status: int, output: str, argv: Sequence[str] = ()) -> None:
        super().__init__(f"[{exit_status}]: {output.strip()}")
        self.exit_status = exit_status
        self.output = output
        self.argv = tuple(argv)


class ParseError(WorkflowError):
    """Expected marker or structured field is missing or malformed."""


class ConsistencyError(WorkflowError):
    """Queried entity identity differs from the requested one."""

    def __init__(self, entity: str, expected: str, actual: object) -> None:
        super().__init__(f"{entity} id mismatch: expected {expected!r}, got {actual!r}")
        self.entity = entity
        self.expected = expected
        self.actual = actual


class PollTimeoutError(WorkflowError):
    """Awaited field was not populated within the poll policy bounds."""

    def __init__(self, what: str, attempts: int, elapsed_seconds: float) -> None:
        super().__init__(
            f"{what} not available after {attempts} attempt(s) in {elapsed_seconds:.1f}s",
        )
        self.what = what
        self.attempts = attempts
        self.elapsed_seconds = elapsed_seconds
