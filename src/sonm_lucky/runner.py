"""Process execution for marketplace CLI invocations."""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from sonm_lucky.errors import ExternalToolError

logger = logging.getLogger(__name__)

SPAWN_FAILURE_EXIT_STATUS = 127


@dataclass(slots=True, frozen=True)
class CommandOutput:
    """Combined output and exit status of one external invocation."""

    output: str
    exit_status: int


class CommandRunner(Protocol):
    """Protocol implemented by process runners."""

    def run(self, argv: Sequence[str]) -> CommandOutput:
        """Run argv to completion and return its output and exit status."""


class SubprocessCommandRunner:
    """Spawn one blocking subprocess per call, stderr merged into stdout."""

    def run(self, argv: Sequence[str]) -> CommandOutput:
        args = list(argv)
        try:
            completed = subprocess.run(  # noqa: S603
                args,
                check=False,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            )
        except OSError as error:
            raise ExternalToolError(
                SPAWN_FAILURE_EXIT_STATUS,
                f"failed to start {args[0] if args else '<empty>'}: {error}",
                args,
            ) from error
        return CommandOutput(output=completed.stdout or "", exit_status=completed.returncode)


def execute(runner: CommandRunner, argv: Sequence[str]) -> CommandOutput:
    """Run argv and raise ``ExternalToolError`` on nonzero exit."""

    logger.debug("exec: %s", " ".join(argv))
    result = runner.run(argv)
    logger.debug("exit=%d output=%r", result.exit_status, result.output[:240])
    if result.exit_status != 0:
        raise ExternalToolError(result.exit_status, result.output, argv)
    return result
