"""Fixed-interval polling for asynchronously populated fields."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from sonm_lucky.errors import PollTimeoutError

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class PollPolicy:
    """Retry interval and optional bounds; ``None`` bounds mean wait forever."""

    interval_seconds: float = 1.0
    max_attempts: int | None = None
    max_elapsed_seconds: float | None = None

    def __post_init__(self) -> None:
        if self.interval_seconds <= 0:
            raise ValueError("Poll interval must be > 0.")
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("Poll max attempts must be >= 1.")
        if self.max_elapsed_seconds is not None and self.max_elapsed_seconds < 0:
            raise ValueError("Poll timeout must be >= 0.")


def poll_until_present(  # noqa: PLR0913
    producer: Callable[[], str],
    extract: Callable[[str], str | None],
    policy: PollPolicy,
    *,
    what: str = "value",
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> str:
    """Call producer until extract yields a non-empty value.

    Errors from producer or extract propagate immediately.
    """

    started = clock()
    attempts = 0
    while True:
        attempts += 1
        value = extract(producer())
        if value is not None and value != "":
            logger.debug("%s available after %d attempt(s)", what, attempts)
            return value

        elapsed = clock() - started
        if policy.max_attempts is not None and attempts >= policy.max_attempts:
            raise PollTimeoutError(what, attempts, elapsed)
        if (
            policy.max_elapsed_seconds is not None
            and elapsed + policy.interval_seconds > policy.max_elapsed_seconds
        ):
            raise PollTimeoutError(what, attempts, elapsed)

        logger.debug(
            "%s not ready (attempt %d), retrying in %.1fs",
            what,
            attempts,
            policy.interval_seconds,
        )
        sleep(policy.interval_seconds)
