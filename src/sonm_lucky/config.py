"""Runtime configuration for the deal workflow runner."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_NODE_ENDPOINT = "localhost:15030"
DEAL_STRATEGY_CHOICES = ("explicit", "auto-match")


@dataclass(slots=True)
class PollSettings:
    """Polling for asynchronously discovered order and deal ids."""

    interval_seconds: float = 1.0
    max_attempts: int = 0
    timeout_seconds: float = 600.0


@dataclass(slots=True)
class WorkflowSettings:
    """Workflow shape selection."""

    deal_strategy: str = "explicit"
    task_file: Path | None = None
    deal_settle_seconds: float | None = None
    close_existing_deals: bool = False
    price: str | None = None


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    node_endpoint: str = DEFAULT_NODE_ENDPOINT
    cli_path: str | None = None
    poll: PollSettings = field(default_factory=PollSettings)
    workflow: WorkflowSettings = field(default_factory=WorkflowSettings)

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment with local-node defaults."""

        task_file = os.getenv("SONM_LUCKY_TASK_FILE", "").strip()
        settle = os.getenv("SONM_LUCKY_DEAL_SETTLE_SECONDS", "").strip()
        price = os.getenv("SONM_LUCKY_PRICE", "").strip()
        return cls(
            node_endpoint=os.getenv("SONM_LUCKY_NODE", DEFAULT_NODE_ENDPOINT).strip(),
            cli_path=os.getenv("SONM_LUCKY_CLI_PATH", "").strip() or None,
            poll=PollSettings(
                interval_seconds=float(os.getenv("SONM_LUCKY_POLL_INTERVAL_SECONDS", "1.0")),
                max_attempts=int(os.getenv("SONM_LUCKY_POLL_MAX_ATTEMPTS", "0")),
                timeout_seconds=float(os.getenv("SONM_LUCKY_POLL_TIMEOUT_SECONDS", "600")),
            ),
            workflow=WorkflowSettings(
                deal_strategy=os.getenv("SONM_LUCKY_DEAL_STRATEGY", "explicit").strip().lower(),
                task_file=Path(task_file) if task_file else None,
                deal_settle_seconds=float(settle) if settle else None,
                close_existing_deals=_env_bool("SONM_LUCKY_CLOSE_EXISTING_DEALS", default=False),
                price=price or None,
            ),
        )

    def validate(self) -> None:
        """Raise configuration error for malformed endpoint or poll bounds."""

        _validate_node_endpoint(self.node_endpoint)
        if self.poll.interval_seconds <= 0:
            raise ValueError("SONM_LUCKY_POLL_INTERVAL_SECONDS must be > 0.")
        if self.poll.max_attempts < 0:
            raise ValueError("SONM_LUCKY_POLL_MAX_ATTEMPTS must be >= 0.")
        if self.poll.timeout_seconds < 0:
            raise ValueError("SONM_LUCKY_POLL_TIMEOUT_SECONDS must be >= 0.")
        if self.workflow.deal_strategy not in DEAL_STRATEGY_CHOICES:
            raise ValueError(
                f"Unsupported deal strategy: {self.workflow.deal_strategy!r}. "
                f"Expected one of: {', '.join(DEAL_STRATEGY_CHOICES)}.",
            )
        if self.workflow.deal_settle_seconds is not None and self.workflow.deal_settle_seconds < 0:
            raise ValueError("SONM_LUCKY_DEAL_SETTLE_SECONDS must be >= 0.")
        if self.workflow.price is not None and not self.workflow.price.strip():
            raise ValueError("SONM_LUCKY_PRICE must not be empty.")


def _validate_node_endpoint(value: str) -> None:
    host, sep, port = value.rpartition(":")
    if not sep or not host or not port.isdigit() or not 0 < int(port) < 65536:
        raise ValueError(f"Invalid node endpoint: {value!r}. Expected format 'host:port'.")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
