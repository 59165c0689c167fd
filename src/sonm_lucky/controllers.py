"""Controllers for sonm-lucky CLI commands."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, replace
from pathlib import Path

from sonm_lucky.cli_path import detect_cli_path
from sonm_lucky.client import MarketClient
from sonm_lucky.config import Settings
from sonm_lucky.errors import WorkflowError
from sonm_lucky.polling import PollPolicy
from sonm_lucky.runner import CommandRunner, SubprocessCommandRunner
from sonm_lucky.templates import (
    AskPlanSpec,
    BidOrderSpec,
    LoadedTaskSpec,
    TaskSpec,
    load_task_spec,
)
from sonm_lucky.workflow import (
    DealStrategy,
    StepEvent,
    StepPhase,
    WorkflowConfig,
    WorkflowOrchestrator,
    WorkflowRunResult,
)

logger = logging.getLogger(__name__)

STATUS_PENDING = "[ .. ]"
STATUS_OK = "[ OK ]"
STATUS_FAIL = "[FAIL]"


@dataclass(slots=True)
class RunWorkflowCommand:
    """CLI input for one full workflow run; ``None`` keeps the env/default value."""

    node: str | None = None
    cli_path: str | None = None
    deal_strategy: str | None = None
    task_file: Path | None = None
    poll_interval_seconds: float | None = None
    poll_max_attempts: int | None = None
    poll_timeout_seconds: float | None = None
    deal_settle_seconds: float | None = None
    close_existing_deals: bool | None = None
    price: str | None = None


@dataclass(slots=True)
class CloseDealsCommand:
    """CLI input for the standalone deal cleanup."""

    node: str | None = None
    cli_path: str | None = None


@dataclass(slots=True)
class LuckyCliResult:
    """Trailing report lines and overall outcome."""

    lines: list[str]
    success: bool


class LuckyCliController:
    """Builds the workflow from settings and reports step progress."""

    def __init__(
        self,
        *,
        runner_factory: Callable[[], CommandRunner] = SubprocessCommandRunner,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._runner_factory = runner_factory
        self._sleep = sleep

    def run_workflow(
        self,
        command: RunWorkflowCommand,
        emit: Callable[[str], None],
    ) -> LuckyCliResult:
        try:
            settings = _settings_for(command)
            settings.validate()
            config = _workflow_config(settings)
        except (ValueError, WorkflowError) as error:
            return LuckyCliResult(lines=[f"Configuration error: {error}"], success=False)

        client = self._client(settings, emit)
        orchestrator = WorkflowOrchestrator(
            client=client,
            config=config,
            on_event=lambda event: emit(render_step_event(event)),
            sleep=self._sleep,
        )
        result = orchestrator.run()
        return LuckyCliResult(lines=render_run_summary(result), success=result.success)

    def close_deals(
        self,
        command: CloseDealsCommand,
        emit: Callable[[str], None],
    ) -> LuckyCliResult:
        try:
            settings = _settings_for(
                RunWorkflowCommand(node=command.node, cli_path=command.cli_path),
            )
            settings.validate()
        except ValueError as error:
            return LuckyCliResult(lines=[f"Configuration error: {error}"], success=False)

        orchestrator = WorkflowOrchestrator(
            client=self._client(settings, emit),
            config=WorkflowConfig(),
            sleep=self._sleep,
        )
        step = "Close all deals"
        emit(render_step_event(StepEvent(step=step, phase=StepPhase.STARTED)))
        try:
            closed = orchestrator.close_all_deals()
        except WorkflowError as error:
            emit(render_step_event(StepEvent(step=step, phase=StepPhase.FAILED, detail=str(error))))
            return LuckyCliResult(lines=[], success=False)
        emit(
            render_step_event(
                StepEvent(step=step, phase=StepPhase.SUCCEEDED, detail=f"{len(closed)} closed"),
            ),
        )
        return LuckyCliResult(lines=[f"Closed deal: {deal_id}" for deal_id in closed], success=True)

    def _client(self, settings: Settings, emit: Callable[[str], None]) -> MarketClient:
        step = "Detecting sonmcli path"
        emit(render_step_event(StepEvent(step=step, phase=StepPhase.STARTED)))
        cli_path = detect_cli_path(settings.cli_path)
        emit(render_step_event(StepEvent(step=step, phase=StepPhase.SUCCEEDED, detail=cli_path)))
        logger.info("Using sonmcli at %s against node %s", cli_path, settings.node_endpoint)
        return MarketClient(
            runner=self._runner_factory(),
            cli_path=cli_path,
            node_endpoint=settings.node_endpoint,
        )


def render_step_event(event: StepEvent) -> str:
    if event.phase is StepPhase.STARTED:
        return f"{STATUS_PENDING} {event.step}"
    label = STATUS_OK if event.phase is StepPhase.SUCCEEDED else STATUS_FAIL
    if event.detail:
        return f"{label} {event.step} - {event.detail}"
    return f"{label} {event.step}"


def render_run_summary(result: WorkflowRunResult) -> list[str]:
    ids = result.identifiers
    lines = [
        f"Workflow status: {result.state.value}",
        f"  ask_plan_id={ids.ask_plan_id} ask_order_id={ids.ask_order_id} "
        f"bid_order_id={ids.bid_order_id}",
        f"  deal_id={ids.deal_id} task_id={ids.task_id} worker_id={ids.worker_id}",
    ]
    if result.error is not None:
        lines.append(f"  error={result.error}")
    return lines


def _settings_for(command: RunWorkflowCommand) -> Settings:
    settings = Settings.from_env()
    if command.node is not None:
        settings = replace(settings, node_endpoint=command.node)
    if command.cli_path is not None:
        settings = replace(settings, cli_path=command.cli_path)

    poll = settings.poll
    if command.poll_interval_seconds is not None:
        poll = replace(poll, interval_seconds=command.poll_interval_seconds)
    if command.poll_max_attempts is not None:
        poll = replace(poll, max_attempts=command.poll_max_attempts)
    if command.poll_timeout_seconds is not None:
        poll = replace(poll, timeout_seconds=command.poll_timeout_seconds)

    workflow = settings.workflow
    if command.deal_strategy is not None:
        workflow = replace(workflow, deal_strategy=command.deal_strategy.lower())
    if command.task_file is not None:
        workflow = replace(workflow, task_file=command.task_file)
    if command.deal_settle_seconds is not None:
        workflow = replace(workflow, deal_settle_seconds=command.deal_settle_seconds)
    if command.close_existing_deals is not None:
        workflow = replace(workflow, close_existing_deals=command.close_existing_deals)
    if command.price is not None:
        workflow = replace(workflow, price=command.price)

    return replace(settings, poll=poll, workflow=workflow)


def _workflow_config(settings: Settings) -> WorkflowConfig:
    task: TaskSpec | LoadedTaskSpec = TaskSpec()
    if settings.workflow.task_file is not None:
        task = load_task_spec(settings.workflow.task_file)
    ask_plan = AskPlanSpec()
    bid_order = BidOrderSpec()
    if settings.workflow.price is not None:
        ask_plan = AskPlanSpec(price=settings.workflow.price)
        bid_order = BidOrderSpec(price=settings.workflow.price)
    return WorkflowConfig(
        deal_strategy=DealStrategy(settings.workflow.deal_strategy),
        task=task,
        ask_plan=ask_plan,
        bid_order=bid_order,
        poll_policy=PollPolicy(
            interval_seconds=settings.poll.interval_seconds,
            max_attempts=settings.poll.max_attempts or None,
            max_elapsed_seconds=settings.poll.timeout_seconds or None,
        ),
        deal_settle_seconds=settings.workflow.deal_settle_seconds,
        close_existing_deals=settings.workflow.close_existing_deals,
    )
