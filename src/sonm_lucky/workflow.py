"""Single-run deal lifecycle: ask-plan, order, bid, deal, task."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from sonm_lucky.client import MarketClient
from sonm_lucky.errors import ConsistencyError, WorkflowError
from sonm_lucky.parsing import (
    ask_plan_field,
    consumer_worker_id,
    deal_ids,
    extract_marker_id,
    load_json_object,
    require_field,
)
from sonm_lucky.polling import PollPolicy, poll_until_present
from sonm_lucky.templates import (
    AskPlanSpec,
    BidOrderSpec,
    LoadedTaskSpec,
    TaskSpec,
    payload_file,
)

logger = logging.getLogger(__name__)

AUTO_MATCH_SETTLE_SECONDS = 10.0


class WorkflowState(str, Enum):
    """Lifecycle states of one workflow run."""

    INIT = "init"
    WORKER_VERIFIED = "worker_verified"
    ASK_PLAN_SUBMITTED = "ask_plan_submitted"
    ORDER_DISCOVERED = "order_discovered"
    BID_SUBMITTED = "bid_submitted"
    DEAL_OPENED = "deal_opened"
    DEAL_VERIFIED = "deal_verified"
    TASK_STARTED = "task_started"
    TASK_OBSERVED = "task_observed"
    TASK_STOPPED = "task_stopped"
    DONE = "done"
    FAILED = "failed"


class DealStrategy(str, Enum):
    """How the ask and bid orders become a deal."""

    EXPLICIT_OPEN = "explicit"
    AUTO_MATCH = "auto-match"


class TaskAddressing(str, Enum):
    """Which identifier addresses task status/stop commands."""

    WORKER = "worker"
    DEAL = "deal"


class StepPhase(str, Enum):
    STARTED = "started"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(slots=True)
class WorkflowConfig:
    """Everything one run needs besides the CLI client."""

    deal_strategy: DealStrategy = DealStrategy.EXPLICIT_OPEN
    task_addressing: TaskAddressing | None = None
    ask_plan: AskPlanSpec = field(default_factory=AskPlanSpec)
    bid_order: BidOrderSpec = field(default_factory=BidOrderSpec)
    task: TaskSpec | LoadedTaskSpec = field(default_factory=TaskSpec)
    poll_policy: PollPolicy = field(default_factory=PollPolicy)
    deal_settle_seconds: float | None = None
    close_existing_deals: bool = False

    def resolved_task_addressing(self) -> TaskAddressing:
        if self.task_addressing is not None:
            return self.task_addressing
        if self.deal_strategy is DealStrategy.AUTO_MATCH:
            return TaskAddressing.DEAL
        return TaskAddressing.WORKER

    def resolved_settle_seconds(self) -> float:
        if self.deal_settle_seconds is not None:
            return self.deal_settle_seconds
        if self.deal_strategy is DealStrategy.AUTO_MATCH:
            return AUTO_MATCH_SETTLE_SECONDS
        return 0.0


@dataclass(slots=True)
class WorkflowIdentifiers:
    """Identifiers obtained during a run; each is assigned at most once."""

    ask_plan_id: str | None = None
    ask_order_id: str | None = None
    bid_order_id: str | None = None
    deal_id: str | None = None
    task_id: str | None = None
    worker_id: str | None = None

    def assign(self, name: str, value: str) -> str:
        current = getattr(self, name)
        if current is not None and current != value:
            raise ConsistencyError(name.removesuffix("_id"), current, value)
        setattr(self, name, value)
        return value

    def require(self, name: str) -> str:
        value = getattr(self, name)
        if value is None:
            raise WorkflowError(f"{name} is not known yet.")
        return value


@dataclass(slots=True)
class StepEvent:
    """Progress notification for one step."""

    step: str
    phase: StepPhase
    detail: str | None = None


@dataclass(slots=True)
class StepResult:
    """Outcome of a single workflow step."""

    name: str
    ok: bool
    summary: str | None = None
    error: WorkflowError | None = None


@dataclass(slots=True)
class WorkflowRunResult:
    """Outcome of a complete workflow run."""

    state: WorkflowState = WorkflowState.INIT
    identifiers: WorkflowIdentifiers = field(default_factory=WorkflowIdentifiers)
    steps: list[StepResult] = field(default_factory=list)
    error: WorkflowError | None = None

    @property
    def success(self) -> bool:
        return self.state is WorkflowState.DONE


@dataclass(slots=True)
class _Step:
    name: str
    reaches: WorkflowState | None
    action: Callable[[WorkflowIdentifiers], str]


class WorkflowOrchestrator:
    """Drives the marketplace CLI through one full deal lifecycle.

    Every step either succeeds, advancing the state, or fails and ends the
    run in ``FAILED``. Nothing is retried or rolled back; the only waiting
    is polling for asynchronously discovered order and deal ids.
    """

    def __init__(
        self,
        *,
        client: MarketClient,
        config: WorkflowConfig,
        on_event: Callable[[StepEvent], None] | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.client = client
        self.config = config
        self._on_event = on_event or (lambda _event: None)
        self._sleep = sleep
        self._clock = clock

    def run(self) -> WorkflowRunResult:
        """Execute the workflow; any WorkflowError is returned as a failed step, not raised."""

        result = WorkflowRunResult()
        logger.info(
            "Starting workflow: strategy=%s addressing=%s node=%s",
            self.config.deal_strategy.value,
            self.config.resolved_task_addressing().value,
            self.client.node_endpoint,
        )
        for step in self._plan():
            outcome = self._execute(step, result.identifiers)
            result.steps.append(outcome)
            if not outcome.ok:
                result.state = WorkflowState.FAILED
                result.error = outcome.error
                logger.error("Workflow failed at %r: %s", step.name, outcome.error)
                return result
            if step.reaches is not None:
                result.state = step.reaches
                logger.info("state -> %s", result.state.value)

        result.state = WorkflowState.DONE
        logger.info("Workflow finished: %s", result.identifiers)
        return result

    def close_all_deals(self) -> list[str]:
        """Finish every deal currently listed for this node."""

        closed: list[str] = []
        for deal_id in deal_ids(self.client.list_deals()):
            self.client.finish_deal(deal_id)
            logger.info("Closed deal %s", deal_id)
            closed.append(deal_id)
        return closed

    def _plan(self) -> list[_Step]:
        steps: list[_Step] = []
        if self.config.close_existing_deals:
            steps.append(_Step("Close existing deals", None, self._close_existing_deals))
        steps.extend(
            [
                _Step(
                    "Checking Worker is running",
                    WorkflowState.WORKER_VERIFIED,
                    self._check_worker,
                ),
                _Step("Create ask-plan", WorkflowState.ASK_PLAN_SUBMITTED, self._submit_ask_plan),
                _Step("Obtain ASK order ID", WorkflowState.ORDER_DISCOVERED, self._discover_order),
                _Step("Create BID order", WorkflowState.BID_SUBMITTED, self._submit_bid_order),
            ],
        )
        if self.config.deal_strategy is DealStrategy.AUTO_MATCH:
            steps.append(
                _Step("Obtain deal ID", WorkflowState.DEAL_OPENED, self._await_matched_deal),
            )
        else:
            steps.append(_Step("Open deal", WorkflowState.DEAL_OPENED, self._open_deal))
        steps.extend(
            [
                _Step("Check deal status", WorkflowState.DEAL_VERIFIED, self._verify_deal),
                _Step("Start task", WorkflowState.TASK_STARTED, self._start_task),
                _Step("Task status", WorkflowState.TASK_OBSERVED, self._task_status),
                _Step("Task stop", WorkflowState.TASK_STOPPED, self._stop_task),
            ],
        )
        return steps

    def _execute(self, step: _Step, ids: WorkflowIdentifiers) -> StepResult:
        self._on_event(StepEvent(step=step.name, phase=StepPhase.STARTED))
        started = self._clock()
        try:
            summary = step.action(ids)
        except WorkflowError as error:
            self._on_event(StepEvent(step=step.name, phase=StepPhase.FAILED, detail=str(error)))
            return StepResult(name=step.name, ok=False, error=error)
        logger.debug("%s done in %.1fs", step.name, self._clock() - started)
        self._on_event(StepEvent(step=step.name, phase=StepPhase.SUCCEEDED, detail=summary))
        return StepResult(name=step.name, ok=True, summary=summary)

    # -- steps ----------------------------------------------------------------

    def _close_existing_deals(self, _ids: WorkflowIdentifiers) -> str:
        return f"closed {len(self.close_all_deals())} deal(s)"

    def _check_worker(self, _ids: WorkflowIdentifiers) -> str:
        output = self.client.worker_status()
        return _summary_line(output) or "OK"

    def _submit_ask_plan(self, ids: WorkflowIdentifiers) -> str:
        with payload_file(self.config.ask_plan.to_payload(), "ask-plan") as path:
            output = self.client.create_ask_plan(path)
        return ids.assign("ask_plan_id", extract_marker_id(output))

    def _discover_order(self, ids: WorkflowIdentifiers) -> str:
        plan_id = ids.require("ask_plan_id")
        order_id = self._poll_ask_plan(plan_id, "orderid", what="ASK order id")
        return ids.assign("ask_order_id", order_id)

    def _submit_bid_order(self, ids: WorkflowIdentifiers) -> str:
        with payload_file(self.config.bid_order.to_payload(), "bid-order") as path:
            output = self.client.create_bid_order(path)
        return ids.assign("bid_order_id", extract_marker_id(output))

    def _open_deal(self, ids: WorkflowIdentifiers) -> str:
        output = self.client.open_deal(ids.require("ask_order_id"), ids.require("bid_order_id"))
        return ids.assign("deal_id", extract_marker_id(output))

    def _await_matched_deal(self, ids: WorkflowIdentifiers) -> str:
        deal_id = self._poll_ask_plan(ids.require("ask_plan_id"), "dealid", what="deal id")
        return ids.assign("deal_id", deal_id)

    def _verify_deal(self, ids: WorkflowIdentifiers) -> str:
        deal_id = ids.require("deal_id")
        status = load_json_object(self.client.deal_status(deal_id, as_json=True))
        actual = require_field(status, "id")
        if actual != deal_id:
            raise ConsistencyError("deal", deal_id, actual)
        return "OK"

    def _start_task(self, ids: WorkflowIdentifiers) -> str:
        deal_id = ids.require("deal_id")
        settle = self.config.resolved_settle_seconds()
        if settle > 0:
            logger.info("Waiting %.1fs for deal %s to settle", settle, deal_id)
            self._sleep(settle)
        with payload_file(self.config.task.to_payload(), "task") as path:
            output = self.client.start_task(deal_id, path)
        task_id = require_field(load_json_object(output), "id")
        return ids.assign("task_id", task_id)

    def _task_status(self, ids: WorkflowIdentifiers) -> str:
        self.client.task_status(self._task_target(ids), ids.require("task_id"))
        return "OK"

    def _stop_task(self, ids: WorkflowIdentifiers) -> str:
        self.client.stop_task(self._task_target(ids), ids.require("task_id"))
        return "OK"

    # -- helpers --------------------------------------------------------------

    def _task_target(self, ids: WorkflowIdentifiers) -> str:
        deal_id = ids.require("deal_id")
        if self.config.resolved_task_addressing() is TaskAddressing.DEAL:
            return deal_id
        worker_id = consumer_worker_id(self.client.deal_status(deal_id))
        return ids.assign("worker_id", worker_id)

    def _poll_ask_plan(self, plan_id: str, field_name: str, *, what: str) -> str:
        return poll_until_present(
            self.client.list_ask_plans,
            lambda output: ask_plan_field(output, plan_id, field_name),
            self.config.poll_policy,
            what=what,
            sleep=self._sleep,
            clock=self._clock,
        )


def _summary_line(output: str, *, limit: int = 120) -> str:
    compact = " ".join(output.split())
    if len(compact) <= limit:
        return compact
    return compact[:limit] + "..."
