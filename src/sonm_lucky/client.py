"""Typed wrapper over the marketplace CLI command surface."""

from __future__ import annotations

from pathlib import Path

from sonm_lucky.runner import CommandRunner, execute


class MarketClient:
    """Issue one marketplace CLI subcommand per call against a fixed node."""

    def __init__(self, *, runner: CommandRunner, cli_path: str, node_endpoint: str) -> None:
        self.runner = runner
        self.cli_path = cli_path
        self.node_endpoint = node_endpoint

    def argv(self, *args: str) -> list[str]:
        return [self.cli_path, f"--node={self.node_endpoint}", *args]

    def _call(self, *args: str) -> str:
        return execute(self.runner, self.argv(*args)).output

    def worker_status(self) -> str:
        return self._call("worker", "status")

    def create_ask_plan(self, payload_path: Path) -> str:
        return self._call("worker", "ask-plan", "create", str(payload_path))

    def list_ask_plans(self) -> str:
        return self._call("worker", "ask-plan", "list")

    def create_bid_order(self, payload_path: Path) -> str:
        return self._call("market", "create", str(payload_path))

    def open_deal(self, ask_order_id: str, bid_order_id: str) -> str:
        return self._call("deals", "open", ask_order_id, bid_order_id)

    def deal_status(self, deal_id: str, *, as_json: bool = False) -> str:
        if as_json:
            return self._call("deals", "status", deal_id, "--out=json")
        return self._call("deals", "status", deal_id)

    def list_deals(self) -> str:
        return self._call("deals", "list", "--out=json")

    def finish_deal(self, deal_id: str) -> str:
        return self._call("deals", "finish", deal_id)

    def start_task(self, deal_id: str, payload_path: Path) -> str:
        return self._call("tasks", "start", deal_id, str(payload_path), "--out=json")

    def task_status(self, target_id: str, task_id: str) -> str:
        return self._call("tasks", "status", target_id, task_id)

    def stop_task(self, target_id: str, task_id: str) -> str:
        return self._call("tasks", "stop", target_id, task_id)
