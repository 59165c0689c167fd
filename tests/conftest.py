"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import pytest

from sonm_lucky.client import MarketClient
from sonm_lucky.runner import CommandOutput

CLI = "/opt/sonm/sonmcli"
NODE = "localhost:15030"

CONSUMER_HEX = "8125721c2413d99a33e351e1f6bb4e56b6b633fd"

ASK_PLAN_LIST_PENDING = "plan-1:\n  orderid: ''\n  dealid: ''\n"
ASK_PLAN_LIST_ORDERED = "plan-1:\n  orderid: '101'\n  dealid: ''\n"
ASK_PLAN_LIST_MATCHED = "plan-1:\n  orderid: '101'\n  dealid: '55'\n"


def ok(output: str) -> CommandOutput:
    return CommandOutput(output=output, exit_status=0)


class FakeCommandRunner:
    """Scripted runner keyed by subcommand prefix; lists are consumed in order."""

    def __init__(self, responses: dict[tuple[str, ...], CommandOutput | list[CommandOutput]]):
        self.responses = {
            key: list(value) if isinstance(value, list) else value
            for key, value in responses.items()
        }
        self.calls: list[list[str]] = []
        self.payloads: dict[str, str] = {}

    def run(self, argv: Sequence[str]) -> CommandOutput:
        args = list(argv)
        self.calls.append(args)
        for arg in args:
            if arg.endswith(".json") and Path(arg).exists():
                self.payloads[arg] = Path(arg).read_text("utf-8")

        subcommand = tuple(args[2:])
        matches = [key for key in self.responses if subcommand[: len(key)] == key]
        if not matches:
            return CommandOutput(output=f"unexpected command: {args}", exit_status=99)
        response = self.responses[max(matches, key=len)]
        if isinstance(response, list):
            return response.pop(0) if len(response) > 1 else response[0]
        return response

    def subcommands(self) -> list[tuple[str, ...]]:
        return [tuple(call[2:4]) for call in self.calls]


def happy_responses() -> dict[tuple[str, ...], CommandOutput | list[CommandOutput]]:
    return {
        ("worker", "status"): ok("Uptime: 42s\nVersion: 0.4\n"),
        ("worker", "ask-plan", "create"): ok("Ask plan created\nID = plan-1\n"),
        ("worker", "ask-plan", "list"): [
            ok(ASK_PLAN_LIST_PENDING),
            ok(ASK_PLAN_LIST_ORDERED),
        ],
        ("market", "create"): ok("Order created\nID = 202\n"),
        ("deals", "open"): ok("Deal opened\n  ID = 55\n"),
        ("deals", "status", "55", "--out=json"): ok('{"id": "55", "status": 1}'),
        ("deals", "status", "55"): ok(f"ID: 55\nConsumer ID: 0x{CONSUMER_HEX.upper()}\n"),
        ("deals", "list", "--out=json"): ok('{"deals": []}'),
        ("tasks", "start"): ok('{"id": "task-9"}'),
        ("tasks", "status"): ok("Status: RUNNING\n"),
        ("tasks", "stop"): ok("Task stopped\n"),
    }


@pytest.fixture()
def fake_runner() -> FakeCommandRunner:
    return FakeCommandRunner(happy_responses())


@pytest.fixture()
def client(fake_runner: FakeCommandRunner) -> MarketClient:
    return MarketClient(runner=fake_runner, cli_path=CLI, node_endpoint=NODE)


@pytest.fixture()
def sleeps() -> list[float]:
    return []


@pytest.fixture()
def responses() -> dict[tuple[str, ...], CommandOutput | list[CommandOutput]]:
    """Happy-path responses, fresh per test so they can be overridden."""
    return happy_responses()


@pytest.fixture()
def make_runner() -> type[FakeCommandRunner]:
    return FakeCommandRunner
