from __future__ import annotations

from pathlib import Path

import allure
import pytest

from sonm_lucky.config import PollSettings, Settings, WorkflowSettings

pytestmark = [
    allure.epic("Deal Workflow"),
    allure.feature("Configuration"),
]


def test_defaults_target_local_node() -> None:
    settings = Settings()
    settings.validate()
    assert settings.node_endpoint == "localhost:15030"
    assert settings.cli_path is None
    assert settings.poll.interval_seconds == 1.0
    assert settings.workflow.deal_strategy == "explicit"


def test_from_env_reads_overrides(monkeypatch) -> None:
    monkeypatch.setenv("SONM_LUCKY_NODE", "10.0.0.5:15031")
    monkeypatch.setenv("SONM_LUCKY_CLI_PATH", "/usr/local/bin/sonmcli")
    monkeypatch.setenv("SONM_LUCKY_DEAL_STRATEGY", "AUTO-MATCH")
    monkeypatch.setenv("SONM_LUCKY_TASK_FILE", "tasks/httpd.yaml")
    monkeypatch.setenv("SONM_LUCKY_POLL_INTERVAL_SECONDS", "0.5")
    monkeypatch.setenv("SONM_LUCKY_POLL_MAX_ATTEMPTS", "30")
    monkeypatch.setenv("SONM_LUCKY_POLL_TIMEOUT_SECONDS", "0")
    monkeypatch.setenv("SONM_LUCKY_DEAL_SETTLE_SECONDS", "2.5")
    monkeypatch.setenv("SONM_LUCKY_CLOSE_EXISTING_DEALS", "yes")
    monkeypatch.setenv("SONM_LUCKY_PRICE", "1 SNM/h")

    settings = Settings.from_env()
    settings.validate()

    assert settings.node_endpoint == "10.0.0.5:15031"
    assert settings.cli_path == "/usr/local/bin/sonmcli"
    assert settings.workflow.deal_strategy == "auto-match"
    assert settings.workflow.task_file == Path("tasks/httpd.yaml")
    assert settings.workflow.deal_settle_seconds == 2.5
    assert settings.workflow.close_existing_deals is True
    assert settings.workflow.price == "1 SNM/h"
    assert settings.poll == PollSettings(interval_seconds=0.5, max_attempts=30, timeout_seconds=0)


def test_from_env_rejects_invalid_boolean(monkeypatch) -> None:
    monkeypatch.setenv("SONM_LUCKY_CLOSE_EXISTING_DEALS", "maybe")
    with pytest.raises(ValueError, match="Invalid boolean value"):
        Settings.from_env()


@pytest.mark.parametrize("endpoint", ["localhost", ":15030", "localhost:port", "host:70000"])
def test_validate_rejects_malformed_node_endpoint(endpoint: str) -> None:
    with pytest.raises(ValueError, match="Invalid node endpoint"):
        Settings(node_endpoint=endpoint).validate()


def test_validate_rejects_unknown_strategy() -> None:
    settings = Settings(workflow=WorkflowSettings(deal_strategy="lottery"))
    with pytest.raises(ValueError, match="Unsupported deal strategy"):
        settings.validate()


@pytest.mark.parametrize(
    ("poll", "message"),
    [
        (PollSettings(interval_seconds=0), "POLL_INTERVAL_SECONDS"),
        (PollSettings(max_attempts=-1), "POLL_MAX_ATTEMPTS"),
        (PollSettings(timeout_seconds=-5), "POLL_TIMEOUT_SECONDS"),
    ],
)
def test_validate_rejects_bad_poll_settings(poll: PollSettings, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        Settings(poll=poll).validate()


def test_validate_rejects_blank_price() -> None:
    settings = Settings(workflow=WorkflowSettings(price="  "))
    with pytest.raises(ValueError, match="SONM_LUCKY_PRICE"):
        settings.validate()
