"""CLI entrypoint for sonm-lucky."""

import logging
from pathlib import Path

import rich_click as click

from sonm_lucky import __version__
from sonm_lucky.config import DEAL_STRATEGY_CHOICES
from sonm_lucky.controllers import (
    STATUS_FAIL,
    STATUS_OK,
    CloseDealsCommand,
    LuckyCliController,
    RunWorkflowCommand,
)

click.rich_click.USE_MARKDOWN = True
LUCKY_CONTROLLER = LuckyCliController()

_STATUS_COLORS = {STATUS_OK: "green", STATUS_FAIL: "red"}


@click.group()
@click.version_option(version=__version__, prog_name="sonm-lucky")
def sonm_lucky() -> None:
    """SONM Lucky: end-to-end deal workflow against a marketplace node."""


@sonm_lucky.command("run")
@click.option("--node", default=None, help="Node endpoint as IP:PORT. [default: localhost:15030]")
@click.option("--cli-path", default=None, help="Path to the sonmcli executable.")
@click.option(
    "--strategy",
    "deal_strategy",
    type=click.Choice(DEAL_STRATEGY_CHOICES, case_sensitive=False),
    default=None,
    help="Deal formation: open the deal explicitly or wait for auto-matching.",
)
@click.option(
    "--task-file",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="YAML task spec to start inside the deal.",
)
@click.option(
    "--poll-interval",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Seconds between ask-plan listing polls.",
)
@click.option(
    "--poll-max-attempts",
    type=click.IntRange(min=0),
    default=None,
    help="Give up polling after this many attempts (0 = no limit).",
)
@click.option(
    "--poll-timeout",
    type=click.FloatRange(min=0),
    default=None,
    help="Give up polling after this many seconds (0 = no limit).",
)
@click.option(
    "--settle-seconds",
    type=click.FloatRange(min=0),
    default=None,
    help="Pause between deal verification and task start.",
)
@click.option(
    "--close-existing-deals/--no-close-existing-deals",
    default=None,
    help="Finish all existing deals before starting.",
)
@click.option(
    "--price",
    default=None,
    help="Price for the ask-plan and the BID order, e.g. '1 SNM/h'. [default: 1000 SNM/h]",
)
@click.option("--verbose", is_flag=True, default=False, help="Log CLI invocations to stderr.")
def run_workflow(  # noqa: PLR0913
    node: str | None,
    cli_path: str | None,
    deal_strategy: str | None,
    task_file: Path | None,
    poll_interval: float | None,
    poll_max_attempts: int | None,
    poll_timeout: float | None,
    settle_seconds: float | None,
    close_existing_deals: bool | None,
    price: str | None,
    verbose: bool,
) -> None:
    """Create an ask-plan and a bid, form a deal, then start and stop a task."""

    _configure_logging(verbose)
    result = LUCKY_CONTROLLER.run_workflow(
        RunWorkflowCommand(
            node=node,
            cli_path=cli_path,
            deal_strategy=deal_strategy,
            task_file=task_file,
            poll_interval_seconds=poll_interval,
            poll_max_attempts=poll_max_attempts,
            poll_timeout_seconds=poll_timeout,
            deal_settle_seconds=settle_seconds,
            close_existing_deals=close_existing_deals,
            price=price,
        ),
        _emit_status,
    )
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("Workflow failed.")


@sonm_lucky.command("close-deals")
@click.option("--node", default=None, help="Node endpoint as IP:PORT. [default: localhost:15030]")
@click.option("--cli-path", default=None, help="Path to the sonmcli executable.")
@click.option("--verbose", is_flag=True, default=False, help="Log CLI invocations to stderr.")
def close_deals(node: str | None, cli_path: str | None, verbose: bool) -> None:
    """Finish every deal currently open on the node."""

    _configure_logging(verbose)
    result = LUCKY_CONTROLLER.close_deals(
        CloseDealsCommand(node=node, cli_path=cli_path),
        _emit_status,
    )
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("Deal cleanup failed.")


def _configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


def _emit_status(line: str) -> None:
    for label, color in _STATUS_COLORS.items():
        if line.startswith(label):
            click.echo(click.style(label, fg=color) + line[len(label) :])
            return
    click.echo(line)


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    sonm_lucky()
