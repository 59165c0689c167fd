"""Locate the platform-specific marketplace CLI executable."""

from __future__ import annotations

import os
import platform
import shutil
from collections.abc import Callable
from pathlib import Path

_GO_TARGET_DIR = Path("src/github.com/sonm-io/core/target")


def cli_executable_name(*, system: str | None = None, machine: str | None = None) -> str:
    os_name = (system or platform.system()).lower()
    arch = machine or platform.machine()
    return f"sonmcli_{os_name}_{arch}"


def detect_cli_path(
    explicit: str | None = None,
    *,
    env: dict[str, str] | None = None,
    which: Callable[[str], str | None] = shutil.which,
    system: str | None = None,
    machine: str | None = None,
) -> str:
    """Resolve the CLI path: explicit value, PATH lookup, then the Go build tree."""

    if explicit:
        return explicit

    filename = cli_executable_name(system=system, machine=machine)
    found = which(filename)
    if found is not None:
        return found

    environ = os.environ if env is None else env
    gopath = environ.get("GOPATH")
    if gopath:
        return str(Path(gopath) / _GO_TARGET_DIR / filename)
    home = environ.get("HOME") or str(Path.home())
    return str(Path(home) / "go" / _GO_TARGET_DIR / filename)
