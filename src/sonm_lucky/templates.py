"""Payload documents submitted to the marketplace CLI."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from sonm_lucky.errors import ParseError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class NetworkSpec:
    """Network flags shared by ask-plans and bid orders."""

    overlay: bool = True
    outbound: bool = True
    incoming: bool = False
    throughput_in: str | None = None
    throughput_out: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if self.throughput_in is not None:
            payload["throughputin"] = self.throughput_in
        if self.throughput_out is not None:
            payload["throughputout"] = self.throughput_out
        payload["overlay"] = self.overlay
        payload["outbound"] = self.outbound
        payload["incoming"] = self.incoming
        return payload


@dataclass(slots=True)
class AskPlanSpec:
    """Worker-side compute offer."""

    duration: str = "1h"
    price: str = "1000 SNM/h"
    cpu_cores: float = 0.01
    ram_size: str = "5MB"
    gpu_indexes: list[int] = field(default_factory=list)
    network: NetworkSpec = field(
        default_factory=lambda: NetworkSpec(
            overlay=True,
            outbound=True,
            incoming=False,
            throughput_in="0 Mbit/s",
            throughput_out="0 Mbit/s",
        ),
    )

    def to_payload(self) -> dict[str, Any]:
        return {
            "duration": self.duration,
            "price": self.price,
            "resources": {
                "cpu": {"cores": self.cpu_cores},
                "ram": {"size": self.ram_size},
                "storage": {},
                "gpu": {"indexes": list(self.gpu_indexes)},
                "network": self.network.to_payload(),
            },
        }


@dataclass(slots=True)
class BidOrderSpec:
    """Consumer-side compute request with a fixed benchmark vector."""

    duration: str = "1h"
    price: str = "1000 SNM/h"
    ram_size: int = 5_000_000
    cpu_cores: int = 4
    network: NetworkSpec = field(
        default_factory=lambda: NetworkSpec(overlay=True, outbound=False, incoming=False),
    )

    def to_payload(self) -> dict[str, Any]:
        return {
            "duration": self.duration,
            "price": self.price,
            "resources": {
                "network": self.network.to_payload(),
                "benchmarks": {
                    "ram-size": self.ram_size,
                    "cpu-cores": self.cpu_cores,
                    "cpu-sysbench-single": 0,
                    "cpu-sysbench-multi": 0,
                    "net-download": 0,
                    "net-upload": 0,
                    "gpu-count": 0,
                    "gpu-mem": 0,
                    "gpu-eth-hashrate": 0,
                },
            },
        }


@dataclass(slots=True)
class TaskSpec:
    """Container workload started inside a deal."""

    image: str = "httpd:latest"
    commit_on_stop: bool = True
    env: dict[str, str] = field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        return {
            "task": {
                "container": {
                    "commit_on_stop": self.commit_on_stop,
                    "name": self.image,
                    "env": dict(self.env),
                },
            },
        }


@dataclass(slots=True)
class LoadedTaskSpec:
    """Task payload read verbatim from a declarative YAML file."""

    source_path: Path
    document: dict[str, Any]

    def to_payload(self) -> dict[str, Any]:
        return self.document


def load_task_spec(path: Path) -> LoadedTaskSpec:
    try:
        text = path.read_text("utf-8")
    except OSError as error:
        raise ParseError(f"Cannot read task spec {path}: {error}") from error
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as error:
        raise ParseError(f"Invalid YAML in task spec {path}: {error}") from error
    if not isinstance(document, dict):
        raise ParseError(f"Task spec {path} must be a YAML mapping.")
    return LoadedTaskSpec(source_path=path, document=document)


@contextmanager
def payload_file(payload: dict[str, Any], name: str) -> Iterator[Path]:
    """Write payload as JSON into a fresh temp file, removed on every exit path."""

    try:
        text = json.dumps(payload)
    except (TypeError, ValueError) as error:
        raise ParseError(f"Cannot encode {name} payload as JSON: {error}") from error

    fd, raw_path = tempfile.mkstemp(prefix=f"{name}-", suffix=".json")
    path = Path(raw_path)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
        logger.debug("payload written: %s", path)
        yield path
    finally:
        path.unlink(missing_ok=True)
