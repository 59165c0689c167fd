"""Identifier extraction from marketplace CLI output."""

from __future__ import annotations

import json
import re
from typing import Any

import yaml

from sonm_lucky.errors import ParseError

_MARKER_RE = re.compile(r"^\s*ID = (?P<id>.*)$", re.MULTILINE)


def extract_marker_id(output: str) -> str:
    """Return the value of the first ``ID = <value>`` line."""

    match = _MARKER_RE.search(output)
    if match is None:
        raise ParseError(f"No 'ID = <value>' line in output: {_preview(output)!r}")
    value = match.group("id").strip()
    if not value:
        raise ParseError("Empty value in 'ID = <value>' line.")
    return value


def load_yaml_mapping(output: str) -> dict[str, Any]:
    try:
        document = yaml.safe_load(output)
    except yaml.YAMLError as error:
        raise ParseError(f"Invalid YAML output: {error}") from error
    if not isinstance(document, dict):
        raise ParseError(f"Expected YAML mapping, got {type(document).__name__}.")
    return document


def load_json_object(output: str) -> dict[str, Any]:
    try:
        document = json.loads(output)
    except json.JSONDecodeError as error:
        raise ParseError(f"Invalid JSON output: {error}") from error
    if not isinstance(document, dict):
        raise ParseError(f"Expected JSON object, got {type(document).__name__}.")
    return document


def require_field(document: dict[str, Any], key: str) -> str:
    """Top-level lookup; missing or empty values are a parse failure."""

    value = document.get(key)
    if value is None or value == "":
        raise ParseError(f"Field {key!r} is missing from output.")
    return str(value)


def ask_plan_field(output: str, plan_id: str, field: str) -> str | None:
    """Look up ``field`` of ``plan_id`` in the ask-plan listing.

    ``None`` means the field is not populated yet. An unknown plan id is an
    error, since a submitted plan must always be listed.
    """

    listing = load_yaml_mapping(output)
    if plan_id not in listing:
        raise ParseError(f"Ask-plan {plan_id!r} is not present in the listing.")
    plan = listing[plan_id]
    if plan is None:
        return None
    if not isinstance(plan, dict):
        raise ParseError(f"Ask-plan {plan_id!r} entry is not a mapping.")
    value = plan.get(field)
    if value is None or value == "":
        return None
    return str(value)


def consumer_worker_id(output: str) -> str:
    """Convert the deal's ``Consumer ID`` into a hex worker identifier."""

    status = load_yaml_mapping(output)
    raw = status.get("Consumer ID")
    if raw is None or raw == "":
        raise ParseError("Field 'Consumer ID' is missing from deal status.")
    if isinstance(raw, bool):
        raise ParseError(f"Invalid 'Consumer ID' value: {raw!r}")
    if isinstance(raw, int):
        number = raw
    else:
        try:
            number = int(str(raw).strip(), 0)
        except ValueError as error:
            raise ParseError(f"Invalid 'Consumer ID' value: {raw!r}") from error
    return format(number, "x")


def deal_ids(output: str) -> list[str]:
    """Return deal ids from ``deals list --out=json``, first-seen order, no repeats."""

    document = load_json_object(output)
    deals = document.get("deals") or []
    if not isinstance(deals, list):
        raise ParseError("Field 'deals' is not a list.")

    seen: set[str] = set()
    ordered: list[str] = []
    for deal in deals:
        if not isinstance(deal, dict):
            raise ParseError(f"Deal entry is not an object: {deal!r}")
        deal_id = require_field(deal, "id")
        if deal_id in seen:
            continue
        seen.add(deal_id)
        ordered.append(deal_id)
    return ordered


def _preview(value: str, *, limit: int = 240) -> str:
    compact = value.strip().replace("\n", " ")
    if len(compact) <= limit:
        return compact
    return compact[:limit] + "..."
