from __future__ import annotations

import json
from typing import Any, Optional

from ..models.report import Report

ALWAYS_KEPT = ("target", "timestamp")


def _prune(value: Any) -> Any:
    """Drop empty strings, zeros, false, null and empty containers, recursively."""
    if isinstance(value, dict):
        pruned = {k: _prune(v) for k, v in value.items()}
        return {k: v for k, v in pruned.items() if v not in ("", 0, False, None, [], {})}
    if isinstance(value, list):
        return [_prune(v) for v in value]
    return value


def report_payload(report: Report) -> dict:
    payload = report.model_dump(mode="json")
    body = _prune({k: v for k, v in payload.items() if k not in ALWAYS_KEPT})
    return {**{k: payload[k] for k in ALWAYS_KEPT}, **body}


def build_json(report: Optional[Report], indent: bool = True) -> str:
    if report is None:
        payload: dict = {"error": "report cannot be nil"}
    else:
        payload = report_payload(report)
    return json.dumps(payload, indent=2 if indent else None, ensure_ascii=False)
