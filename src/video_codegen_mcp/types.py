"""Shared type aliases and helpers for tool parameters."""

from __future__ import annotations

import json
from typing import Annotated, Literal

from pydantic import Field


def coerce_json_param(value: str | dict | list | None, expected_type: type) -> dict | list | None:
    """Parse MCP JSON-RPC string params back to dict/list.

    MCP clients may send object params as JSON strings, which pydantic
    would otherwise reject.

    Args:
        value: The parameter value (possibly a JSON string).
        expected_type: Expected Python type (``dict`` or ``list``).

    Returns:
        Parsed value if coercion succeeded, original value otherwise.
    """
    if not isinstance(value, str):
        return value
    try:
        parsed = json.loads(value)
        if isinstance(parsed, expected_type):
            return parsed
    except (json.JSONDecodeError, TypeError):
        pass
    return value

# ── Literal enums ────────────────────────────────────────────────────────────

AspectRatio = Literal["9:16", "16:9", "1:1"]

# ── Annotated aliases ────────────────────────────────────────────────────────

JobId = Annotated[str, Field(min_length=1, description="Video job identifier")]
ScriptId = Annotated[str, Field(min_length=1, description="Stored script identifier")]
TargetDuration = Annotated[float, Field(gt=0, description="Total video length in seconds")]
CompositionCode = Annotated[str, Field(min_length=1, description="Composition function body to check")]
