"""Audit trail of MCP tool calls.

The server appends one JSON line per tool call to ``activity.jsonl`` in the
stacksherpa home (or wherever STACKSHERPA_ACTIVITY_LOG points), so a user can
check which recommendations and profile edits their agent asked for.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterator
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from stacksherpa.config import DEFAULT_HOME

logger = logging.getLogger(__name__)

RESULT_PREVIEW_LIMIT = 500
ACTIVITY_FILENAME = "activity.jsonl"


@dataclass
class ToolCall:
    tool_name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    result_preview: str = ""
    error: str | None = None
    duration_ms: int = 0
    timestamp: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ToolCall:
        return cls(
            tool_name=str(data.get("tool_name", "")),
            arguments=data.get("arguments") or {},
            result_preview=data.get("result_preview") or "",
            error=data.get("error"),
            duration_ms=int(data.get("duration_ms") or 0),
            timestamp=str(data.get("timestamp", "")),
        )


def resolve_log_path() -> Path:
    override = os.getenv("STACKSHERPA_ACTIVITY_LOG")
    if override:
        return Path(override).expanduser()
    home = os.getenv("STACKSHERPA_HOME")
    base = Path(home).expanduser() if home else DEFAULT_HOME
    return base / ACTIVITY_FILENAME


def log_tool_call(
    tool_name: str,
    arguments: dict,
    result_text: str,
    error: str | None,
    duration_ms: int,
    log_path: Path | None = None,
) -> None:
    """Record one tool call. Write failures are logged at debug level only."""
    call = ToolCall(
        tool_name=tool_name,
        arguments=arguments,
        result_preview=(result_text or "")[:RESULT_PREVIEW_LIMIT],
        error=error,
        duration_ms=duration_ms,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
    path = log_path or resolve_log_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(asdict(call), default=str) + "\n")
    except OSError as e:
        logger.debug(f"Skipping activity entry for {tool_name}, cannot write {path}: {e}")


def _iter_calls(path: Path) -> Iterator[ToolCall]:
    with path.open(encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            if not line.strip():
                continue
            try:
                data = json.loads(line)
            except json.JSONDecodeError:
                logger.debug(f"{path}:{lineno}: unreadable activity entry")
                continue
            if isinstance(data, dict):
                yield ToolCall.from_dict(data)


def read_activity_log(
    limit: int = 20,
    tool_name: str | None = None,
    errors_only: bool = False,
    log_path: Path | None = None,
) -> list[ToolCall]:
    """Newest ``limit`` tool calls, optionally for one tool or failures only."""
    path = log_path or resolve_log_path()
    if not path.exists():
        return []

    calls = [
        call for call in _iter_calls(path)
        if (not tool_name or call.tool_name == tool_name)
        and (not errors_only or not call.ok)
    ]
    return calls[::-1][:limit]
