"""Tests for stacksherpa.activity: logging and reading."""

from __future__ import annotations

import json
import os
from pathlib import Path
from unittest.mock import patch

from stacksherpa.activity import log_tool_call, read_activity_log, resolve_log_path


class TestResolveLogPath:
    def test_explicit_log_path(self, tmp_path: Path):
        target = tmp_path / "custom.jsonl"
        with patch.dict(os.environ, {"STACKSHERPA_ACTIVITY_LOG": str(target)}):
            assert resolve_log_path() == target

    def test_home_directory(self, tmp_path: Path):
        env = {"STACKSHERPA_HOME": str(tmp_path)}
        with patch.dict(os.environ, env):
            os.environ.pop("STACKSHERPA_ACTIVITY_LOG", None)
            assert resolve_log_path() == tmp_path / "activity.jsonl"


class TestLogToolCall:
    def test_creates_log_file(self, tmp_path: Path):
        log_path = tmp_path / "activity.jsonl"
        with patch.dict(os.environ, {"STACKSHERPA_ACTIVITY_LOG": str(log_path)}):
            log_tool_call("recommend_provider", {"category": "email"}, "answer", None, 100)
        assert log_path.exists()
        entry = json.loads(log_path.read_text().strip())
        assert entry["tool_name"] == "recommend_provider"
        assert entry["arguments"]["category"] == "email"
        assert entry["duration_ms"] == 100
        assert entry["error"] is None

    def test_logs_error(self, tmp_path: Path):
        log_path = tmp_path / "activity.jsonl"
        log_tool_call("bad_tool", {}, "", "something broke", 50, log_path=log_path)
        entry = json.loads(log_path.read_text().strip())
        assert entry["error"] == "something broke"

    def test_truncates_result_preview(self, tmp_path: Path):
        log_path = tmp_path / "activity.jsonl"
        log_tool_call("tool", {}, "x" * 1000, None, 10, log_path=log_path)
        entry = json.loads(log_path.read_text().strip())
        assert len(entry["result_preview"]) == 500

    def test_unwritable_path_does_not_raise(self, tmp_path: Path):
        blocker = tmp_path / "file"
        blocker.write_text("")
        log_tool_call("tool", {}, "ok", None, 1, log_path=blocker / "activity.jsonl")


class TestReadActivityLog:
    def test_read_empty(self, tmp_path: Path):
        assert read_activity_log(log_path=tmp_path / "missing.jsonl") == []

    def test_most_recent_first(self, tmp_path: Path):
        log_path = tmp_path / "activity.jsonl"
        for i in range(5):
            log_tool_call("get_profile", {}, f"result {i}", None, i, log_path=log_path)
        calls = read_activity_log(limit=3, log_path=log_path)
        assert [c.result_preview for c in calls] == ["result 4", "result 3", "result 2"]

    def test_filter_by_tool(self, tmp_path: Path):
        log_path = tmp_path / "activity.jsonl"
        log_tool_call("get_profile", {}, "a", None, 1, log_path=log_path)
        log_tool_call("record_decision", {}, "b", None, 1, log_path=log_path)
        calls = read_activity_log(tool_name="record_decision", log_path=log_path)
        assert [c.tool_name for c in calls] == ["record_decision"]

    def test_errors_only(self, tmp_path: Path):
        log_path = tmp_path / "activity.jsonl"
        log_tool_call("get_profile", {}, "a", None, 1, log_path=log_path)
        log_tool_call("record_decision", {}, "", "Invalid outcome", 1, log_path=log_path)
        calls = read_activity_log(errors_only=True, log_path=log_path)
        assert [(c.tool_name, c.ok) for c in calls] == [("record_decision", False)]

    def test_skips_corrupt_lines(self, tmp_path: Path):
        log_path = tmp_path / "activity.jsonl"
        log_tool_call("get_profile", {}, "a", None, 1, log_path=log_path)
        with open(log_path, "a") as f:
            f.write("not json\n\n[1, 2]\n")
        assert len(read_activity_log(log_path=log_path)) == 1
