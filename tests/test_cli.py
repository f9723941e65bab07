"""Tests for the stacksherpa CLI."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from stacksherpa.cli import app
from stacksherpa.storage.ledger import DecisionLedger

runner = CliRunner()

PROVIDERS = [
    {
        "name": "Resend",
        "category": "email",
        "package": "resend",
        "compliance": ["SOC2"],
        "bestFor": ["startup"],
        "strengths": ["dx"],
        "hasFreeTier": True,
    },
    {
        "name": "Postmark",
        "category": "email",
        "compliance": ["SOC2"],
        "bestFor": ["growth"],
        "strengths": ["reliability"],
    },
]


@pytest.fixture
def env(monkeypatch, home_dir: Path, project_dir: Path, tmp_path: Path) -> Path:
    monkeypatch.setenv("STACKSHERPA_HOME", str(home_dir))
    monkeypatch.setenv("STACKSHERPA_PROJECT_DIR", str(project_dir))
    monkeypatch.setenv("STACKSHERPA_ACTIVITY_LOG", str(tmp_path / "activity.jsonl"))
    monkeypatch.delenv("STACKSHERPA_CATALOG_PATH", raising=False)
    monkeypatch.delenv("STACKSHERPA_LOG_LEVEL", raising=False)
    return project_dir


@pytest.fixture
def imported(env: Path, tmp_path: Path) -> Path:
    path = tmp_path / "providers.json"
    path.write_text(json.dumps(PROVIDERS))
    result = runner.invoke(app, ["catalog-import", str(path)])
    assert result.exit_code == 0, result.output
    return env


class TestCatalogCommands:
    def test_import(self, env: Path, tmp_path: Path):
        path = tmp_path / "providers.json"
        path.write_text(json.dumps(PROVIDERS))
        result = runner.invoke(app, ["catalog-import", str(path)])
        assert result.exit_code == 0
        assert "Imported 2 provider(s)" in result.output

    def test_import_bad_file(self, env: Path, tmp_path: Path):
        path = tmp_path / "providers.json"
        path.write_text("{")
        result = runner.invoke(app, ["catalog-import", str(path)])
        assert result.exit_code == 1

    def test_categories_empty(self, env: Path):
        result = runner.invoke(app, ["categories"])
        assert result.exit_code == 0
        assert "Catalog is empty" in result.output

    def test_categories(self, imported: Path):
        result = runner.invoke(app, ["categories"])
        assert "email: 2" in result.output

    def test_providers_alias(self, imported: Path):
        result = runner.invoke(app, ["providers", "mail"])
        assert result.exit_code == 0
        assert "Resend" in result.output
        assert "Postmark" in result.output

    def test_providers_json(self, imported: Path):
        result = runner.invoke(app, ["providers", "email", "--format", "json"])
        names = [p["name"] for p in json.loads(result.stdout)]
        assert names == ["Postmark", "Resend"]

    def test_stats(self, imported: Path):
        result = runner.invoke(app, ["stats"])
        assert result.exit_code == 0
        assert "Providers:   2 (2 active)" in result.output
        # neither fixture provider carries a verification date
        assert "Resend (email): never" in result.output

    def test_provider_missing(self, imported: Path):
        result = runner.invoke(app, ["provider", "nope"])
        assert result.exit_code == 1


class TestRecommend:
    def test_text(self, imported: Path):
        runner.invoke(app, ["profile", "--set", '{"project.scale": "startup"}'])
        result = runner.invoke(app, ["recommend", "email"])
        assert result.exit_code == 0
        assert "Recommended email provider: Resend" in result.output

    def test_json(self, imported: Path):
        result = runner.invoke(app, ["recommend", "email", "--format", "json"])
        data = json.loads(result.stdout)
        assert data["status"] == "recommended"

    def test_no_candidates(self, imported: Path):
        result = runner.invoke(app, ["recommend", "sms"])
        assert result.exit_code == 0
        assert "No providers found for category 'sms'" in result.output


class TestProfile:
    def test_set_and_show(self, env: Path):
        result = runner.invoke(app, ["profile", "--set", '{"project.scale": "startup"}'])
        assert result.exit_code == 0
        result = runner.invoke(app, ["profile"])
        assert "Scale: startup" in result.output

    def test_gaps_for_category(self, env: Path):
        result = runner.invoke(app, ["profile", "--category", "payments", "--format", "json"])
        data = json.loads(result.stdout)
        assert {g["field"] for g in data["gaps"]} == {"constraints.compliance", "project.regions"}

    def test_invalid_json(self, env: Path):
        result = runner.invoke(app, ["profile", "--set", "not json"])
        assert result.exit_code == 1

    def test_non_object_json(self, env: Path):
        result = runner.invoke(app, ["profile", "--append", "[1, 2]"])
        assert result.exit_code == 1

    def test_explicit_project(self, env: Path, tmp_path: Path):
        other = tmp_path / "other"
        other.mkdir()
        runner.invoke(app, ["profile", "--project", str(other), "--set", '{"project.scale": "hobby"}'])
        assert (other / ".stacksherpa" / "profile.json").exists()
        assert not (env / ".stacksherpa" / "profile.json").exists()


class TestDecisions:
    def test_decide_and_report(self, env: Path, registry):
        result = runner.invoke(
            app, ["decide", "Resend", "mail", "--outcome", "positive", "--context", "mvp"]
        )
        assert result.exit_code == 0
        assert "Recorded positive decision for Resend" in result.output

        decisions = DecisionLedger(registry).load_all(env)
        assert decisions[0].category == "email"
        assert decisions[0].recorded_by == "user"

        result = runner.invoke(
            app, ["report", decisions[0].id, "--failure", "--stage", "runtime", "--notes", "timeouts"]
        )
        assert result.exit_code == 0
        updated = DecisionLedger(registry).get(env, decisions[0].id)
        assert updated.outcome == "negative"
        assert updated.notes == "timeouts; outcome: failure; stage: runtime"

    def test_decide_invalid_outcome(self, env: Path):
        result = runner.invoke(app, ["decide", "Resend", "email", "--outcome", "great"])
        assert result.exit_code == 1

    def test_report_unknown(self, env: Path):
        result = runner.invoke(app, ["report", "missing", "--success"])
        assert result.exit_code == 1

    def test_patterns(self, env: Path):
        runner.invoke(app, ["decide", "Resend", "email", "--outcome", "positive"])
        result = runner.invoke(app, ["patterns", "--category", "email"])
        assert result.exit_code == 0
        assert "Prefers Resend for email" in result.output

    def test_patterns_empty(self, env: Path):
        result = runner.invoke(app, ["patterns"])
        assert "No patterns yet" in result.output


class TestProjects:
    def test_list_update_remove(self, env: Path):
        runner.invoke(app, ["decide", "Resend", "email"])
        result = runner.invoke(app, ["projects", "list"])
        assert "webapp" in result.output
        assert "shared" in result.output

        result = runner.invoke(app, ["projects", "update", str(env), "--no-share"])
        assert result.exit_code == 0
        assert "private" in runner.invoke(app, ["projects", "list"]).output

        assert runner.invoke(app, ["projects", "remove", str(env)]).exit_code == 0
        assert runner.invoke(app, ["projects", "remove", str(env)]).exit_code == 1

    def test_prune(self, env: Path):
        result = runner.invoke(app, ["projects", "prune"])
        assert "Pruned 0 project(s)" in result.output


class TestConfigAndActivity:
    def test_missing_project_dir(self, env: Path, monkeypatch, tmp_path: Path):
        monkeypatch.setenv("STACKSHERPA_PROJECT_DIR", str(tmp_path / "missing"))
        result = runner.invoke(app, ["categories"])
        assert result.exit_code == 1
        assert "Config error" in result.output

    def test_activity_empty(self, env: Path):
        result = runner.invoke(app, ["activity"])
        assert "No activity recorded yet" in result.output

    def test_activity(self, env: Path, tmp_path: Path):
        from stacksherpa.activity import log_tool_call

        log_tool_call("get_profile", {}, "ok", None, 12, log_path=tmp_path / "activity.jsonl")
        result = runner.invoke(app, ["activity"])
        assert "get_profile" in result.output
        assert "12ms" in result.output

    def test_activity_errors_only(self, env: Path, tmp_path: Path):
        from stacksherpa.activity import log_tool_call

        log_path = tmp_path / "activity.jsonl"
        log_tool_call("get_profile", {}, "ok", None, 3, log_path=log_path)
        log_tool_call("record_decision", {}, "", "Invalid outcome: great", 4, log_path=log_path)
        result = runner.invoke(app, ["activity", "--errors"])
        assert "record_decision" in result.output
        assert "error" in result.output
        assert "get_profile" not in result.output
