"""Tests for stacksherpa.storage.ledger."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from conftest import make_decision
from stacksherpa.errors import LedgerError
from stacksherpa.storage.ledger import (
    DecisionLedger,
    to_experience_summary,
    truncate_notes,
)
from stacksherpa.storage.projects import ProjectRegistry


class TestRecord:
    def test_record_persists(self, ledger: DecisionLedger, project_dir: Path):
        decision = ledger.record(project_dir, "Resend", "email", "positive", context="mvp")
        data = json.loads(DecisionLedger.path_for(project_dir).read_text())
        assert data["schemaVersion"] == "1.0.0"
        assert data["decisions"][0]["id"] == decision.id
        assert data["decisions"][0]["context"] == "mvp"
        assert decision.recorded_by == "agent"

    def test_invalid_outcome(self, ledger: DecisionLedger, project_dir: Path):
        with pytest.raises(ValueError, match="Invalid outcome"):
            ledger.record(project_dir, "Resend", "email", "great")
        assert not DecisionLedger.path_for(project_dir).exists()

    def test_ids_unique(self, ledger: DecisionLedger, project_dir: Path):
        a = ledger.record(project_dir, "Resend", "email", "positive")
        b = ledger.record(project_dir, "Resend", "email", "positive")
        assert a.id != b.id
        assert len(ledger.load_all(project_dir)) == 2

    def test_record_invalidates_cache(self, registry: ProjectRegistry, project_dir: Path):
        cache = MagicMock()
        ledger = DecisionLedger(registry, cache)
        ledger.record(project_dir, "Resend", "email", "neutral")
        cache.invalidate.assert_called_once()


class TestUpdateAndGet:
    def test_update_fields(self, ledger: DecisionLedger, project_dir: Path):
        decision = ledger.record(project_dir, "Stripe", "payments", "neutral")
        updated = ledger.update(
            project_dir, decision.id, outcome="negative", notes="webhooks flaky", notes_private=True
        )
        assert updated.outcome == "negative"
        assert updated.notes == "webhooks flaky"
        assert updated.notes_private is True
        assert ledger.get(project_dir, decision.id).outcome == "negative"

    def test_update_unknown_id(self, ledger: DecisionLedger, project_dir: Path):
        assert ledger.update(project_dir, "missing", outcome="positive") is None

    def test_update_invalidates_cache(self, registry: ProjectRegistry, project_dir: Path):
        cache = MagicMock()
        ledger = DecisionLedger(registry, cache)
        decision = ledger.record(project_dir, "Stripe", "payments", "neutral")
        cache.reset_mock()
        ledger.update(project_dir, decision.id, outcome="positive")
        cache.invalidate.assert_called_once()

    def test_get_missing(self, ledger: DecisionLedger, project_dir: Path):
        assert ledger.get(project_dir, "nope") is None


class TestCorruption:
    def test_missing_file_is_empty(self, ledger: DecisionLedger, project_dir: Path):
        assert ledger.load_all(project_dir) == []

    def test_corrupt_file_raises(self, ledger: DecisionLedger, project_dir: Path):
        path = DecisionLedger.path_for(project_dir)
        path.parent.mkdir(parents=True)
        path.write_text("{broken")
        with pytest.raises(LedgerError):
            ledger.load_all(project_dir)

    def test_corrupt_file_not_overwritten(self, ledger: DecisionLedger, project_dir: Path):
        path = DecisionLedger.path_for(project_dir)
        path.parent.mkdir(parents=True)
        path.write_text("{broken")
        with pytest.raises(LedgerError):
            ledger.record(project_dir, "Resend", "email", "positive")
        assert path.read_text() == "{broken"

    def test_wrong_structure_raises(self, ledger: DecisionLedger, project_dir: Path):
        path = DecisionLedger.path_for(project_dir)
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps({"decisions": "nope"}))
        with pytest.raises(LedgerError):
            ledger.load_all(project_dir)


class TestAcrossProjects:
    @pytest.fixture
    def two_projects(self, tmp_path: Path, registry: ProjectRegistry, ledger: DecisionLedger):
        alpha = tmp_path / "alpha"
        beta = tmp_path / "beta"
        alpha.mkdir()
        beta.mkdir()
        registry.ensure_registered(alpha)
        registry.ensure_registered(beta)
        ledger.record(alpha, "Resend", "email", "positive")
        ledger.record(beta, "Stripe", "payments", "negative")
        ledger.record(beta, "resend", "Email", "negative")
        return alpha, beta

    def test_load_all_active_newest_first(self, ledger: DecisionLedger, two_projects):
        entries = ledger.load_all_active()
        assert len(entries) == 3
        dates = [e.decision.date for e in entries]
        assert dates == sorted(dates, reverse=True)
        assert {e.project_name for e in entries} == {"alpha", "beta"}

    def test_private_project_excluded(
        self, ledger: DecisionLedger, registry: ProjectRegistry, two_projects
    ):
        _, beta = two_projects
        registry.update(beta, share=False)
        assert {e.project_name for e in ledger.load_all_active()} == {"alpha"}

    def test_corrupt_project_skipped(self, ledger: DecisionLedger, two_projects, caplog):
        _, beta = two_projects
        DecisionLedger.path_for(beta).write_text("{broken")
        with caplog.at_level("WARNING"):
            entries = ledger.load_all_active()
        assert [e.project_name for e in entries] == ["alpha"]
        assert "Skipping decisions for beta" in caplog.text

    def test_experiences_for_category(self, ledger: DecisionLedger, two_projects):
        email = ledger.experiences_for_category("EMAIL")
        assert sorted(e.outcome for e in email) == ["negative", "positive"]

    def test_experiences_for_api(self, ledger: DecisionLedger, two_projects):
        resend = ledger.experiences_for_api("Resend")
        assert len(resend) == 2
        assert len(ledger.experiences()) == 3


class TestMigrateLegacyHistory:
    def test_skips_duplicates(self, ledger: DecisionLedger, project_dir: Path):
        history = [
            {"api": "Resend", "category": "email", "outcome": "positive", "date": "2024-05-01"},
            {"api": "Resend", "category": "email", "outcome": "positive", "date": "2024-05-01T10:00:00Z"},
            {"api": "Stripe", "category": "payments", "outcome": "negative", "date": "2024-06-01"},
            {"category": "email"},
        ]
        assert ledger.migrate_legacy_history(project_dir, history) == 2
        assert ledger.migrate_legacy_history(project_dir, history) == 0

        decisions = ledger.load_all(project_dir)
        assert decisions[0].date == datetime(2024, 5, 1, tzinfo=timezone.utc)
        assert decisions[0].tool_version == "migration-1.0"

    def test_empty_history(self, ledger: DecisionLedger, project_dir: Path):
        assert ledger.migrate_legacy_history(project_dir, []) == 0
        assert not DecisionLedger.path_for(project_dir).exists()


class TestExperienceSummary:
    def test_truncates_long_notes(self):
        decision = make_decision("Resend", "email", "positive", notes="x" * 150)
        summary = to_experience_summary(decision, "webapp")
        assert len(summary.note_summary) == 100
        assert summary.note_summary.endswith("...")

    def test_private_notes_suppressed(self):
        decision = make_decision("Resend", "email", "positive", notes="secret", notes_private=True)
        assert to_experience_summary(decision, "webapp").note_summary is None

    def test_short_notes_kept(self):
        assert truncate_notes("fine") == "fine"
        assert truncate_notes(None) is None
        assert truncate_notes("") is None
