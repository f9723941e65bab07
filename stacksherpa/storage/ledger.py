"""Decision ledger.

Each project keeps its decisions in ``<project>/.stacksherpa/decisions.json``.
That file is the source of truth; the cross-project view is assembled on
demand from every registered project that opted into sharing.
"""

from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Any, Protocol

from stacksherpa.config import CONFIG_DIR_NAME
from stacksherpa.errors import LedgerError
from stacksherpa.models import (
    OUTCOMES,
    ExperienceSummary,
    LedgerEntry,
    UserDecision,
    parse_timestamp,
    utcnow,
)
from stacksherpa.storage.files import SCHEMA_VERSION, read_json, write_json_atomic
from stacksherpa.storage.projects import ProjectRegistry

logger = logging.getLogger(__name__)

DECISIONS_FILENAME = "decisions.json"
NOTE_SUMMARY_LENGTH = 100
MIGRATION_TOOL_VERSION = "migration-1.0"


class Invalidatable(Protocol):
    def invalidate(self) -> None: ...


def truncate_notes(notes: str | None, max_length: int = NOTE_SUMMARY_LENGTH) -> str | None:
    if not notes:
        return None
    if len(notes) <= max_length:
        return notes
    return notes[: max_length - 3] + "..."


def to_experience_summary(decision: UserDecision, project_name: str) -> ExperienceSummary:
    """Project a decision into the shape shared across projects."""
    return ExperienceSummary(
        id=decision.id,
        project=project_name,
        api=decision.api,
        category=decision.category,
        outcome=decision.outcome,
        date=decision.date,
        context=decision.context,
        note_summary=None if decision.notes_private else truncate_notes(decision.notes),
    )


def _validate_outcome(outcome: str) -> str:
    if outcome not in OUTCOMES:
        raise ValueError(f"Invalid outcome {outcome!r}; expected one of {', '.join(OUTCOMES)}")
    return outcome


class DecisionLedger:
    """Append/update decisions per project and read them back across projects."""

    def __init__(self, registry: ProjectRegistry, cache: Invalidatable | None = None) -> None:
        self._registry = registry
        self._cache = cache

    @staticmethod
    def path_for(project_dir: Path) -> Path:
        return project_dir / CONFIG_DIR_NAME / DECISIONS_FILENAME

    # -- persistence --------------------------------------------------------

    def _load_document(self, project_dir: Path) -> dict[str, Any]:
        path = self.path_for(project_dir)
        if not path.exists():
            now = utcnow().isoformat()
            return {
                "schemaVersion": SCHEMA_VERSION,
                "createdAt": now,
                "updatedAt": now,
                "decisions": [],
            }
        try:
            data = read_json(path)
        except ValueError as e:
            raise LedgerError(f"Corrupt decision ledger at {path}: {e}") from e
        if not isinstance(data, dict) or not isinstance(data.get("decisions", []), list):
            raise LedgerError(f"Corrupt decision ledger at {path}: unexpected structure")
        data.setdefault("schemaVersion", SCHEMA_VERSION)
        data.setdefault("decisions", [])
        return data

    def _save_document(self, project_dir: Path, data: dict[str, Any]) -> None:
        data["updatedAt"] = utcnow().isoformat()
        write_json_atomic(self.path_for(project_dir), data)
        if self._cache is not None:
            self._cache.invalidate()

    def _decisions(self, data: dict[str, Any], project_dir: Path) -> list[UserDecision]:
        try:
            return [UserDecision.from_dict(d) for d in data["decisions"]]
        except (KeyError, TypeError) as e:
            raise LedgerError(
                f"Corrupt decision in {self.path_for(project_dir)}: {e}"
            ) from e

    # -- single project -----------------------------------------------------

    def load_all(self, project_dir: Path) -> list[UserDecision]:
        return self._decisions(self._load_document(project_dir), project_dir)

    def get(self, project_dir: Path, decision_id: str) -> UserDecision | None:
        for decision in self.load_all(project_dir):
            if decision.id == decision_id:
                return decision
        return None

    def record(
        self,
        project_dir: Path,
        api: str,
        category: str,
        outcome: str,
        context: str | None = None,
        notes: str | None = None,
        notes_private: bool = False,
        recorded_by: str = "agent",
    ) -> UserDecision:
        """Append a decision to the project's ledger."""
        _validate_outcome(outcome)
        data = self._load_document(project_dir)
        decision = UserDecision(
            id=str(uuid.uuid4()),
            api=api,
            category=category,
            outcome=outcome,
            context=context,
            notes=notes,
            notes_private=notes_private,
            recorded_by=recorded_by,
        )
        data["decisions"].append(decision.to_dict())
        self._save_document(project_dir, data)
        logger.info(f"Recorded {outcome} decision for {api} ({category}) in {project_dir}")
        return decision

    def update(
        self,
        project_dir: Path,
        decision_id: str,
        outcome: str | None = None,
        context: str | None = None,
        notes: str | None = None,
        notes_private: bool | None = None,
    ) -> UserDecision | None:
        """Correct an existing decision. Returns None when the id is unknown."""
        if outcome is not None:
            _validate_outcome(outcome)
        data = self._load_document(project_dir)
        for raw in data["decisions"]:
            if raw.get("id") != decision_id:
                continue
            if outcome is not None:
                raw["outcome"] = outcome
            if context is not None:
                raw["context"] = context
            if notes is not None:
                raw["notes"] = notes
            if notes_private is not None:
                raw["notesPrivate"] = notes_private
            self._save_document(project_dir, data)
            return UserDecision.from_dict(raw)
        return None

    def migrate_legacy_history(self, project_dir: Path, history: list[dict[str, Any]]) -> int:
        """Import the inline ``history`` array of an old profile document.

        Entries already present (same api, category and day) are skipped.
        Returns the number of decisions added.
        """
        if not history:
            return 0
        data = self._load_document(project_dir)

        def key(api: Any, category: Any, date: Any) -> str:
            return f"{api}:{category}:{str(date or '').split('T')[0]}"

        existing = {key(d.get("api"), d.get("category"), d.get("date")) for d in data["decisions"]}

        migrated = 0
        for legacy in history:
            if not isinstance(legacy, dict) or not legacy.get("api") or not legacy.get("category"):
                continue
            k = key(legacy["api"], legacy["category"], legacy.get("date"))
            if k in existing:
                continue
            decision = UserDecision(
                id=str(uuid.uuid4()),
                api=legacy["api"],
                category=legacy["category"],
                outcome=legacy.get("outcome") if legacy.get("outcome") in OUTCOMES else "neutral",
                notes=legacy.get("notes"),
                date=parse_timestamp(legacy.get("date")) or utcnow(),
                recorded_by="user",
                tool_version=MIGRATION_TOOL_VERSION,
            )
            data["decisions"].append(decision.to_dict())
            existing.add(k)
            migrated += 1

        if migrated:
            self._save_document(project_dir, data)
        return migrated

    # -- across projects ----------------------------------------------------

    def load_all_active(self) -> list[LedgerEntry]:
        """Decisions from every shared project that still exists, newest first."""
        entries: list[LedgerEntry] = []
        for project in self._registry.get_active():
            project_dir = Path(project.path)
            try:
                decisions = self.load_all(project_dir)
            except (LedgerError, OSError) as e:
                logger.warning(f"Skipping decisions for {project.name}: {e}")
                continue
            entries.extend(LedgerEntry(d, project.name, project.path) for d in decisions)

        entries.sort(key=lambda e: e.decision.date, reverse=True)
        return entries

    def experiences(self) -> list[ExperienceSummary]:
        return [to_experience_summary(e.decision, e.project_name) for e in self.load_all_active()]

    def experiences_for_category(self, category: str) -> list[ExperienceSummary]:
        wanted = category.lower()
        return [
            to_experience_summary(e.decision, e.project_name)
            for e in self.load_all_active()
            if e.decision.category.lower() == wanted
        ]

    def experiences_for_api(self, api: str) -> list[ExperienceSummary]:
        wanted = api.lower()
        return [
            to_experience_summary(e.decision, e.project_name)
            for e in self.load_all_active()
            if e.decision.api.lower() == wanted
        ]
