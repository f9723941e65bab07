"""Profile documents on disk.

Global defaults live in ``~/.stacksherpa/defaults.json``; each project keeps
its local profile in ``<project>/.stacksherpa/profile.json``. Both are
rewritten atomically. A missing or unreadable document is treated as empty
so a broken file never blocks a recommendation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from stacksherpa.config import CONFIG_DIR_NAME
from stacksherpa.models import EffectiveProfile, utcnow
from stacksherpa.profile.document import UpdateResult, apply_operations
from stacksherpa.profile.merge import MergeDetail, merge_profiles
from stacksherpa.storage.files import SCHEMA_VERSION, read_json, write_json_atomic
from stacksherpa.storage.projects import ProjectRegistry, detect_project_name

if TYPE_CHECKING:
    from stacksherpa.storage.ledger import DecisionLedger

logger = logging.getLogger(__name__)

PROFILE_FILENAME = "profile.json"
DEFAULTS_FILENAME = "defaults.json"


@dataclass
class ProfileView:
    """The effective profile plus the documents it was built from."""

    effective: EffectiveProfile
    global_defaults: dict[str, Any] | None = None
    local_profile: dict[str, Any] | None = None
    merge_details: list[MergeDetail] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "effective": self.effective.to_dict(),
            "globalDefaults": self.global_defaults,
            "localProfile": self.local_profile,
            "mergeDetails": [d.to_dict() for d in self.merge_details],
        }


class ProfileStore:
    """Loads, merges and updates profile documents."""

    def __init__(
        self,
        home_dir: Path,
        registry: ProjectRegistry,
        ledger: DecisionLedger | None = None,
    ) -> None:
        self._home = home_dir
        self._registry = registry
        self._ledger = ledger

    @property
    def global_defaults_path(self) -> Path:
        return self._home / DEFAULTS_FILENAME

    @staticmethod
    def local_profile_path(project_dir: Path) -> Path:
        return project_dir / CONFIG_DIR_NAME / PROFILE_FILENAME

    def _read_document(self, path: Path, label: str) -> dict[str, Any] | None:
        if not path.exists():
            return None
        try:
            data = read_json(path)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable {label} at {path}: {e}")
            return None
        if not isinstance(data, dict):
            logger.warning(f"Ignoring {label} at {path}: expected a JSON object")
            return None
        return data

    def load_global_defaults(self) -> dict[str, Any] | None:
        return self._read_document(self.global_defaults_path, "global defaults")

    def save_global_defaults(self, defaults: dict[str, Any]) -> None:
        defaults.setdefault("schemaVersion", SCHEMA_VERSION)
        defaults.setdefault("createdAt", utcnow().isoformat())
        defaults["updatedAt"] = utcnow().isoformat()
        write_json_atomic(self.global_defaults_path, defaults)

    def load_local_profile(self, project_dir: Path) -> dict[str, Any] | None:
        profile = self._read_document(self.local_profile_path(project_dir), "local profile")
        if profile and isinstance(profile.get("history"), list) and self._ledger is not None:
            # Older profiles kept decisions inline; they now live in decisions.json
            migrated = self._ledger.migrate_legacy_history(project_dir, profile["history"])
            if migrated:
                logger.info(f"Migrated {migrated} legacy decision(s) from {project_dir}")
        return profile

    def save_local_profile(self, project_dir: Path, profile: dict[str, Any]) -> None:
        profile["updatedAt"] = utcnow().isoformat()
        write_json_atomic(self.local_profile_path(project_dir), profile)

    def new_local_profile(self, project_dir: Path) -> dict[str, Any]:
        now = utcnow().isoformat()
        return {
            "schemaVersion": SCHEMA_VERSION,
            "createdAt": now,
            "updatedAt": now,
            "project": {"name": detect_project_name(project_dir)},
            "shareToGlobalTaste": True,
        }

    def load_effective(self, project_dir: Path) -> ProfileView:
        """Merge global defaults with the project's local profile."""
        self._registry.ensure_registered(project_dir)

        global_defaults = self.load_global_defaults()
        local_profile = self.load_local_profile(project_dir)
        effective, details = merge_profiles(global_defaults, local_profile)

        return ProfileView(
            effective=effective,
            global_defaults=global_defaults,
            local_profile=local_profile,
            merge_details=details,
        )

    def update_project_profile(
        self,
        project_dir: Path,
        set: dict[str, Any] | None = None,
        append: dict[str, Any] | None = None,
        remove: dict[str, Any] | None = None,
    ) -> UpdateResult:
        """Apply surgical operations to the local profile and persist them as one write."""
        profile = self.load_local_profile(project_dir) or self.new_local_profile(project_dir)
        result = apply_operations(profile, set=set, append=append, remove=remove)
        self.save_local_profile(project_dir, result.document)

        if set and "shareToGlobalTaste" in set:
            self._registry.ensure_registered(project_dir)
            self._registry.update(project_dir, share=bool(set["shareToGlobalTaste"]))

        return result
