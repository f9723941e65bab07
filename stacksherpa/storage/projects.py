"""Project registry.

Tracks every project directory stacksherpa has been used in, and whether
each one shares its decisions with the cross-project taste model. Projects
are registered automatically on first use.
"""

from __future__ import annotations

import json
import logging
import tomllib
from pathlib import Path
from typing import Any

from stacksherpa.models import RegisteredProject, utcnow
from stacksherpa.storage.files import SCHEMA_VERSION, read_json, write_json_atomic

logger = logging.getLogger(__name__)

REGISTRY_FILENAME = "projects.json"


def normalize_project_path(path: str | Path) -> str:
    text = str(path)
    return text.rstrip("/") or "/"


def detect_project_name(project_dir: Path) -> str:
    """Name from package.json or pyproject.toml, else the directory name."""
    package_json = project_dir / "package.json"
    if package_json.exists():
        try:
            name = json.loads(package_json.read_text(encoding="utf-8")).get("name")
            if isinstance(name, str) and name:
                return name
        except (OSError, ValueError, AttributeError):
            logger.debug(f"Unreadable package.json in {project_dir}")

    pyproject = project_dir / "pyproject.toml"
    if pyproject.exists():
        try:
            with open(pyproject, "rb") as f:
                name = tomllib.load(f).get("project", {}).get("name")
            if isinstance(name, str) and name:
                return name
        except (OSError, tomllib.TOMLDecodeError):
            logger.debug(f"Unreadable pyproject.toml in {project_dir}")

    return project_dir.name


class ProjectRegistry:
    """Read/write access to the global projects.json registry."""

    def __init__(self, home_dir: Path) -> None:
        self._path = home_dir / REGISTRY_FILENAME

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return self._empty()
        try:
            data = read_json(self._path)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable project registry {self._path}: {e}")
            return self._empty()
        if not isinstance(data, dict) or not isinstance(data.get("projects"), list):
            logger.warning(f"Ignoring malformed project registry {self._path}")
            return self._empty()
        data.setdefault("schemaVersion", SCHEMA_VERSION)
        return data

    def _save(self, data: dict[str, Any]) -> None:
        data["updatedAt"] = utcnow().isoformat()
        write_json_atomic(self._path, data)

    @staticmethod
    def _empty() -> dict[str, Any]:
        now = utcnow().isoformat()
        return {"schemaVersion": SCHEMA_VERSION, "createdAt": now, "updatedAt": now, "projects": []}

    def get_all(self) -> list[RegisteredProject]:
        return [RegisteredProject.from_dict(p) for p in self._load()["projects"]]

    def find(self, project_path: str | Path) -> RegisteredProject | None:
        wanted = normalize_project_path(project_path)
        for project in self.get_all():
            if project.path == wanted:
                return project
        return None

    def ensure_registered(
        self, project_path: str | Path, name: str | None = None
    ) -> tuple[bool, RegisteredProject]:
        """Register a project if needed. Returns (newly_registered, project)."""
        data = self._load()
        normalized = normalize_project_path(project_path)
        for entry in data["projects"]:
            if entry.get("path") == normalized:
                return False, RegisteredProject.from_dict(entry)

        project = RegisteredProject(
            path=normalized,
            name=name or detect_project_name(Path(normalized)),
            added_at=utcnow().isoformat(),
            share_to_global_taste=True,
        )
        data["projects"].append(project.to_dict())
        self._save(data)
        logger.info(f"Registered project {project.name} at {normalized}")
        return True, project

    def get_active(self) -> list[RegisteredProject]:
        """Projects that still exist on disk and share their decisions."""
        return [
            p for p in self.get_all()
            if p.share_to_global_taste and Path(p.path).exists()
        ]

    def update(
        self,
        project_path: str | Path,
        name: str | None = None,
        share: bool | None = None,
    ) -> RegisteredProject | None:
        data = self._load()
        normalized = normalize_project_path(project_path)
        for entry in data["projects"]:
            if entry.get("path") != normalized:
                continue
            if name is not None:
                entry["name"] = name
            if share is not None:
                entry["shareToGlobalTaste"] = share
            self._save(data)
            return RegisteredProject.from_dict(entry)
        return None

    def remove(self, project_path: str | Path) -> bool:
        data = self._load()
        normalized = normalize_project_path(project_path)
        remaining = [p for p in data["projects"] if p.get("path") != normalized]
        if len(remaining) == len(data["projects"]):
            return False
        data["projects"] = remaining
        self._save(data)
        return True

    def prune_stale(self) -> list[str]:
        """Drop projects whose directories no longer exist. Returns removed paths."""
        data = self._load()
        removed = [p["path"] for p in data["projects"] if not Path(p["path"]).exists()]
        if removed:
            data["projects"] = [p for p in data["projects"] if p["path"] not in removed]
            self._save(data)
        return removed
