"""Shared test fixtures for stacksherpa."""

from __future__ import annotations

import sqlite3
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from stacksherpa.config import Config
from stacksherpa.models import (
    KnownIssue,
    LedgerEntry,
    Pricing,
    Provider,
    UserDecision,
)
from stacksherpa.profile.store import ProfileStore
from stacksherpa.storage.catalog import Catalog
from stacksherpa.storage.db import get_connection
from stacksherpa.storage.ledger import DecisionLedger
from stacksherpa.storage.projects import ProjectRegistry
from stacksherpa.taste.cache import PatternCache

NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def home_dir(tmp_path: Path) -> Path:
    home = tmp_path / "home" / ".stacksherpa"
    home.mkdir(parents=True)
    return home


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    project = tmp_path / "projects" / "webapp"
    project.mkdir(parents=True)
    return project


@pytest.fixture
def config(home_dir: Path, project_dir: Path) -> Config:
    return Config(home_dir=home_dir, project_dir=project_dir)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "catalog.db"


@pytest.fixture
def db_conn(db_path: Path) -> sqlite3.Connection:
    conn = get_connection(db_path)
    yield conn
    conn.close()


@pytest.fixture
def catalog(db_conn: sqlite3.Connection) -> Catalog:
    return Catalog(db_conn)


@pytest.fixture
def registry(home_dir: Path) -> ProjectRegistry:
    return ProjectRegistry(home_dir)


@pytest.fixture
def cache() -> PatternCache:
    return PatternCache()


@pytest.fixture
def ledger(registry: ProjectRegistry, cache: PatternCache) -> DecisionLedger:
    return DecisionLedger(registry, cache)


@pytest.fixture
def profiles(home_dir: Path, registry: ProjectRegistry, ledger: DecisionLedger) -> ProfileStore:
    return ProfileStore(home_dir, registry, ledger)


@pytest.fixture
def resend() -> Provider:
    return Provider(
        id="resend",
        name="Resend",
        category="email",
        package="resend",
        compliance=["SOC2", "GDPR"],
        best_for=["hobby", "startup"],
        strengths=["dx", "reliability"],
        has_free_tier=True,
        ecosystem="vercel",
        last_verified="2025-05-20",
    )


@pytest.fixture
def postmark() -> Provider:
    return Provider(
        id="postmark",
        name="Postmark",
        category="email",
        package="postmark",
        compliance=["SOC2"],
        best_for=["startup", "growth"],
        strengths=["reliability", "support"],
        pricing=Pricing(pricing_type="usage", free_tier="100 emails/month"),
        last_verified="2025-05-01",
    )


@pytest.fixture
def sendgrid() -> Provider:
    return Provider(
        id="sendgrid",
        name="SendGrid",
        category="email",
        package="@sendgrid/mail",
        compliance=["SOC2", "HIPAA", "GDPR"],
        best_for=["growth", "enterprise"],
        strengths=["performance"],
        self_hostable=False,
        last_verified="2024-01-01",
        known_issues=[
            KnownIssue(
                id="sg-1",
                symptom="Webhook delivery delays",
                severity="critical",
                reported_at="2025-04-01",
            )
        ],
    )


@pytest.fixture
def populated_catalog(
    catalog: Catalog, resend: Provider, postmark: Provider, sendgrid: Provider
) -> Catalog:
    """Catalog pre-loaded with three email providers."""
    for provider in (resend, postmark, sendgrid):
        catalog.save_provider(provider)
    return catalog


def make_decision(
    api: str,
    category: str,
    outcome: str,
    days_ago: float = 0,
    context: str | None = None,
    notes: str | None = None,
    notes_private: bool = False,
) -> UserDecision:
    return UserDecision(
        id=str(uuid.uuid4()),
        api=api,
        category=category,
        outcome=outcome,
        context=context,
        notes=notes,
        notes_private=notes_private,
        date=NOW - timedelta(days=days_ago),
    )


def make_entry(decision: UserDecision, project: str = "webapp") -> LedgerEntry:
    return LedgerEntry(decision, project, f"/projects/{project}")
