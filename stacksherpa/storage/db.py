"""SQLite database setup and schema management for the provider catalog."""

from __future__ import annotations

import sqlite3
from pathlib import Path

SCHEMA_VERSION = 1

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS providers (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    category TEXT NOT NULL,
    description TEXT,
    status TEXT DEFAULT 'active',
    website TEXT,
    docs_url TEXT,
    package TEXT,
    compliance TEXT,
    data_residency TEXT,
    self_hostable INTEGER DEFAULT 0,
    strengths TEXT,
    weaknesses TEXT,
    best_for TEXT,
    has_free_tier INTEGER,
    ecosystem TEXT,
    last_verified TEXT,
    updated_at TIMESTAMP
);

CREATE TABLE IF NOT EXISTS pricing (
    provider_id TEXT PRIMARY KEY REFERENCES providers(id) ON DELETE CASCADE,
    pricing_type TEXT,
    free_tier_included TEXT,
    free_tier_limitations TEXT,
    unit TEXT,
    unit_price REAL,
    source_url TEXT
);

CREATE TABLE IF NOT EXISTS known_issues (
    id TEXT NOT NULL,
    provider_id TEXT NOT NULL REFERENCES providers(id) ON DELETE CASCADE,
    symptom TEXT NOT NULL,
    severity TEXT NOT NULL,
    scope TEXT,
    workaround TEXT,
    reported_at TEXT,
    resolved_at TEXT,
    PRIMARY KEY (provider_id, id)
);

CREATE INDEX IF NOT EXISTS idx_providers_category ON providers(category);
CREATE INDEX IF NOT EXISTS idx_known_issues_provider ON known_issues(provider_id);
"""


def get_connection(db_path: Path) -> sqlite3.Connection:
    """Create or open a SQLite database with the catalog schema."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")

    conn.executescript(SCHEMA_SQL)
    conn.commit()

    return conn
