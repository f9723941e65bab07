"""Wiring for the stores and engines used by the CLI and the MCP server."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from pathlib import Path

from stacksherpa.config import Config
from stacksherpa.profile.store import ProfileStore
from stacksherpa.recommend.engine import Recommender
from stacksherpa.storage.catalog import Catalog
from stacksherpa.storage.db import get_connection
from stacksherpa.storage.ledger import DecisionLedger
from stacksherpa.storage.projects import ProjectRegistry
from stacksherpa.taste.cache import PatternCache
from stacksherpa.taste.patterns import PatternEngine


@dataclass
class Workspace:
    config: Config
    conn: sqlite3.Connection
    catalog: Catalog
    registry: ProjectRegistry
    cache: PatternCache
    ledger: DecisionLedger
    profiles: ProfileStore
    patterns: PatternEngine
    recommender: Recommender

    @classmethod
    def open(cls, config: Config) -> Workspace:
        conn = get_connection(config.resolved_catalog_path)
        catalog = Catalog(conn)
        registry = ProjectRegistry(config.home_dir)
        cache = PatternCache(ttl_seconds=config.pattern_cache_ttl)
        ledger = DecisionLedger(registry, cache)
        profiles = ProfileStore(config.home_dir, registry, ledger)
        patterns = PatternEngine(ledger, cache, config.decay_half_life_days)
        recommender = Recommender(catalog, profiles, ledger, patterns)
        return cls(
            config=config,
            conn=conn,
            catalog=catalog,
            registry=registry,
            cache=cache,
            ledger=ledger,
            profiles=profiles,
            patterns=patterns,
            recommender=recommender,
        )

    @property
    def project_dir(self) -> Path:
        return self.config.project_dir

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> Workspace:
        return self

    def __exit__(self, *exc) -> None:
        self.close()
