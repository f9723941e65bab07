"""Read and populate the provider catalog."""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timedelta, timezone
from pathlib import Path

from stacksherpa.errors import CatalogError
from stacksherpa.models import KnownIssue, Pricing, Provider, utcnow

logger = logging.getLogger(__name__)


def _json_list(value: str | None) -> list[str]:
    if not value:
        return []
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        return []
    return [str(v) for v in parsed] if isinstance(parsed, list) else []


class Catalog:
    """Data access layer for the provider catalog."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    # -- reads --------------------------------------------------------------

    def get_providers_by_category(self, category: str) -> list[Provider]:
        """Active providers in a category, with pricing and known issues attached."""
        rows = self._conn.execute(
            "SELECT * FROM providers WHERE category = ? AND status = 'active' ORDER BY name",
            (category,),
        ).fetchall()
        return [self._row_to_provider(row) for row in rows]

    def get_provider_by_id(self, provider_id: str) -> Provider | None:
        row = self._conn.execute(
            "SELECT * FROM providers WHERE id = ?", (provider_id,)
        ).fetchone()
        return self._row_to_provider(row) if row else None

    def get_categories(self) -> list[dict]:
        """Categories with active provider counts, largest first."""
        rows = self._conn.execute(
            """
            SELECT category, COUNT(*) as count
            FROM providers
            WHERE status = 'active'
            GROUP BY category
            ORDER BY count DESC, category
            """
        ).fetchall()
        return [dict(row) for row in rows]

    def get_provider_ecosystems(self) -> dict[str, str]:
        """Lower-cased provider name -> ecosystem, for active providers that declare one."""
        rows = self._conn.execute(
            """
            SELECT LOWER(name) as name, ecosystem
            FROM providers
            WHERE ecosystem IS NOT NULL AND ecosystem != '' AND status = 'active'
            """
        ).fetchall()
        return {row["name"]: row["ecosystem"] for row in rows}

    def get_stale_providers(self, days: int = 90, now: datetime | None = None) -> list[Provider]:
        """Providers not verified within ``days`` (or never verified)."""
        cutoff = ((now or utcnow()) - timedelta(days=days)).date().isoformat()
        rows = self._conn.execute(
            """
            SELECT * FROM providers
            WHERE last_verified IS NULL OR last_verified < ?
            ORDER BY last_verified
            """,
            (cutoff,),
        ).fetchall()
        return [self._row_to_provider(row) for row in rows]

    def get_stats(self) -> dict:
        """Get summary statistics about the catalog."""
        providers = self._conn.execute("SELECT COUNT(*) FROM providers").fetchone()[0]
        active = self._conn.execute(
            "SELECT COUNT(*) FROM providers WHERE status = 'active'"
        ).fetchone()[0]
        categories = self._conn.execute(
            "SELECT COUNT(DISTINCT category) FROM providers"
        ).fetchone()[0]
        open_issues = self._conn.execute(
            "SELECT COUNT(*) FROM known_issues WHERE resolved_at IS NULL"
        ).fetchone()[0]
        return {
            "total_providers": providers,
            "active_providers": active,
            "categories": categories,
            "open_issues": open_issues,
        }

    # -- writes -------------------------------------------------------------

    def save_provider(self, provider: Provider) -> None:
        """Insert or replace a provider with its pricing and known issues."""
        self._write_provider(provider)
        self._conn.commit()

    def import_providers(self, path: Path) -> int:
        """Load a JSON file holding a list of provider objects. Returns the count saved."""
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise CatalogError(f"Cannot read provider file {path}: {e}") from e
        if isinstance(data, dict):
            data = data.get("providers", [])
        if not isinstance(data, list):
            raise CatalogError(f"{path} must contain a list of providers")

        providers: list[Provider] = []
        for i, raw in enumerate(data):
            if not isinstance(raw, dict):
                raise CatalogError(f"Entry {i} in {path} is not an object")
            try:
                providers.append(Provider.from_dict(raw))
            except ValueError as e:
                raise CatalogError(f"Entry {i} in {path}: {e}") from e

        # One transaction: a bad row leaves the catalog untouched
        try:
            for provider in providers:
                self._write_provider(provider)
            self._conn.commit()
        except sqlite3.Error:
            self._conn.rollback()
            raise

        logger.info(f"Imported {len(providers)} providers from {path}")
        return len(providers)

    def _write_provider(self, provider: Provider) -> None:
        self._conn.execute(
            """INSERT OR REPLACE INTO providers
            (id, name, category, description, status, website, docs_url, package,
             compliance, data_residency, self_hostable, strengths, weaknesses, best_for,
             has_free_tier, ecosystem, last_verified, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                provider.id,
                provider.name,
                provider.category,
                provider.description,
                provider.status,
                provider.website,
                provider.docs_url,
                provider.package,
                json.dumps(provider.compliance),
                json.dumps(provider.data_residency),
                int(provider.self_hostable),
                json.dumps(provider.strengths),
                json.dumps(provider.weaknesses),
                json.dumps(provider.best_for),
                None if provider.has_free_tier is None else int(provider.has_free_tier),
                provider.ecosystem,
                provider.last_verified,
                datetime.now(timezone.utc).isoformat(),
            ),
        )

        self._conn.execute("DELETE FROM pricing WHERE provider_id = ?", (provider.id,))
        if provider.pricing is not None:
            p = provider.pricing
            self._conn.execute(
                """INSERT INTO pricing
                (provider_id, pricing_type, free_tier_included, free_tier_limitations,
                 unit, unit_price, source_url)
                VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    provider.id,
                    p.pricing_type,
                    p.free_tier,
                    json.dumps(p.free_tier_limitations),
                    p.unit,
                    p.unit_price,
                    p.source,
                ),
            )

        self._conn.execute("DELETE FROM known_issues WHERE provider_id = ?", (provider.id,))
        for i, issue in enumerate(provider.known_issues, start=1):
            self._conn.execute(
                """INSERT OR REPLACE INTO known_issues
                (id, provider_id, symptom, severity, scope, workaround, reported_at, resolved_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    issue.id or f"{provider.id}-issue-{i}",
                    provider.id,
                    issue.symptom,
                    issue.severity,
                    issue.scope,
                    issue.workaround,
                    issue.reported_at,
                    issue.resolved_at,
                ),
            )

    def _row_to_provider(self, row: sqlite3.Row) -> Provider:
        """Convert a providers row into a Provider with pricing and issues."""
        d = dict(row)

        pricing = None
        pricing_row = self._conn.execute(
            "SELECT * FROM pricing WHERE provider_id = ?", (d["id"],)
        ).fetchone()
        if pricing_row:
            pricing = Pricing(
                pricing_type=pricing_row["pricing_type"] or "usage",
                free_tier=pricing_row["free_tier_included"],
                free_tier_limitations=_json_list(pricing_row["free_tier_limitations"]),
                unit=pricing_row["unit"],
                unit_price=pricing_row["unit_price"],
                source=pricing_row["source_url"],
            )

        issue_rows = self._conn.execute(
            "SELECT * FROM known_issues WHERE provider_id = ? ORDER BY reported_at DESC",
            (d["id"],),
        ).fetchall()

        return Provider(
            id=d["id"],
            name=d["name"],
            category=d["category"],
            description=d["description"] or "",
            website=d["website"] or "",
            docs_url=d["docs_url"] or "",
            package=d["package"] or "",
            status=d["status"] or "active",
            compliance=_json_list(d["compliance"]),
            data_residency=_json_list(d["data_residency"]),
            self_hostable=bool(d["self_hostable"]),
            best_for=_json_list(d["best_for"]),
            strengths=_json_list(d["strengths"]),
            weaknesses=_json_list(d["weaknesses"]),
            has_free_tier=None if d["has_free_tier"] is None else bool(d["has_free_tier"]),
            pricing=pricing,
            ecosystem=d["ecosystem"],
            known_issues=[
                KnownIssue(
                    id=r["id"],
                    symptom=r["symptom"],
                    severity=r["severity"],
                    scope=r["scope"] or "",
                    workaround=r["workaround"] or "",
                    reported_at=r["reported_at"] or "",
                    resolved_at=r["resolved_at"],
                )
                for r in issue_rows
            ],
            last_verified=d["last_verified"],
        )
