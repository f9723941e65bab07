"""Core data models for stacksherpa.

On-disk documents and catalog imports use camelCase JSON keys; every model
here converts to and from that shape with ``from_dict`` / ``to_dict``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

SCALES = ("hobby", "startup", "growth", "enterprise")
STRENGTHS = ("dx", "reliability", "cost", "performance", "support", "security", "customization")
SEVERITIES = ("low", "medium", "high", "critical")
OUTCOMES = ("positive", "negative", "neutral")

TOOL_VERSION = "1.0.0"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO date or datetime string. Naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def _str_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if v is not None]
    return []


def _compact(data: dict[str, Any]) -> dict[str, Any]:
    """Drop unset values so the dict reads like a hand-written document."""
    return {k: v for k, v in data.items() if v is not None and v != [] and v != {}}


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@dataclass
class KnownIssue:
    id: str
    symptom: str
    severity: str = "medium"  # "low" | "medium" | "high" | "critical"
    scope: str = ""  # e.g. "Node 18 + ESM"
    workaround: str = ""
    reported_at: str = ""  # ISO date
    resolved_at: str | None = None

    @property
    def is_resolved(self) -> bool:
        return bool(self.resolved_at)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> KnownIssue:
        return cls(
            id=str(data.get("id") or ""),
            symptom=data.get("symptom", ""),
            severity=str(data.get("severity", "medium")).lower(),
            scope=data.get("scope", ""),
            workaround=data.get("workaround") or "",
            reported_at=data.get("reportedAt", ""),
            resolved_at=data.get("resolvedAt"),
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "id": self.id,
            "symptom": self.symptom,
            "severity": self.severity,
            "scope": self.scope or None,
            "workaround": self.workaround or None,
            "reportedAt": self.reported_at or None,
            "resolvedAt": self.resolved_at,
        })


@dataclass
class Pricing:
    pricing_type: str = "usage"  # usage | seat | flat | tiered | freemium
    free_tier: str | None = None  # e.g. "100 emails/day"
    free_tier_limitations: list[str] = field(default_factory=list)
    unit: str | None = None  # e.g. "1K emails"
    unit_price: float | None = None
    source: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Pricing:
        free_tier = data.get("freeTier")
        unit_pricing = data.get("unitPricing") or {}
        return cls(
            pricing_type=data.get("type", "usage"),
            free_tier=free_tier.get("included", "") if isinstance(free_tier, dict) else free_tier,
            free_tier_limitations=_str_list(
                free_tier.get("limitations") if isinstance(free_tier, dict) else None
            ),
            unit=unit_pricing.get("unit"),
            unit_price=unit_pricing.get("price"),
            source=data.get("source"),
        )

    def to_dict(self) -> dict[str, Any]:
        free_tier = None
        if self.free_tier is not None:
            free_tier = _compact({
                "included": self.free_tier,
                "limitations": self.free_tier_limitations,
            })
        unit_pricing = None
        if self.unit:
            unit_pricing = {"unit": self.unit, "price": self.unit_price or 0}
        return _compact({
            "type": self.pricing_type,
            "freeTier": free_tier,
            "unitPricing": unit_pricing,
            "source": self.source,
        })


@dataclass
class Provider:
    id: str  # slug: "stripe", "resend"
    name: str
    category: str
    description: str = ""
    website: str = ""
    docs_url: str = ""
    package: str = ""  # SDK package hint
    status: str = "active"  # active | beta | deprecated | sunset
    compliance: list[str] = field(default_factory=list)
    data_residency: list[str] = field(default_factory=list)
    self_hostable: bool = False
    best_for: list[str] = field(default_factory=list)  # scale tags
    strengths: list[str] = field(default_factory=list)
    weaknesses: list[str] = field(default_factory=list)
    has_free_tier: bool | None = None
    pricing: Pricing | None = None
    ecosystem: str | None = None  # "supabase", "aws", "vercel"
    known_issues: list[KnownIssue] = field(default_factory=list)
    last_verified: str | None = None  # ISO date

    @property
    def offers_free_tier(self) -> bool:
        """True when either the flag or the pricing data says there is a free tier."""
        pricing_free = self.pricing is not None and self.pricing.free_tier is not None
        return bool(self.has_free_tier) or pricing_free

    def has_strength(self, strength: str) -> bool:
        wanted = strength.lower()
        return any(s.lower() == wanted for s in self.strengths)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Provider:
        name = data.get("name", "")
        if not name:
            raise ValueError("Provider entry is missing 'name'")
        pricing = data.get("pricing")
        has_free_tier = data.get("hasFreeTier")
        return cls(
            id=data.get("id") or slugify(name),
            name=name,
            category=str(data.get("category", "")).lower(),
            description=data.get("description", "") or "",
            website=data.get("website", "") or "",
            docs_url=data.get("docsUrl", "") or "",
            package=data.get("package", "") or "",
            status=data.get("status", "active") or "active",
            compliance=_str_list(data.get("compliance")),
            data_residency=_str_list(data.get("dataResidency")),
            self_hostable=bool(data.get("selfHostable", False)),
            # "scale" is the older spelling of bestFor
            best_for=_str_list(data.get("bestFor") or data.get("scale")),
            strengths=_str_list(data.get("strengths")),
            weaknesses=_str_list(data.get("weaknesses")),
            has_free_tier=None if has_free_tier is None else bool(has_free_tier),
            pricing=Pricing.from_dict(pricing) if isinstance(pricing, dict) else None,
            ecosystem=data.get("ecosystem") or None,
            known_issues=[KnownIssue.from_dict(i) for i in data.get("knownIssues") or []],
            last_verified=data.get("lastVerified"),
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "description": self.description or None,
            "website": self.website or None,
            "docsUrl": self.docs_url or None,
            "package": self.package or None,
            "status": self.status,
            "compliance": self.compliance,
            "dataResidency": self.data_residency,
            "selfHostable": self.self_hostable,
            "bestFor": self.best_for,
            "strengths": self.strengths,
            "weaknesses": self.weaknesses,
            "hasFreeTier": self.has_free_tier,
            "pricing": self.pricing.to_dict() if self.pricing else None,
            "ecosystem": self.ecosystem,
            "knownIssues": [i.to_dict() for i in self.known_issues],
            "lastVerified": self.last_verified,
        })


# ---------------------------------------------------------------------------
# Effective profile
# ---------------------------------------------------------------------------


@dataclass
class ProjectContext:
    name: str = ""
    stack: dict[str, str] = field(default_factory=dict)  # language, framework, hosting
    scale: str | None = None  # "hobby" | "startup" | "growth" | "enterprise"
    regions: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ProjectContext:
        data = data or {}
        stack = data.get("stack")
        return cls(
            name=data.get("name", "") or "",
            stack={k: str(v) for k, v in stack.items() if v} if isinstance(stack, dict) else {},
            scale=data.get("scale"),
            regions=_str_list(data.get("regions")),
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "name": self.name or None,
            "stack": self.stack,
            "scale": self.scale,
            "regions": self.regions,
        })


@dataclass
class Constraints:
    compliance: list[str] = field(default_factory=list)  # SOC2, HIPAA, GDPR, PCI-DSS
    budget_monthly: float | None = None
    budget_per_request: float | None = None
    self_hosted: bool | None = None
    data_residency: list[str] = field(default_factory=list)  # us, eu, apac
    must_have_features: list[str] = field(default_factory=list)
    dealbreakers: list[str] = field(default_factory=list)
    required_sdk_languages: list[str] = field(default_factory=list)
    vendor_lock_in_tolerance: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Constraints:
        data = data or {}
        budget = data.get("budgetCeiling") or {}
        return cls(
            compliance=_str_list(data.get("compliance")),
            budget_monthly=budget.get("monthly"),
            budget_per_request=budget.get("perRequest"),
            self_hosted=data.get("selfHosted"),
            data_residency=_str_list(data.get("dataResidency")),
            must_have_features=_str_list(data.get("mustHaveFeatures")),
            dealbreakers=_str_list(data.get("dealbreakers")),
            required_sdk_languages=_str_list(data.get("requiredSdkLanguages")),
            vendor_lock_in_tolerance=data.get("vendorLockInTolerance"),
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "compliance": self.compliance,
            "budgetCeiling": _compact({
                "monthly": self.budget_monthly,
                "perRequest": self.budget_per_request,
            }),
            "selfHosted": self.self_hosted,
            "dataResidency": self.data_residency,
            "mustHaveFeatures": self.must_have_features,
            "dealbreakers": self.dealbreakers,
            "requiredSdkLanguages": self.required_sdk_languages,
            "vendorLockInTolerance": self.vendor_lock_in_tolerance,
        })


@dataclass
class Preferences:
    prioritize: list[str] = field(default_factory=list)  # ranked strengths
    risk_tolerance: str | None = None  # "low" | "moderate" | "high"
    preferred_providers: list[str] = field(default_factory=list)
    avoid_providers: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Preferences:
        data = data or {}
        return cls(
            prioritize=_str_list(data.get("prioritize")),
            risk_tolerance=data.get("riskTolerance"),
            preferred_providers=_str_list(data.get("preferredProviders")),
            avoid_providers=_str_list(data.get("avoidProviders")),
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "prioritize": self.prioritize,
            "riskTolerance": self.risk_tolerance,
            "preferredProviders": self.preferred_providers,
            "avoidProviders": self.avoid_providers,
        })


@dataclass
class EffectiveProfile:
    project: ProjectContext = field(default_factory=ProjectContext)
    constraints: Constraints = field(default_factory=Constraints)
    preferences: Preferences = field(default_factory=Preferences)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> EffectiveProfile:
        data = data or {}
        return cls(
            project=ProjectContext.from_dict(data.get("project")),
            constraints=Constraints.from_dict(data.get("constraints")),
            preferences=Preferences.from_dict(data.get("preferences")),
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "project": self.project.to_dict(),
            "constraints": self.constraints.to_dict(),
            "preferences": self.preferences.to_dict(),
        })


@dataclass
class Gap:
    field: str  # "constraints.compliance"
    question: str
    relevance: str
    impact: str  # "high" | "medium" | "low"
    options: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "field": self.field,
            "question": self.question,
            "options": self.options,
            "relevance": self.relevance,
            "impact": self.impact,
        })


# ---------------------------------------------------------------------------
# Decisions and taste
# ---------------------------------------------------------------------------


@dataclass
class UserDecision:
    id: str  # UUID
    api: str  # provider name as chosen, e.g. "Resend"
    category: str
    outcome: str  # "positive" | "negative" | "neutral"
    context: str | None = None  # "high volume", "billing portal"
    notes: str | None = None
    notes_private: bool = False  # keep notes out of cross-project taste
    date: datetime = field(default_factory=utcnow)
    recorded_by: str = "agent"  # "user" | "agent"
    tool_version: str = TOOL_VERSION

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UserDecision:
        return cls(
            id=data["id"],
            api=data["api"],
            category=data["category"],
            outcome=data.get("outcome", "neutral"),
            context=data.get("context"),
            notes=data.get("notes"),
            notes_private=bool(data.get("notesPrivate", False)),
            date=parse_timestamp(data.get("date")) or utcnow(),
            recorded_by=data.get("recordedBy", "agent"),
            tool_version=data.get("toolVersion", TOOL_VERSION),
        )

    def to_dict(self) -> dict[str, Any]:
        data = {
            "id": self.id,
            "api": self.api,
            "category": self.category,
            "outcome": self.outcome,
            "context": self.context,
            "notes": self.notes,
            "notesPrivate": self.notes_private,
            "date": self.date.isoformat(),
            "recordedBy": self.recorded_by,
            "toolVersion": self.tool_version,
        }
        return {k: v for k, v in data.items() if v is not None}


@dataclass
class LedgerEntry:
    """A decision together with the project it came from."""

    decision: UserDecision
    project_name: str
    project_path: str


@dataclass
class ExperienceSummary:
    id: str  # decision id
    project: str
    api: str
    category: str
    outcome: str
    date: datetime
    context: str | None = None
    note_summary: str | None = None  # truncated; None when notes are private

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "id": self.id,
            "project": self.project,
            "api": self.api,
            "category": self.category,
            "outcome": self.outcome,
            "context": self.context,
            "noteSummary": self.note_summary,
            "date": self.date.isoformat(),
        })


@dataclass
class ScoredPattern:
    id: str
    signal: str  # "prefers:Resend:email"
    confidence: float  # 0.0 - 1.0
    evidence_ids: list[str] = field(default_factory=list)
    first_observed: datetime | None = None
    last_reinforced: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "signal": self.signal,
            "confidence": round(self.confidence, 4),
            "evidenceIds": list(self.evidence_ids),
            "firstObserved": self.first_observed.isoformat() if self.first_observed else None,
            "lastReinforced": self.last_reinforced.isoformat() if self.last_reinforced else None,
        }


@dataclass
class ComputedTaste:
    experiences: list[ExperienceSummary] = field(default_factory=list)
    patterns: list[ScoredPattern] = field(default_factory=list)
    computed_at: datetime = field(default_factory=utcnow)


@dataclass
class RegisteredProject:
    path: str
    name: str
    added_at: str
    share_to_global_taste: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RegisteredProject:
        return cls(
            path=data["path"],
            name=data.get("name", ""),
            added_at=data.get("addedAt", ""),
            share_to_global_taste=bool(data.get("shareToGlobalTaste", True)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "name": self.name,
            "addedAt": self.added_at,
            "shareToGlobalTaste": self.share_to_global_taste,
        }
