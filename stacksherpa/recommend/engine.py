"""Recommendation engine: category -> candidates -> scored ranking -> recommendation.

Pulls together the effective profile, cross-project taste and the catalog,
scores every candidate and explains the winner. Empty categories and
categories where the constraints eliminate everyone are reported as
statuses, not errors.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from stacksherpa.categories import CATEGORY_ALIASES, normalize_category
from stacksherpa.models import ExperienceSummary, Gap, Provider, ScoredPattern, UserDecision
from stacksherpa.profile.gaps import count_high_impact, detect_gaps
from stacksherpa.profile.store import ProfileStore
from stacksherpa.profile.summary import summarize_profile
from stacksherpa.recommend.scoring import (
    DEFAULT_WEIGHTS,
    EcosystemContext,
    ScoringWeights,
    missing_compliance,
    score_provider,
)
from stacksherpa.storage.catalog import Catalog
from stacksherpa.storage.ledger import DecisionLedger
from stacksherpa.taste.patterns import (
    PatternEngine,
    describe_pattern,
    filter_experiences_for_category,
    filter_experiences_for_provider,
    filter_patterns_for_category,
    filter_patterns_for_provider,
)

logger = logging.getLogger(__name__)

MAX_ALTERNATIVES = 3
MAX_EVIDENCE_EXPERIENCES = 5
HIGH_CONFIDENCE_SCORE = 50
MEDIUM_CONFIDENCE_SCORE = 25

STATUS_RECOMMENDED = "recommended"
STATUS_NO_CANDIDATES = "no_candidates"
STATUS_NONE = "none"


@dataclass
class Alternative:
    provider_id: str
    name: str
    score: float
    tradeoff: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "providerId": self.provider_id,
            "name": self.name,
            "score": self.score,
            "tradeoff": self.tradeoff,
        }


@dataclass
class RankedProvider:
    provider_id: str
    name: str
    score: float


@dataclass
class Exclusion:
    provider_id: str
    name: str
    reason: str


@dataclass
class AppliedPattern:
    pattern: ScoredPattern
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {**self.pattern.to_dict(), "description": self.description}


@dataclass
class Recommendation:
    category: str
    status: str
    confidence: str
    provider_id: str | None = None
    provider_name: str | None = None
    package: str | None = None
    score: float | None = None
    rationale: list[str] = field(default_factory=list)
    alternatives: list[Alternative] = field(default_factory=list)
    gaps: list[Gap] = field(default_factory=list)
    experiences: list[ExperienceSummary] = field(default_factory=list)
    patterns: list[AppliedPattern] = field(default_factory=list)
    ranking: list[RankedProvider] = field(default_factory=list)
    excluded: list[Exclusion] = field(default_factory=list)
    profile_summary: str = ""
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category,
            "status": self.status,
            "confidence": self.confidence,
            "providerId": self.provider_id,
            "providerName": self.provider_name,
            "package": self.package or None,
            "score": self.score,
            "rationale": self.rationale,
            "alternatives": [a.to_dict() for a in self.alternatives],
            "gaps": [g.to_dict() for g in self.gaps],
            "evidence": {
                "experiences": [e.to_dict() for e in self.experiences],
                "patterns": [p.to_dict() for p in self.patterns],
            },
            "ranking": [
                {"providerId": r.provider_id, "name": r.name, "score": r.score}
                for r in self.ranking
            ],
            "excluded": [
                {"providerId": x.provider_id, "name": x.name, "reason": x.reason}
                for x in self.excluded
            ],
            "profileSummary": self.profile_summary,
            "message": self.message,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    def to_text(self) -> str:
        if self.status != STATUS_RECOMMENDED:
            lines = [self.message]
            for x in self.excluded:
                lines.append(f"  - {x.name}: {x.reason}")
        else:
            lines = [
                f"Recommended {self.category} provider: {self.provider_name} "
                f"(score {self.score:g}, {self.confidence} confidence)",
            ]
            if self.package:
                lines.append(f"  Package: {self.package}")
            for reason in self.rationale:
                lines.append(f"  - {reason}")
            if self.alternatives:
                lines.append("")
                lines.append("Alternatives:")
                for alt in self.alternatives:
                    lines.append(f"  - {alt.name} (score {alt.score:g}): {alt.tradeoff}")
            if self.patterns:
                lines.append("")
                lines.append("Taste:")
                for p in self.patterns:
                    lines.append(f"  - {p.description}")

        if self.gaps:
            lines.append("")
            lines.append("Open questions:")
            for gap in self.gaps:
                options = f" [{', '.join(gap.options)}]" if gap.options else ""
                lines.append(f"  - ({gap.impact}) {gap.question}{options}")
        return "\n".join(lines)


def confidence_tier(score: float, high_impact_gaps: int) -> str:
    """Tier from the raw score, capped by unanswered high-impact questions."""
    if score >= HIGH_CONFIDENCE_SCORE:
        tier = "high"
    elif score >= MEDIUM_CONFIDENCE_SCORE:
        tier = "medium"
    else:
        tier = "low"

    if high_impact_gaps >= 2:
        return "low"
    if high_impact_gaps == 1 and tier == "high":
        return "medium"
    return tier


def describe_tradeoff(alternative: Provider, winner: Provider) -> str:
    notes: list[str] = []
    if alternative.offers_free_tier and not winner.offers_free_tier:
        notes.append("has a free tier")
    if alternative.has_strength("dx") and not winner.has_strength("dx"):
        notes.append("stronger developer experience")
    if alternative.self_hostable and not winner.self_hostable:
        notes.append("self-hostable")
    if not notes:
        return "Lower overall fit for this profile"
    text = "; ".join(notes)
    return text[0].upper() + text[1:]


def ecosystem_context_from(
    decisions: list[UserDecision], ecosystems: dict[str, str]
) -> EcosystemContext:
    """Ecosystems of providers this project has had positive experience with."""
    used = {
        ecosystems[d.api.lower()]
        for d in decisions
        if d.outcome == "positive" and d.api.lower() in ecosystems
    }
    return EcosystemContext(used_ecosystems=used)


class Recommender:
    """Ranks catalog providers for a category and explains the pick."""

    def __init__(
        self,
        catalog: Catalog,
        profiles: ProfileStore,
        ledger: DecisionLedger,
        patterns: PatternEngine,
        aliases: dict[str, str] | None = None,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
    ) -> None:
        self._catalog = catalog
        self._profiles = profiles
        self._ledger = ledger
        self._patterns = patterns
        self._aliases = CATEGORY_ALIASES if aliases is None else aliases
        self._weights = weights

    def recommend(
        self, category: str, project_dir: Path, now: datetime | None = None
    ) -> Recommendation:
        normalized = normalize_category(category, self._aliases)

        effective = self._profiles.load_effective(project_dir).effective
        gaps = detect_gaps(effective, normalized)
        summary = summarize_profile(effective)

        taste = self._patterns.compute()
        category_patterns = filter_patterns_for_category(taste.patterns, normalized)
        experiences = filter_experiences_for_category(taste.experiences, normalized)

        candidates = self._catalog.get_providers_by_category(normalized)
        if not candidates:
            logger.info(f"No providers in catalog for category '{normalized}'")
            return Recommendation(
                category=normalized,
                status=STATUS_NO_CANDIDATES,
                confidence="low",
                gaps=gaps,
                profile_summary=summary,
                message=f"No providers found for category '{normalized}'",
            )

        excluded: list[Exclusion] = []
        avoid = {name.lower() for name in effective.preferences.avoid_providers}
        eligible: list[Provider] = []
        for provider in candidates:
            if provider.name.lower() in avoid:
                excluded.append(Exclusion(provider.id, provider.name, "on the avoid list"))
            else:
                eligible.append(provider)

        ecosystem_ctx = ecosystem_context_from(
            self._ledger.load_all(project_dir), self._catalog.get_provider_ecosystems()
        )

        scored: list[tuple[Provider, float]] = []
        for provider in eligible:
            missing = missing_compliance(provider, effective)
            if missing:
                excluded.append(
                    Exclusion(provider.id, provider.name, f"missing compliance: {', '.join(missing)}")
                )
                continue
            # a provider past the compliance gate is ranked whatever its score
            score = score_provider(
                provider,
                effective,
                experiences,
                category_patterns,
                ecosystem_ctx,
                weights=self._weights,
                now=now,
            )
            scored.append((provider, score))

        # sorted() is stable: ties keep catalog order
        ranked = sorted(scored, key=lambda pair: pair[1], reverse=True)
        ranking = [RankedProvider(p.id, p.name, s) for p, s in ranked]

        if not ranked:
            return Recommendation(
                category=normalized,
                status=STATUS_NONE,
                confidence="low",
                gaps=gaps,
                excluded=excluded,
                profile_summary=summary,
                message=(
                    f"All {len(candidates)} {normalized} providers were eliminated "
                    "by the project's constraints"
                ),
            )

        winner, top_score = ranked[0]
        alternatives = [
            Alternative(p.id, p.name, s, describe_tradeoff(p, winner))
            for p, s in ranked[1 : MAX_ALTERNATIVES + 1]
        ]
        winner_experiences = filter_experiences_for_provider(experiences, winner.name)
        applied = [
            AppliedPattern(p, describe_pattern(p))
            for p in filter_patterns_for_provider(category_patterns, winner.name)
        ]
        rationale = self._rationale(
            winner, effective.project.scale, ecosystem_ctx, winner_experiences
        )

        return Recommendation(
            category=normalized,
            status=STATUS_RECOMMENDED,
            confidence=confidence_tier(top_score, count_high_impact(gaps)),
            provider_id=winner.id,
            provider_name=winner.name,
            package=winner.package,
            score=top_score,
            rationale=rationale,
            alternatives=alternatives,
            gaps=gaps,
            experiences=winner_experiences[:MAX_EVIDENCE_EXPERIENCES],
            patterns=applied,
            ranking=ranking,
            excluded=excluded,
            profile_summary=summary,
            message=f"Recommended {winner.name} for {normalized}",
        )

    @staticmethod
    def _rationale(
        provider: Provider,
        scale: str | None,
        ecosystem_ctx: EcosystemContext,
        experiences: list[ExperienceSummary],
    ) -> list[str]:
        reasons: list[str] = []
        if scale and scale in provider.best_for:
            reasons.append(f"Built for {scale}-scale projects")
        if provider.strengths:
            reasons.append(f"Strengths: {', '.join(provider.strengths[:2])}")
        if provider.ecosystem and provider.ecosystem in ecosystem_ctx.used_ecosystems:
            reasons.append(f"Fits the {provider.ecosystem} ecosystem this project already uses")

        positive = sum(1 for e in experiences if e.outcome == "positive")
        negative = sum(1 for e in experiences if e.outcome == "negative")
        if positive:
            reasons.append(f"{positive} positive past experience(s) with {provider.name}")
        if negative:
            reasons.append(f"{negative} negative past experience(s) with {provider.name}")
        return reasons
