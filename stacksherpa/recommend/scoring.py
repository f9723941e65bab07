"""Provider scoring.

Scores one catalog provider against the effective profile, past experiences
in the category, and inferred taste patterns. A score of -1 means the
provider is disqualified by a hard constraint.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from stacksherpa.models import (
    EffectiveProfile,
    ExperienceSummary,
    Provider,
    ScoredPattern,
    parse_timestamp,
    utcnow,
)

DISQUALIFIED = -1.0


@dataclass(frozen=True)
class ScoringWeights:
    compliance_match: float = 20.0
    scale_match: float = 15.0
    priority_step: float = 5.0  # per rank: top of N priorities earns N * step
    free_tier: float = 10.0
    free_tier_scales: tuple[str, ...] = ("hobby", "startup")
    ecosystem_affinity: float = 20.0
    positive_experience: float = 8.0
    negative_experience: float = -12.0
    prefers_pattern: float = 10.0  # multiplied by confidence
    dislikes_pattern: float = -15.0  # multiplied by confidence
    stale_after_days: int = 90
    stale_penalty: float = -5.0
    critical_issue_penalty: float = -10.0


DEFAULT_WEIGHTS = ScoringWeights()


@dataclass
class EcosystemContext:
    """Ecosystems the project already has good experience with."""

    used_ecosystems: set[str] = field(default_factory=set)


def _lower_set(values: list[str]) -> set[str]:
    return {v.lower() for v in values}


def missing_compliance(provider: Provider, effective: EffectiveProfile) -> list[str]:
    """Required certifications the provider does not hold, in profile order."""
    held = _lower_set(provider.compliance)
    return [c for c in effective.constraints.compliance if c.lower() not in held]


def score_provider(
    provider: Provider,
    effective: EffectiveProfile,
    experiences: list[ExperienceSummary],
    patterns: list[ScoredPattern],
    ecosystem_context: EcosystemContext | None = None,
    *,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    now: datetime | None = None,
) -> float:
    score = 0.0

    if effective.constraints.compliance:
        if missing_compliance(provider, effective):
            return DISQUALIFIED
        score += weights.compliance_match

    scale = effective.project.scale
    if scale and scale in provider.best_for:
        score += weights.scale_match

    priorities = effective.preferences.prioritize
    for i, priority in enumerate(priorities):
        if provider.has_strength(priority):
            score += (len(priorities) - i) * weights.priority_step

    if scale in weights.free_tier_scales and provider.offers_free_tier:
        score += weights.free_tier

    if ecosystem_context and provider.ecosystem:
        if provider.ecosystem in ecosystem_context.used_ecosystems:
            score += weights.ecosystem_affinity

    name = provider.name.lower()
    for exp in experiences:
        if exp.api.lower() != name:
            continue
        if exp.outcome == "positive":
            score += weights.positive_experience
        elif exp.outcome == "negative":
            score += weights.negative_experience

    for pattern in patterns:
        if name not in pattern.signal.lower():
            continue
        if pattern.signal.startswith("prefers:"):
            score += pattern.confidence * weights.prefers_pattern
        elif pattern.signal.startswith("dislikes:"):
            score += pattern.confidence * weights.dislikes_pattern

    verified = parse_timestamp(provider.last_verified)
    if verified is not None:
        days_since = ((now or utcnow()) - verified).days
        if days_since > weights.stale_after_days:
            score += weights.stale_penalty

    if any(i.severity == "critical" and not i.is_resolved for i in provider.known_issues):
        score += weights.critical_issue_penalty

    return score
