"""Pattern inference over recorded decisions.

Every decision emits a few structured signals (``prefers:<api>:<category>``,
``negative:<category>``, ``context:migration`` ...). Each signal accumulates a
decay-weighted score across all decisions that produced it; the score is
normalized into a confidence and weak patterns are dropped. Patterns are soft
state: they carry their evidence ids and are recomputed on demand.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime

from stacksherpa.config import DEFAULT_DECAY_HALF_LIFE_DAYS
from stacksherpa.models import (
    ComputedTaste,
    ExperienceSummary,
    LedgerEntry,
    ScoredPattern,
    UserDecision,
    utcnow,
)
from stacksherpa.storage.ledger import DecisionLedger, to_experience_summary
from stacksherpa.taste.cache import PatternCache

logger = logging.getLogger(__name__)

CONFIDENCE_THRESHOLD = 0.2
MIN_EVIDENCE_DENOMINATOR = 3
SECONDS_PER_DAY = 86400.0

OUTCOME_CONTRIBUTIONS = {
    "positive": 1.0,
    "negative": -0.5,
    "neutral": 0.0,
}

# context tag -> substrings that trigger it
CONTEXT_VOCABULARY: dict[str, tuple[str, ...]] = {
    "high-volume": ("high volume", "scale"),
    "early-stage": ("startup", "mvp"),
    "enterprise": ("enterprise", "compliance"),
    "migration": ("migration", "switching"),
}


def detect_signals(decision: UserDecision) -> list[str]:
    signals: list[str] = []

    if decision.outcome == "positive":
        signals.append(f"prefers:{decision.api}:{decision.category}")
        signals.append(f"positive:{decision.category}")
    elif decision.outcome == "negative":
        signals.append(f"dislikes:{decision.api}:{decision.category}")
        signals.append(f"negative:{decision.category}")

    if decision.context:
        text = decision.context.lower()
        for tag, needles in CONTEXT_VOCABULARY.items():
            if any(n in text for n in needles):
                signals.append(f"context:{tag}")

    return signals


def decay_weight(date: datetime, half_life_days: float, now: datetime) -> float:
    age_days = (now - date).total_seconds() / SECONDS_PER_DAY
    return 0.5 ** (age_days / half_life_days)


@dataclass
class _Accumulator:
    signal: str
    raw_score: float = 0.0
    evidence: list[UserDecision] = field(default_factory=list)

    def add(self, decision: UserDecision, weight: float) -> None:
        self.evidence.append(decision)
        self.raw_score += weight * OUTCOME_CONTRIBUTIONS.get(decision.outcome, 0.0)


def compute_patterns(
    entries: list[LedgerEntry],
    decay_half_life_days: float = DEFAULT_DECAY_HALF_LIFE_DAYS,
    now: datetime | None = None,
) -> ComputedTaste:
    """Score every signal found in ``entries``. Pure given ``now``."""
    now = now or utcnow()
    accumulators: dict[str, _Accumulator] = {}

    for entry in entries:
        decision = entry.decision
        weight = decay_weight(decision.date, decay_half_life_days, now)
        for signal in detect_signals(decision):
            accumulators.setdefault(signal, _Accumulator(signal)).add(decision, weight)

    patterns: list[ScoredPattern] = []
    for acc in accumulators.values():
        confidence = acc.raw_score / max(len(acc.evidence), MIN_EVIDENCE_DENOMINATOR)
        confidence = min(1.0, max(0.0, confidence))
        if confidence < CONFIDENCE_THRESHOLD:
            continue

        evidence = sorted(acc.evidence, key=lambda d: d.date)
        patterns.append(
            ScoredPattern(
                id=str(uuid.uuid4()),
                signal=acc.signal,
                confidence=confidence,
                evidence_ids=[d.id for d in evidence],
                first_observed=evidence[0].date,
                last_reinforced=evidence[-1].date,
            )
        )

    # sorted() is stable, so equal confidences keep first-seen order
    patterns = sorted(patterns, key=lambda p: p.confidence, reverse=True)

    return ComputedTaste(
        experiences=[to_experience_summary(e.decision, e.project_name) for e in entries],
        patterns=patterns,
        computed_at=now,
    )


def filter_patterns_for_category(patterns: list[ScoredPattern], category: str) -> list[ScoredPattern]:
    """Patterns for ``category`` plus every general ``context:`` pattern."""
    needle = f":{category.lower()}"
    return [p for p in patterns if needle in p.signal or p.signal.startswith("context:")]


def filter_patterns_for_provider(patterns: list[ScoredPattern], provider: str) -> list[ScoredPattern]:
    needle = provider.lower()
    return [p for p in patterns if needle in p.signal.lower()]


def filter_experiences_for_category(
    experiences: list[ExperienceSummary], category: str
) -> list[ExperienceSummary]:
    wanted = category.lower()
    return [e for e in experiences if e.category.lower() == wanted]


def filter_experiences_for_provider(
    experiences: list[ExperienceSummary], provider: str
) -> list[ExperienceSummary]:
    wanted = provider.lower()
    return [e for e in experiences if e.api.lower() == wanted]


@dataclass
class ParsedSignal:
    type: str  # prefers | dislikes | positive | negative | context | unknown
    provider: str | None = None
    category: str | None = None
    context: str | None = None


def parse_signal(signal: str) -> ParsedSignal:
    parts = signal.split(":")
    kind = parts[0]

    if kind in ("prefers", "dislikes") and len(parts) == 3:
        return ParsedSignal(kind, provider=parts[1], category=parts[2])
    if kind in ("positive", "negative") and len(parts) == 2:
        return ParsedSignal(kind, category=parts[1])
    if kind == "context" and len(parts) == 2:
        return ParsedSignal(kind, context=parts[1])
    return ParsedSignal("unknown")


def describe_pattern(pattern: ScoredPattern) -> str:
    parsed = parse_signal(pattern.signal)
    pct = round(pattern.confidence * 100)

    if parsed.type == "prefers":
        return f"Prefers {parsed.provider} for {parsed.category} ({pct}% confident)"
    if parsed.type == "dislikes":
        return f"Had issues with {parsed.provider} for {parsed.category} ({pct}% confident)"
    if parsed.type == "positive":
        return f"Generally positive experiences with {parsed.category} APIs ({pct}% confident)"
    if parsed.type == "negative":
        return f"Generally challenging experiences with {parsed.category} APIs ({pct}% confident)"
    if parsed.type == "context":
        return f"Frequently works in {parsed.context} contexts ({pct}% confident)"
    return f"Pattern: {pattern.signal} ({pct}% confident)"


class PatternEngine:
    """Computes taste from the shared ledgers, served through a PatternCache."""

    def __init__(
        self,
        ledger: DecisionLedger,
        cache: PatternCache,
        decay_half_life_days: float = DEFAULT_DECAY_HALF_LIFE_DAYS,
    ) -> None:
        self._ledger = ledger
        self._cache = cache
        self._half_life = decay_half_life_days

    def compute(self) -> ComputedTaste:
        cached = self._cache.get(self._half_life)
        if cached is not None:
            return cached

        entries = self._ledger.load_all_active()
        taste = compute_patterns(entries, self._half_life)
        logger.debug(
            f"Computed {len(taste.patterns)} patterns from {len(entries)} decisions"
        )
        self._cache.set(self._half_life, taste)
        return taste
