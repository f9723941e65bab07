"""Gap detection: unanswered profile questions that matter for a category.

Gaps never block a recommendation. They lower its confidence and are shown
to the user as follow-up questions.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from stacksherpa.models import EffectiveProfile, Gap
from stacksherpa.profile.document import get_path

SCALE_OPTIONS = ["hobby", "startup", "growth", "enterprise"]


@dataclass(frozen=True)
class GapRule:
    path: str
    question: str
    relevance: str
    impact: str  # "high" | "medium" | "low"
    options: tuple[str, ...] = field(default_factory=tuple)

    def to_gap(self) -> Gap:
        return Gap(
            field=self.path,
            question=self.question,
            relevance=self.relevance,
            impact=self.impact,
            options=list(self.options),
        )


CATEGORY_GAP_RULES: dict[str, list[GapRule]] = {
    "email": [
        GapRule(
            "constraints.compliance",
            "Does this project have compliance requirements (SOC2, HIPAA, GDPR)?",
            "Affects which email providers are viable for regulated industries",
            "high",
            ("SOC2", "HIPAA", "GDPR", "None"),
        ),
        GapRule(
            "project.regions",
            "Which regions will your users be in?",
            "Email deliverability varies by region",
            "medium",
            ("us", "eu", "apac", "global"),
        ),
    ],
    "payments": [
        GapRule(
            "constraints.compliance",
            "Does this project require PCI-DSS compliance?",
            "Payment processing has strict compliance requirements",
            "high",
            ("PCI-DSS", "SOC2", "None"),
        ),
        GapRule(
            "project.regions",
            "Which regions will you accept payments from?",
            "Payment provider availability varies by region",
            "high",
            ("us", "eu", "global"),
        ),
    ],
    "auth": [
        GapRule(
            "constraints.selfHosted",
            "Do you need self-hosted authentication?",
            "Determines whether cloud-only providers are viable",
            "high",
            ("Yes", "No"),
        ),
        GapRule(
            "constraints.compliance",
            "Any compliance requirements for auth (SOC2, HIPAA)?",
            "Auth providers have different compliance certifications",
            "medium",
            ("SOC2", "HIPAA", "None"),
        ),
    ],
    "ai": [
        GapRule(
            "constraints.budgetCeiling.monthly",
            "What's your monthly budget for AI API costs?",
            "AI APIs have significant cost differences",
            "high",
        ),
        GapRule(
            "project.scale",
            "What scale is this project?",
            "Affects rate limits and pricing tiers",
            "medium",
            tuple(SCALE_OPTIONS),
        ),
    ],
    "storage": [
        GapRule(
            "constraints.dataResidency",
            "Any data residency requirements?",
            "Storage providers have different regional availability",
            "high",
            ("us", "eu", "apac", "None"),
        ),
    ],
}

GENERIC_GAP_RULES: list[GapRule] = [
    GapRule(
        "project.scale",
        "What scale is this project?",
        "Affects pricing and feature recommendations",
        "medium",
        tuple(SCALE_OPTIONS),
    ),
]


def detect_gaps(effective: EffectiveProfile, category: str) -> list[Gap]:
    """Return the profile questions still unanswered for ``category``."""
    rules = CATEGORY_GAP_RULES.get(category.lower(), GENERIC_GAP_RULES)
    doc = effective.to_dict()
    gaps: list[Gap] = []
    for rule in rules:
        value = get_path(doc, rule.path)
        if value is None or value == []:
            gaps.append(rule.to_gap())
    return gaps


def count_high_impact(gaps: list[Gap]) -> int:
    return sum(1 for g in gaps if g.impact == "high")
