"""Tests for stacksherpa.models: dict conversion and derived properties."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from stacksherpa.models import (
    Constraints,
    EffectiveProfile,
    KnownIssue,
    Pricing,
    Provider,
    ScoredPattern,
    UserDecision,
    parse_timestamp,
    slugify,
)


class TestParseTimestamp:
    def test_zulu_suffix(self):
        parsed = parse_timestamp("2025-01-02T03:04:05Z")
        assert parsed == datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    def test_date_only_is_utc_midnight(self):
        assert parse_timestamp("2025-01-02") == datetime(2025, 1, 2, tzinfo=timezone.utc)

    def test_invalid_returns_none(self):
        assert parse_timestamp("not a date") is None
        assert parse_timestamp(None) is None
        assert parse_timestamp("") is None


class TestProvider:
    def test_from_dict_camel_case(self):
        provider = Provider.from_dict({
            "id": "stripe",
            "name": "Stripe",
            "category": "Payments",
            "compliance": ["PCI-DSS", "SOC2"],
            "bestFor": ["startup", "growth"],
            "strengths": ["dx"],
            "hasFreeTier": False,
            "knownIssues": [{"id": "i1", "symptom": "x", "severity": "High"}],
            "lastVerified": "2025-01-01",
        })
        assert provider.category == "payments"
        assert provider.best_for == ["startup", "growth"]
        assert provider.has_free_tier is False
        assert provider.known_issues[0].severity == "high"

    def test_legacy_scale_field(self):
        provider = Provider.from_dict({"name": "Mailgun", "category": "email", "scale": ["growth"]})
        assert provider.best_for == ["growth"]

    def test_id_slugified_from_name(self):
        assert Provider.from_dict({"name": "AWS SES", "category": "email"}).id == "aws-ses"

    def test_missing_name_raises(self):
        with pytest.raises(ValueError, match="name"):
            Provider.from_dict({"category": "email"})

    def test_free_tier_from_flag_only(self):
        assert Provider(id="a", name="A", category="email", has_free_tier=True).offers_free_tier

    def test_free_tier_from_pricing_only(self):
        provider = Provider(
            id="a", name="A", category="email", pricing=Pricing(free_tier="3k emails")
        )
        assert provider.has_free_tier is None
        assert provider.offers_free_tier

    def test_no_free_tier(self):
        provider = Provider(id="a", name="A", category="email", pricing=Pricing())
        assert not provider.offers_free_tier

    def test_has_strength_case_insensitive(self):
        provider = Provider(id="a", name="A", category="email", strengths=["DX"])
        assert provider.has_strength("dx")
        assert not provider.has_strength("cost")

    def test_to_dict_round_trip(self, resend: Provider):
        assert Provider.from_dict(resend.to_dict()) == resend


class TestKnownIssue:
    def test_resolved(self):
        assert KnownIssue(id="1", symptom="x", resolved_at="2025-01-01").is_resolved
        assert not KnownIssue(id="1", symptom="x").is_resolved


class TestEffectiveProfile:
    def test_budget_ceiling_shape(self):
        constraints = Constraints.from_dict({"budgetCeiling": {"monthly": 50}})
        assert constraints.budget_monthly == 50
        assert constraints.to_dict() == {"budgetCeiling": {"monthly": 50}}

    def test_empty_profile_serializes_empty(self):
        assert EffectiveProfile().to_dict() == {}

    def test_from_dict(self):
        profile = EffectiveProfile.from_dict({
            "project": {"name": "shop", "scale": "startup", "stack": {"language": "python"}},
            "preferences": {"prioritize": ["dx", "cost"], "avoidProviders": ["SendGrid"]},
        })
        assert profile.project.scale == "startup"
        assert profile.project.stack == {"language": "python"}
        assert profile.preferences.avoid_providers == ["SendGrid"]


class TestUserDecision:
    def test_round_trip(self):
        decision = UserDecision(
            id="d1",
            api="Resend",
            category="email",
            outcome="positive",
            context="mvp",
            date=datetime(2025, 1, 1, tzinfo=timezone.utc),
        )
        data = decision.to_dict()
        assert data["notesPrivate"] is False
        assert "notes" not in data
        assert UserDecision.from_dict(data) == decision


class TestScoredPattern:
    def test_to_dict_rounds_confidence(self):
        pattern = ScoredPattern(id="p", signal="positive:email", confidence=0.123456)
        assert pattern.to_dict()["confidence"] == 0.1235


def test_slugify():
    assert slugify("Amazon SES (v2)") == "amazon-ses-v2"
