"""One-line-per-fact rendering of an effective profile."""

from __future__ import annotations

from stacksherpa.models import EffectiveProfile


def _money(value: float) -> str:
    return f"{value:g}"


def summarize_profile(effective: EffectiveProfile) -> str:
    parts: list[str] = []

    p = effective.project
    if p.name:
        parts.append(f"Project: {p.name}")
    stack = "/".join(
        v for v in (p.stack.get("language"), p.stack.get("framework"), p.stack.get("hosting")) if v
    )
    if stack:
        parts.append(f"Stack: {stack}")
    if p.scale:
        parts.append(f"Scale: {p.scale}")
    if p.regions:
        parts.append(f"Regions: {', '.join(p.regions)}")

    c = effective.constraints
    if c.compliance:
        parts.append(f"Compliance: {', '.join(c.compliance)}")
    if c.budget_monthly:
        parts.append(f"Budget: ${_money(c.budget_monthly)}/mo max")
    if c.budget_per_request:
        parts.append(f"Per-request budget: ${_money(c.budget_per_request)} max")
    if c.self_hosted is not None:
        parts.append(f"Self-hosted: {'required' if c.self_hosted else 'not required'}")
    if c.data_residency:
        parts.append(f"Data residency: {', '.join(c.data_residency)}")
    if c.must_have_features:
        parts.append(f"Required features: {', '.join(c.must_have_features)}")
    if c.dealbreakers:
        parts.append(f"Dealbreakers: {', '.join(c.dealbreakers)}")
    if c.required_sdk_languages:
        parts.append(f"SDK languages: {', '.join(c.required_sdk_languages)}")

    pr = effective.preferences
    if pr.prioritize:
        parts.append(f"Priorities: {' > '.join(pr.prioritize)}")
    if pr.risk_tolerance:
        parts.append(f"Risk tolerance: {pr.risk_tolerance}")
    if pr.preferred_providers:
        parts.append(f"Preferred: {', '.join(pr.preferred_providers)}")
    if pr.avoid_providers:
        parts.append(f"Avoid: {', '.join(pr.avoid_providers)}")

    return "\n".join(parts) if parts else "No profile configured"
