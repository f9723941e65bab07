"""Merge global defaults with a local project profile.

Every mergeable field has exactly one policy in ``FIELD_POLICIES``. The
merge walks that table, so a field missing from it never reaches the
effective profile.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from stacksherpa.models import EffectiveProfile
from stacksherpa.profile.document import get_path, set_path


class MergePolicy(str, Enum):
    OVERRIDE = "override"  # local wins
    UNION = "union"  # deduplicated global + local
    MIN = "min"  # stricter (smaller) number wins


def _override(global_value: Any, local_value: Any) -> Any:
    return local_value


def _union(global_value: Any, local_value: Any) -> Any:
    if not (isinstance(global_value, list) and isinstance(local_value, list)):
        return local_value
    merged: list[Any] = []
    for item in global_value + local_value:
        if item not in merged:
            merged.append(item)
    return merged


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _min(global_value: Any, local_value: Any) -> Any:
    if _is_number(global_value) and _is_number(local_value):
        return min(global_value, local_value)
    return local_value


POLICY_FUNCTIONS: dict[MergePolicy, Callable[[Any, Any], Any]] = {
    MergePolicy.OVERRIDE: _override,
    MergePolicy.UNION: _union,
    MergePolicy.MIN: _min,
}

FIELD_POLICIES: dict[str, MergePolicy] = {
    # Project context
    "project.name": MergePolicy.OVERRIDE,
    "project.stack": MergePolicy.OVERRIDE,
    "project.scale": MergePolicy.OVERRIDE,
    "project.regions": MergePolicy.UNION,
    # Constraints: requirements accumulate, ceilings tighten
    "constraints.compliance": MergePolicy.UNION,
    "constraints.dataResidency": MergePolicy.UNION,
    "constraints.mustHaveFeatures": MergePolicy.UNION,
    "constraints.dealbreakers": MergePolicy.UNION,
    "constraints.requiredSdkLanguages": MergePolicy.UNION,
    "constraints.budgetCeiling.monthly": MergePolicy.MIN,
    "constraints.budgetCeiling.perRequest": MergePolicy.MIN,
    "constraints.selfHosted": MergePolicy.OVERRIDE,
    "constraints.vendorLockInTolerance": MergePolicy.OVERRIDE,
    # Preferences: local taste wins, avoid lists accumulate
    "preferences.prioritize": MergePolicy.OVERRIDE,
    "preferences.riskTolerance": MergePolicy.OVERRIDE,
    "preferences.preferredProviders": MergePolicy.OVERRIDE,
    "preferences.avoidProviders": MergePolicy.UNION,
}


def apply_merge_policy(global_value: Any, local_value: Any, policy: MergePolicy) -> Any:
    """Combine two values under ``policy``. A side that is None does not participate."""
    if local_value is None:
        return global_value
    if global_value is None:
        return local_value
    return POLICY_FUNCTIONS[policy](global_value, local_value)


@dataclass
class MergeDetail:
    field: str
    policy: MergePolicy
    global_value: Any
    local_value: Any
    effective_value: Any

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.field,
            "policy": self.policy.value,
            "globalValue": self.global_value,
            "localValue": self.local_value,
            "effectiveValue": self.effective_value,
        }


def merge_documents(
    global_doc: dict[str, Any] | None,
    local_doc: dict[str, Any] | None,
) -> tuple[dict[str, Any], list[MergeDetail]]:
    """Merge two raw documents field by field, returning the merged tree and provenance."""
    global_doc = global_doc or {}
    local_doc = local_doc or {}
    merged: dict[str, Any] = {}
    details: list[MergeDetail] = []

    for path, policy in FIELD_POLICIES.items():
        global_value = get_path(global_doc, path)
        local_value = get_path(local_doc, path)
        if global_value is None and local_value is None:
            continue
        effective = apply_merge_policy(global_value, local_value, policy)
        set_path(merged, path, effective)
        details.append(MergeDetail(path, policy, global_value, local_value, effective))

    return merged, details


def merge_profiles(
    global_doc: dict[str, Any] | None,
    local_doc: dict[str, Any] | None,
) -> tuple[EffectiveProfile, list[MergeDetail]]:
    """Build the effective profile from global defaults and a local profile."""
    merged, details = merge_documents(global_doc, local_doc)
    return EffectiveProfile.from_dict(merged), details
