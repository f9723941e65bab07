"""Dot-path access and surgical updates for JSON configuration documents.

A document is a plain JSON tree (dicts, lists, scalars). Paths such as
``constraints.budgetCeiling.monthly`` walk nested dicts one key at a time.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Collection

_MISSING = object()


def _split(path: str) -> list[str]:
    parts = [p for p in path.split(".") if p]
    if not parts:
        raise ValueError(f"Invalid document path: {path!r}")
    return parts


def get_path(doc: dict[str, Any], path: str, default: Any = None) -> Any:
    """Return the value at ``path``, or ``default`` when any segment is missing."""
    current: Any = doc
    for part in _split(path):
        if not isinstance(current, dict) or part not in current:
            return default
        current = current[part]
    return current


def has_path(doc: dict[str, Any], path: str) -> bool:
    return get_path(doc, path, _MISSING) is not _MISSING


def set_path(doc: dict[str, Any], path: str, value: Any) -> list[str]:
    """Set ``path`` to ``value``, replacing non-dict intermediates with new dicts.

    Returns the dot paths of intermediate dicts that did not exist before.
    """
    parts = _split(path)
    created: list[str] = []
    current = doc
    for depth, part in enumerate(parts[:-1]):
        if part not in current:
            created.append(".".join(parts[: depth + 1]))
        if not isinstance(current.get(part), dict):
            current[part] = {}
        current = current[part]
    current[parts[-1]] = value
    return created


def delete_path(
    doc: dict[str, Any], path: str, prunable: Collection[str] = ()
) -> bool:
    """Delete the key at ``path``. Returns False when it does not exist.

    Only the key itself is removed. Parent dicts left empty are removed too
    when their dot path is listed in ``prunable``.
    """
    parts = _split(path)
    chain: list[dict[str, Any]] = [doc]
    current: Any = doc
    for part in parts[:-1]:
        current = current.get(part) if isinstance(current, dict) else None
        if not isinstance(current, dict):
            return False
        chain.append(current)

    if parts[-1] not in chain[-1]:
        return False
    del chain[-1][parts[-1]]

    for depth in range(len(chain) - 1, 0, -1):
        if chain[depth] or ".".join(parts[:depth]) not in prunable:
            break
        del chain[depth - 1][parts[depth - 1]]
    return True


# ---------------------------------------------------------------------------
# Batched set / append / remove
# ---------------------------------------------------------------------------


@dataclass
class AppliedOp:
    op: str  # "set" | "append" | "remove"
    path: str
    value: Any
    previous_value: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "op": self.op,
            "path": self.path,
            "value": self.value,
            "previousValue": self.previous_value,
        }


@dataclass
class UpdateResult:
    document: dict[str, Any]
    applied_ops: list[AppliedOp] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "updatedProfile": self.document,
            "appliedOps": [op.to_dict() for op in self.applied_ops],
            "warnings": list(self.warnings),
        }


def _as_list(value: Any) -> list[Any]:
    return list(value) if isinstance(value, list) else [value]


def apply_operations(
    document: dict[str, Any],
    set: dict[str, Any] | None = None,
    append: dict[str, Any] | None = None,
    remove: dict[str, Any] | None = None,
) -> UpdateResult:
    """Apply set, then append, then remove operations to a copy of ``document``.

    Operations that cannot be applied are reported in ``warnings``; the rest
    of the batch still goes through. The input document is never modified.
    A ``True`` remove deletes only the key, plus any parents this batch
    created that the deletion leaves empty.
    """
    doc = copy.deepcopy(document)
    result = UpdateResult(document=doc)
    # intermediate dicts this batch created; a remove may prune only these
    created: list[str] = []

    for path, value in (set or {}).items():
        previous = copy.deepcopy(get_path(doc, path))
        created += set_path(doc, path, copy.deepcopy(value))
        result.applied_ops.append(AppliedOp("set", path, value, previous))

    for path, value in (append or {}).items():
        current = get_path(doc, path, _MISSING)
        if current is _MISSING or current is None:
            created += set_path(doc, path, _as_list(copy.deepcopy(value)))
            result.applied_ops.append(AppliedOp("append", path, value, None))
            result.warnings.append(f"Initialized {path} as new array")
        elif isinstance(current, list):
            previous = list(current)
            set_path(doc, path, previous + _as_list(copy.deepcopy(value)))
            result.applied_ops.append(AppliedOp("append", path, value, previous))
        else:
            result.warnings.append(f"Cannot append to non-array at {path}")

    for path, value in (remove or {}).items():
        current = get_path(doc, path, _MISSING)
        if value is True:
            if delete_path(doc, path, prunable=created):
                result.applied_ops.append(AppliedOp("remove", path, True, current))
            else:
                result.warnings.append(f"Path {path} not found for removal")
        elif current is _MISSING:
            result.warnings.append(f"Path {path} not found for removal")
        elif isinstance(current, list):
            to_remove = _as_list(value)
            set_path(doc, path, [item for item in current if item not in to_remove])
            result.applied_ops.append(AppliedOp("remove", path, value, list(current)))
        else:
            result.warnings.append(f"Cannot remove from non-array at {path}")

    return result
