"""Medication-name and policy-reference helpers shared by every join key."""

import re
from typing import Any, Iterable, Optional

_WHITESPACE_RE = re.compile(r"\s+")
_POLICY_REF_RE = re.compile(r"^policies/([^/]+)$")


def normalize_medication_name(name: Any) -> str:
    """Lower-case, trim and collapse inner whitespace of a medication name.

    Coverage-map keys and user medication lists both go through this so the
    impact join compares like with like.
    """
    if name is None:
        return ""
    return _WHITESPACE_RE.sub(" ", str(name)).strip().lower()


def unique_medication_names(names: Iterable[Any]) -> list[str]:
    """Normalize names, dropping blanks and duplicates while keeping first-seen order."""
    seen: dict[str, None] = {}
    for raw in names:
        if not isinstance(raw, str):
            continue
        normalized = normalize_medication_name(raw)
        if normalized:
            seen.setdefault(normalized, None)
    return list(seen)


def policy_id_from_ref(ref: Any) -> Optional[str]:
    """Extract a policy id from ``policies/<id>`` or a bare id.

    Returns None for empty values and for paths into other collections.
    """
    if ref is None:
        return None
    text = str(ref).strip()
    if not text:
        return None
    match = _POLICY_REF_RE.match(text)
    if match:
        return match.group(1)
    if "/" in text:
        return None
    return text


def policy_path(policy_id: str) -> str:
    return f"policies/{policy_id}"
