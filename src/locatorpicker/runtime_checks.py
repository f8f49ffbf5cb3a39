from __future__ import annotations

from typing import Any, Mapping

from bs4.element import Tag

from .dom import get_attr, tag_name
from .selector_rules import normalize_space

_MISSING_BROWSER_ERROR_HINTS = (
    "executable doesn't exist",
    "executable does not exist",
    "download new browsers",
    "playwright install",
    "could not find browser",
    "failed to launch chromium because executable",
)

_CLOSED_TARGET_HINTS = (
    "target page, context or browser has been closed",
    "target closed",
    "browser has been closed",
    "has been disconnected",
)


def _is_missing_browser_error(exc: Exception) -> bool:
    message = str(exc).lower()
    return any(hint in message for hint in _MISSING_BROWSER_ERROR_HINTS)


def _is_closed_target_error(exc: Exception) -> bool:
    message = str(exc).lower()
    return any(hint in message for hint in _CLOSED_TARGET_HINTS)


def parse_pick_index(payload: Mapping[str, Any] | None) -> int | None:
    """Element index reported by the page script, or None when unusable."""
    if not payload:
        return None
    raw = payload.get("index")
    if isinstance(raw, bool):
        return None
    try:
        index = int(raw)
    except (TypeError, ValueError):
        return None
    return index if index >= 0 else None


def pick_matches_node(payload: Mapping[str, Any], node: Tag | None) -> bool:
    """Check that the snapshot node at the reported index is the clicked element."""
    if node is None:
        return False
    reported_tag = normalize_space(payload.get("tag")).lower()
    if not reported_tag or reported_tag != tag_name(node):
        return False

    comparisons = (
        ("id", "id"),
        ("ariaLabel", "aria-label"),
        ("placeholder", "placeholder"),
        ("name", "name"),
    )
    checks: list[bool] = []
    for payload_key, attribute in comparisons:
        expected = normalize_space(payload.get(payload_key))
        if not expected:
            continue
        checks.append(normalize_space(get_attr(node, attribute)) == expected)

    if not checks:
        return True
    return all(checks)
