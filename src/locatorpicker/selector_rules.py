from __future__ import annotations

import re
from typing import Iterable, Sequence

TEST_ID_ATTRIBUTES = (
    "data-testid",
    "data-test-id",
    "data-test",
    "data-qa",
    "data-cy",
    "data-e2e",
)

NAME_TEXT_LIMIT = 120

NON_RENDERED_TAGS = frozenset(
    {
        "script",
        "style",
        "noscript",
        "template",
        "head",
        "meta",
        "link",
        "title",
        "base",
    }
)

TOP_LEVEL_CONTAINER_TAGS = frozenset({"body", "html"})

_CSS_SAFE_IDENTIFIER_PATTERN = re.compile(r"^-?[A-Za-z_][A-Za-z0-9_-]*$")
_HIDDEN_STYLE_PATTERN = re.compile(
    r"(^|;)\s*(display\s*:\s*none|visibility\s*:\s*(hidden|collapse))\s*(!important)?\s*(;|$)",
    re.IGNORECASE,
)


def normalize_space(value: str | None, limit: int | None = None) -> str:
    if not value:
        return ""
    compact = re.sub(r"\s+", " ", str(value)).strip()
    if limit is not None:
        return compact[:limit]
    return compact


def normalize_classes(raw: Sequence[str] | str | None) -> list[str]:
    if not raw:
        return []
    if isinstance(raw, str):
        items = raw.split()
    else:
        items = [item for item in raw if isinstance(item, str)]

    seen: set[str] = set()
    normalized: list[str] = []
    for item in items:
        clean = item.strip()
        if not clean or clean in seen:
            continue
        seen.add(clean)
        normalized.append(clean)
    return normalized


def is_stable_class_token(token: str) -> bool:
    value = token.strip()
    if len(value) <= 2:
        return False
    return ":" not in value and "[" not in value


def stable_classes(raw: Sequence[str] | str | None) -> list[str]:
    return [token for token in normalize_classes(raw) if is_stable_class_token(token)]


def is_hidden_style(style: str | None) -> bool:
    if not style:
        return False
    return bool(_HIDDEN_STYLE_PATTERN.search(style))


def is_css_safe_identifier(value: str) -> bool:
    return bool(_CSS_SAFE_IDENTIFIER_PATTERN.fullmatch(value))


def escape_css_string(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def escape_css_identifier(value: str) -> str:
    escaped: list[str] = []
    for index, char in enumerate(value):
        leading = index == 0 or (index == 1 and value[0] == "-")
        if char.isalnum() and not (leading and char.isdigit()):
            escaped.append(char)
        elif char in ("-", "_"):
            escaped.append(char)
        else:
            escaped.append(f"\\{ord(char):x} ")
    return "".join(escaped)


def build_id_selector(id_value: str) -> str:
    if is_css_safe_identifier(id_value):
        return f"#{id_value}"
    return f'[id="{escape_css_string(id_value)}"]'


def first_present(attributes: Iterable[tuple[str, str | None]]) -> tuple[str, str] | None:
    for attr, raw in attributes:
        value = normalize_space(raw)
        if value:
            return attr, value
    return None


def text_matches(actual: str, expected: str, *, exact: bool) -> bool:
    if exact:
        return actual == expected
    return expected in actual
