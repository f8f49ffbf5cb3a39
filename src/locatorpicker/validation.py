from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Callable

from bs4.element import Tag

from .dom import Document, get_attr, is_visible, iter_descendants, safe_select
from .introspection import IntrospectionCache
from .models import Candidate, Scope
from .selector_rules import TEST_ID_ATTRIBUTES, normalize_space, text_matches

logger = logging.getLogger("locatorpicker.validation")

Predicate = Callable[[Tag], bool]

_ATTRIBUTE_KINDS = {
    "Placeholder": "placeholder",
    "AltText": "alt",
    "Title": "title",
}


@dataclass(frozen=True, slots=True)
class LocatorValidation:
    unique: bool
    match_count: int
    message: str


def build_predicate(candidate: Candidate, cache: IntrospectionCache) -> Predicate | None:
    kind = candidate.kind
    value = candidate.value
    exact = candidate.options.exact

    if kind == "TestId":
        def _test_id(node: Tag) -> bool:
            return any(normalize_space(get_attr(node, attr)) == value for attr in TEST_ID_ATTRIBUTES)

        return _test_id

    if kind in {"RoleName", "Role"}:
        name = candidate.options.name

        def _role(node: Tag) -> bool:
            if cache.role(node) != value:
                return False
            if name is None:
                return True
            return text_matches(cache.name(node), name, exact=exact)

        return _role

    if kind == "Label":
        def _label(node: Tag) -> bool:
            return text_matches(cache.label(node), value, exact=exact)

        return _label

    if kind == "Text":
        def _name(node: Tag) -> bool:
            return text_matches(cache.name(node), value, exact=exact)

        return _name

    attr = _ATTRIBUTE_KINDS.get(kind)
    if attr:
        def _attribute(node: Tag) -> bool:
            raw = get_attr(node, attr)
            if raw is None:
                return False
            return text_matches(normalize_space(raw), value, exact=exact)

        return _attribute

    return None


def _scope_root(scope: Scope, document: Document) -> Tag:
    if isinstance(scope, Tag):
        return scope
    return document.soup


def collect_matches(
    candidate: Candidate,
    document: Document,
    cache: IntrospectionCache | None = None,
) -> list[Tag]:
    """Visible elements inside the candidate's scope that satisfy its predicate."""
    cache = cache or IntrospectionCache()
    root = _scope_root(candidate.scope, document)

    if candidate.kind == "StructuralPath":
        selected = safe_select(document, candidate.value, None if root is document.soup else root)
        if selected is None:
            return []
        return [node for node in selected if node is not root and is_visible(node)]

    predicate = build_predicate(candidate, cache)
    if predicate is None:
        logger.debug("No predicate for strategy kind %r", candidate.kind)
        return []

    matches: list[Tag] = []
    for node in iter_descendants(root):
        if not is_visible(node):
            continue
        try:
            if predicate(node):
                matches.append(node)
        except Exception:
            logger.debug("Predicate failed for %s", candidate.kind, exc_info=True)
    return matches


def count_candidate_matches(
    candidate: Candidate,
    document: Document,
    cache: IntrospectionCache | None = None,
) -> int:
    return len(collect_matches(candidate, document, cache))


def is_unique(
    candidate: Candidate,
    target: Tag,
    document: Document,
    cache: IntrospectionCache | None = None,
) -> bool:
    matches = collect_matches(candidate, document, cache)
    return len(matches) == 1 and matches[0] is target


def validate_candidate(
    candidate: Candidate,
    target: Tag,
    document: Document,
    cache: IntrospectionCache | None = None,
) -> LocatorValidation:
    matches = collect_matches(candidate, document, cache)
    count = len(matches)
    if count == 1 and matches[0] is target:
        return LocatorValidation(True, count, "Locator is unique.")
    if count == 0:
        return LocatorValidation(False, 0, "Locator matches nothing.")
    if not any(node is target for node in matches):
        return LocatorValidation(False, count, "Locator does not match the target element.")
    return LocatorValidation(False, count, "Locator is not unique in scope.")
