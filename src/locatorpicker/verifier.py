from __future__ import annotations

import logging

from bs4.element import Tag

from .dom import Document, safe_select, unique_nodes
from .expression_parser import ExpressionSyntaxError, looks_like_locator_call, parse_expression
from .introspection import IntrospectionCache
from .models import Candidate, VerificationResult
from .selector_rules import NAME_TEXT_LIMIT
from .validation import collect_matches

logger = logging.getLogger("locatorpicker.verifier")

MARKER_ATTRIBUTE = "data-locator-verifier-highlight"


def match_segments(
    segments: list[Candidate],
    document: Document,
    cache: IntrospectionCache | None = None,
) -> list[Tag]:
    """Apply chained segments; each one is scoped to the previous matches."""
    cache = cache or IntrospectionCache()
    current: list[Tag] | None = None
    for segment in segments:
        if current is None:
            found = collect_matches(segment.scoped_to("document"), document, cache)
        else:
            found = []
            for scope in current:
                found.extend(collect_matches(segment.scoped_to(scope), document, cache))
        current = unique_nodes(found)
        if not current:
            return []
    return current or []


def resolve_with_mode(text: str, document: Document, *, text_limit: int = NAME_TEXT_LIMIT) -> VerificationResult:
    selector = (text or "").strip()
    if not selector:
        return VerificationResult(count=0, message="Empty locator.")

    if not looks_like_locator_call(selector):
        native = safe_select(document, selector)
        if native:
            return VerificationResult(count=len(native), nodes=native, mode="css", message="Matched as CSS selector.")

    try:
        segments = parse_expression(selector)
    except ExpressionSyntaxError as exc:
        logger.debug("Locator text not understood: %s", exc)
        return VerificationResult(count=0, message=str(exc))

    nodes = match_segments(segments, document, IntrospectionCache(limit=text_limit))
    return VerificationResult(count=len(nodes), nodes=nodes, mode="locator", message="Matched as locator expression.")


def resolve(text: str, document: Document, *, text_limit: int = NAME_TEXT_LIMIT) -> list[Tag]:
    """Nodes denoted by a CSS selector or a rendered locator; never raises."""
    try:
        return resolve_with_mode(text, document, text_limit=text_limit).nodes
    except Exception:
        logger.exception("Resolving %r failed", text)
        return []


def clear_markers(document: Document, marker: str = MARKER_ATTRIBUTE, previous: list[Tag] | None = None) -> int:
    cleared = 0
    for node in previous or []:
        if marker in node.attrs:
            del node.attrs[marker]
            cleared += 1
    for node in document.soup.find_all(attrs={marker: True}):
        del node.attrs[marker]
        cleared += 1
    return cleared


def mark_nodes(nodes: list[Tag], marker: str = MARKER_ATTRIBUTE) -> None:
    for node in nodes:
        node.attrs[marker] = "true"


def verify(
    text: str,
    document: Document,
    *,
    previous: list[Tag] | None = None,
    marker: str = MARKER_ATTRIBUTE,
    text_limit: int = NAME_TEXT_LIMIT,
) -> VerificationResult:
    clear_markers(document, marker, previous)
    try:
        result = resolve_with_mode(text, document, text_limit=text_limit)
    except Exception as exc:
        logger.exception("Verification of %r failed", text)
        return VerificationResult(count=0, message=f"Verification failed: {exc}")
    mark_nodes(result.nodes, marker)
    logger.info("Verified %r: %d match(es) via %s", text, result.count, result.mode)
    return result
