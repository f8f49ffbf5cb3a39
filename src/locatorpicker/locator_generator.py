"""Priority-ladder locator synthesis.

Each tier either returns a ``LocatorExpression`` or falls through to the
next one; the first success wins. Uniqueness is always proven against the
current snapshot through ``validation.collect_matches`` so that a
``none``-severity expression resolves back to exactly its target.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Callable

from bs4.element import Tag

from .dom import Document, describe, get_attr, is_top_level_container, iter_ancestors, tag_name
from .introspection import IntrospectionCache, is_image_like
from .models import (
    DOCUMENT_SCOPE,
    Candidate,
    CandidateOptions,
    Dialect,
    LocatorExpression,
    Scope,
    Severity,
    StrategyKind,
    SynthesisResult,
)
from .rendering import render_expression
from .selector_rules import NAME_TEXT_LIMIT, TEST_ID_ATTRIBUTES, first_present, normalize_space
from .structural_path import build_relative_segment, build_structural_path
from .validation import is_unique, validate_candidate

logger = logging.getLogger("locatorpicker.generator")

ANCESTOR_DEPTH = 4
LABEL_SKIP_ROLES = frozenset({"button", "link"})

Tier = Callable[[], "LocatorExpression | None"]


@dataclass(slots=True)
class AncestorAttempt:
    ancestor: Tag
    anchor: Candidate | None
    child: Candidate | None = None


@dataclass(slots=True)
class LocatorSynthesizer:
    target: Tag
    document: Document
    text_limit: int = NAME_TEXT_LIMIT
    ancestor_depth: int = ANCESTOR_DEPTH
    cache: IntrospectionCache = field(init=False)
    _anchors: dict[int, AncestorAttempt] = field(init=False, default_factory=dict)

    def __post_init__(self) -> None:
        self.cache = IntrospectionCache(limit=self.text_limit)

    @property
    def role(self) -> str | None:
        return self.cache.role(self.target)

    @property
    def name(self) -> str:
        return self.cache.name(self.target)

    def tiers(self) -> list[tuple[str, Tier]]:
        return [
            ("test_id", self._try_test_id),
            ("role_name", self._try_role_name),
            ("label", self._try_label),
            ("placeholder", self._try_placeholder),
            ("alt_text", self._try_alt_text),
            ("title", self._try_title),
            ("role", self._try_role),
            ("text", self._try_text),
            ("ancestor_chain", self._try_ancestor_chain),
            ("text_fallback", self._try_text_fallback),
            ("structural_path", self._try_structural_path),
        ]

    def synthesize(self) -> LocatorExpression:
        try:
            for label, tier in self.tiers():
                expression = tier()
                if expression is None:
                    continue
                logger.debug("Tier %s succeeded for %s (severity=%s)", label, describe(self.target), expression.severity)
                return expression
        except Exception:
            logger.exception("Locator synthesis failed for %s; using tag fallback", describe(self.target))
        return self._tag_fallback()

    # -- helpers -----------------------------------------------------------

    def _unique(self, candidate: Candidate, node: Tag | None = None) -> bool:
        return is_unique(candidate, node if node is not None else self.target, self.document, self.cache)

    def _expression(self, *segments: Candidate, strategy: str, severity: Severity = "none") -> LocatorExpression:
        return LocatorExpression(segments=tuple(segments), severity=severity, strategy=strategy)

    def _exact_then_substring(
        self,
        kind: StrategyKind,
        value: str,
        *,
        name: str | None = None,
        scope: Scope = DOCUMENT_SCOPE,
        node: Tag | None = None,
    ) -> Candidate | None:
        for exact in (True, False):
            candidate = Candidate(kind=kind, value=value, options=CandidateOptions(name=name, exact=exact), scope=scope)
            if self._unique(candidate, node):
                return candidate
        return None

    def _test_id_of(self, node: Tag) -> str | None:
        found = first_present((attr, get_attr(node, attr)) for attr in TEST_ID_ATTRIBUTES)
        return found[1] if found else None

    def _attribute(self, attr: str) -> str:
        return normalize_space(get_attr(self.target, attr))

    def _prefers_alt_text(self) -> bool:
        # Images described by alt text are located by that alt text.
        return is_image_like(self.target) and bool(self._attribute("alt"))

    # -- tiers -------------------------------------------------------------

    def _try_test_id(self) -> LocatorExpression | None:
        test_id = self._test_id_of(self.target)
        if not test_id:
            return None
        candidate = Candidate(kind="TestId", value=test_id)
        # Test ids are trusted by convention; duplicates only lower the severity.
        validation = validate_candidate(candidate, self.target, self.document, self.cache)
        if not validation.unique:
            logger.debug("Test id %r kept with warning: %s", test_id, validation.message)
        severity: Severity = "none" if validation.unique else "warning"
        return self._expression(candidate, strategy="test_id", severity=severity)

    def _try_role_name(self) -> LocatorExpression | None:
        role, name = self.role, self.name
        if not role or not name:
            return None
        if self._prefers_alt_text():
            return None
        candidate = self._exact_then_substring("RoleName", role, name=name)
        return self._expression(candidate, strategy="role_name") if candidate else None

    def _try_label(self) -> LocatorExpression | None:
        name = self.cache.label(self.target)
        if not name or self.role in LABEL_SKIP_ROLES or self._prefers_alt_text():
            return None
        candidate = self._exact_then_substring("Label", name)
        return self._expression(candidate, strategy="label") if candidate else None

    def _try_placeholder(self) -> LocatorExpression | None:
        placeholder = self._attribute("placeholder")
        if not placeholder:
            return None
        candidate = self._exact_then_substring("Placeholder", placeholder)
        return self._expression(candidate, strategy="placeholder") if candidate else None

    def _try_alt_text(self) -> LocatorExpression | None:
        alt = self._attribute("alt")
        if not alt or not is_image_like(self.target):
            return None
        candidate = self._exact_then_substring("AltText", alt)
        return self._expression(candidate, strategy="alt_text") if candidate else None

    def _try_title(self) -> LocatorExpression | None:
        title = self._attribute("title")
        if not title:
            return None
        candidate = self._exact_then_substring("Title", title)
        return self._expression(candidate, strategy="title") if candidate else None

    def _try_role(self) -> LocatorExpression | None:
        role = self.role
        if not role:
            return None
        candidate = Candidate(kind="Role", value=role)
        return self._expression(candidate, strategy="role") if self._unique(candidate) else None

    def _try_text(self) -> LocatorExpression | None:
        name = self.name
        if not name or len(name) >= self.text_limit:
            return None
        candidate = Candidate(kind="Text", value=name, options=CandidateOptions(exact=True))
        return self._expression(candidate, strategy="text") if self._unique(candidate) else None

    def _try_ancestor_chain(self) -> LocatorExpression | None:
        for ancestor in self._chain_ancestors():
            attempt = self._anchor_for(ancestor)
            if attempt.anchor is None:
                continue
            child = self._relative_child(ancestor)
            if child is None:
                logger.debug("Ancestor %s is stable but the child is not unique inside it", describe(ancestor))
                continue
            attempt.child = child
            return self._expression(attempt.anchor, child, strategy="ancestor_chain")
        return None

    def _try_text_fallback(self) -> LocatorExpression | None:
        name = self.name
        if not name or len(name) >= self.text_limit:
            return None
        candidate = Candidate(kind="Text", value=name, options=CandidateOptions(exact=False))
        return self._expression(candidate, strategy="text_fallback", severity="warning")

    def _try_structural_path(self) -> LocatorExpression | None:
        path = build_structural_path(self.target, self.document)
        if not path:
            return None
        return self._expression(Candidate(kind="StructuralPath", value=path), strategy="structural_path", severity="warning")

    def _tag_fallback(self) -> LocatorExpression:
        tag = tag_name(self.target) or "*"
        return self._expression(Candidate(kind="StructuralPath", value=tag), strategy="tag", severity="critical")

    # -- chaining ----------------------------------------------------------

    def _chain_ancestors(self) -> list[Tag]:
        ancestors: list[Tag] = []
        for ancestor in iter_ancestors(self.target):
            if is_top_level_container(ancestor) or len(ancestors) >= self.ancestor_depth:
                break
            ancestors.append(ancestor)
        return ancestors

    def _anchor_for(self, ancestor: Tag) -> AncestorAttempt:
        key = id(ancestor)
        cached = self._anchors.get(key)
        if cached is not None:
            return cached
        attempt = AncestorAttempt(ancestor=ancestor, anchor=self._stable_ancestor_locator(ancestor))
        self._anchors[key] = attempt
        return attempt

    def _stable_ancestor_locator(self, ancestor: Tag) -> Candidate | None:
        test_id = self._test_id_of(ancestor)
        if test_id:
            candidate = Candidate(kind="TestId", value=test_id)
            if self._unique(candidate, ancestor):
                return candidate

        role = self.cache.role(ancestor)
        name = self.cache.name(ancestor)
        if role and name:
            candidate = self._exact_then_substring("RoleName", role, name=name, node=ancestor)
            if candidate:
                return candidate

        if name and len(name) < self.text_limit:
            candidate = Candidate(kind="Text", value=name, options=CandidateOptions(exact=True))
            if self._unique(candidate, ancestor):
                return candidate
        return None

    def _relative_child(self, ancestor: Tag) -> Candidate | None:
        test_id = self._test_id_of(self.target)
        if test_id:
            candidate = Candidate(kind="TestId", value=test_id, scope=ancestor)
            if self._unique(candidate):
                return candidate

        role, name = self.role, self.name
        if role and name:
            candidate = self._exact_then_substring("RoleName", role, name=name, scope=ancestor)
            if candidate:
                return candidate

        if name and len(name) < self.text_limit:
            candidate = Candidate(kind="Text", value=name, options=CandidateOptions(exact=True), scope=ancestor)
            if self._unique(candidate):
                return candidate

        segment = build_relative_segment(self.target)
        candidate = Candidate(kind="StructuralPath", value=segment, scope=ancestor)
        if self._unique(candidate):
            return candidate
        return None


def synthesize_expression(
    node: Tag,
    document: Document,
    *,
    text_limit: int = NAME_TEXT_LIMIT,
    ancestor_depth: int = ANCESTOR_DEPTH,
) -> LocatorExpression:
    synthesizer = LocatorSynthesizer(
        target=node,
        document=document,
        text_limit=text_limit,
        ancestor_depth=ancestor_depth,
    )
    return synthesizer.synthesize()


def synthesize(
    node: Tag,
    document: Document,
    dialect: Dialect = "pytest",
    *,
    text_limit: int = NAME_TEXT_LIMIT,
    ancestor_depth: int = ANCESTOR_DEPTH,
) -> SynthesisResult:
    """Best locator for ``node``; never raises."""
    try:
        expression = synthesize_expression(node, document, text_limit=text_limit, ancestor_depth=ancestor_depth)
    except Exception:
        logger.exception("Locator synthesis crashed outside the tier ladder")
        tag = tag_name(node) if isinstance(node, Tag) else "*"
        expression = LocatorExpression(
            segments=(Candidate(kind="StructuralPath", value=tag or "*"),),
            severity="critical",
            strategy="tag",
        )
    return SynthesisResult(text=render_expression(expression, dialect), severity=expression.severity, expression=expression)
