from __future__ import annotations

from bs4.element import Tag

from .dom import (
    Document,
    class_tokens,
    element_children,
    get_attr,
    is_top_level_container,
    parent_element,
    safe_select,
    tag_name,
)
from .selector_rules import build_id_selector, escape_css_identifier, normalize_space, stable_classes


def _signature(node: Tag) -> tuple[str, tuple[str, ...]]:
    return tag_name(node), tuple(stable_classes(class_tokens(node)))


def build_relative_segment(node: Tag, parent: Tag | None = None) -> str:
    """Tag plus stable classes, with ``:nth-of-type`` when siblings share that signature."""
    tag = tag_name(node) or "*"
    classes = stable_classes(class_tokens(node))
    segment = tag + "".join(f".{escape_css_identifier(token)}" for token in classes)

    container = parent if parent is not None else parent_element(node)
    if container is None:
        return segment

    siblings = element_children(container)
    signature = _signature(node)
    if sum(1 for sibling in siblings if _signature(sibling) == signature) < 2:
        return segment

    position = 0
    for sibling in siblings:
        if tag_name(sibling) == tag:
            position += 1
        if sibling is node:
            break
    return f"{segment}:nth-of-type({position})"


def unique_id_selector(node: Tag, document: Document) -> str | None:
    id_value = normalize_space(get_attr(node, "id"))
    if not id_value or id_value != (get_attr(node, "id") or ""):
        return None
    selector = build_id_selector(id_value)
    matches = safe_select(document, selector)
    if matches is None or len(matches) != 1 or matches[0] is not node:
        return None
    return selector


def build_structural_path(node: Tag, document: Document) -> str:
    id_selector = unique_id_selector(node, document)
    if id_selector:
        return id_selector

    segments: list[str] = []
    current: Tag | None = node
    while current is not None and not is_top_level_container(current):
        segments.append(build_relative_segment(current))
        current = parent_element(current)

    if not segments:
        return tag_name(node) or "*"

    segments.reverse()
    if current is not None and tag_name(current) == "body":
        segments.insert(0, "body")
    return " > ".join(segments)
