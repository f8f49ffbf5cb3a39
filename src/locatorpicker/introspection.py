from __future__ import annotations

from dataclasses import dataclass, field
import logging

from bs4.element import Tag

from .dom import form_value, get_attr, owner_soup, tag_name, visible_text
from .selector_rules import NAME_TEXT_LIMIT, normalize_space

logger = logging.getLogger("locatorpicker.introspection")

TAG_ROLES: dict[str, str] = {
    "a": "link",
    "area": "link",
    "button": "button",
    "h1": "heading",
    "h2": "heading",
    "h3": "heading",
    "h4": "heading",
    "h5": "heading",
    "h6": "heading",
    "img": "img",
    "textarea": "textbox",
    "select": "combobox",
    "li": "listitem",
    "ul": "list",
    "ol": "list",
    "nav": "navigation",
    "form": "form",
    "dialog": "dialog",
    "table": "table",
    "tr": "row",
    "td": "cell",
    "th": "columnheader",
    "thead": "rowgroup",
    "tbody": "rowgroup",
    "tfoot": "rowgroup",
    "fieldset": "group",
    "optgroup": "group",
    "option": "option",
    "progress": "progressbar",
    "meter": "progressbar",
    "article": "article",
    "aside": "complementary",
    "footer": "contentinfo",
    "header": "banner",
    "main": "main",
    "section": "region",
    "summary": "button",
    "details": "group",
}

INPUT_TYPE_ROLES: dict[str, str] = {
    "button": "button",
    "submit": "button",
    "reset": "button",
    "checkbox": "checkbox",
    "radio": "radio",
    "number": "spinbutton",
    "range": "slider",
}

BUTTON_INPUT_TYPES = frozenset({"button", "submit", "reset"})
TEXT_INPUT_TYPES = frozenset(
    {
        "",
        "text",
        "email",
        "password",
        "search",
        "tel",
        "url",
        "date",
        "time",
        "datetime-local",
        "month",
        "week",
    }
)


def input_type(node: Tag) -> str:
    return normalize_space(get_attr(node, "type")).lower()


def get_role(node: Tag) -> str | None:
    """Explicit ``role`` verbatim, else the implicit role of the tag."""
    try:
        explicit = get_attr(node, "role")
        if explicit is not None and explicit.strip():
            return explicit.strip()
        tag = tag_name(node)
        if tag == "input":
            return INPUT_TYPE_ROLES.get(input_type(node), "textbox")
        return TAG_ROLES.get(tag)
    except Exception:
        logger.debug("Role lookup failed for <%s>", getattr(node, "name", "?"), exc_info=True)
        return None


def is_image_like(node: Tag) -> bool:
    tag = tag_name(node)
    if tag in {"img", "area"}:
        return True
    return tag == "input" and input_type(node) == "image"


def is_button_like(node: Tag) -> bool:
    return tag_name(node) == "input" and input_type(node) in BUTTON_INPUT_TYPES


def is_text_like(node: Tag) -> bool:
    tag = tag_name(node)
    if tag == "textarea":
        return True
    return tag == "input" and input_type(node) in TEXT_INPUT_TYPES


@dataclass(slots=True)
class ReferenceIndex:
    """First element per ``id`` and first ``<label>`` per ``for`` value in one tree."""

    ids: dict[str, Tag] = field(default_factory=dict)
    labels: dict[str, Tag] = field(default_factory=dict)

    @classmethod
    def from_soup(cls, soup: Tag) -> ReferenceIndex:
        index = cls()
        for element in soup.find_all(True):
            id_value = get_attr(element, "id")
            if id_value is not None:
                index.ids.setdefault(id_value, element)
            if tag_name(element) == "label":
                target = get_attr(element, "for")
                if target is not None:
                    index.labels.setdefault(target, element)
        return index


def _resolve_references(node: Tag, references: ReferenceIndex | None) -> ReferenceIndex | None:
    if references is not None:
        return references
    soup = owner_soup(node)
    if soup is None:
        return None
    return ReferenceIndex.from_soup(soup)


def get_label_name(node: Tag, references: ReferenceIndex | None = None) -> str:
    """Name from ``aria-label``, ``aria-labelledby`` or ``<label for>`` only."""
    try:
        return _compute_label_name(node, references)
    except Exception:
        logger.debug("Label lookup failed for <%s>", getattr(node, "name", "?"), exc_info=True)
        return ""


def get_accessible_name(
    node: Tag,
    limit: int = NAME_TEXT_LIMIT,
    references: ReferenceIndex | None = None,
) -> str:
    try:
        return _compute_accessible_name(node, limit, references)
    except Exception:
        logger.debug("Accessible name failed for <%s>", getattr(node, "name", "?"), exc_info=True)
        return ""


def _compute_label_name(node: Tag, references: ReferenceIndex | None) -> str:
    aria_label = normalize_space(get_attr(node, "aria-label"))
    if aria_label:
        return aria_label

    labelled_by = normalize_space(get_attr(node, "aria-labelledby"))
    id_value = normalize_space(get_attr(node, "id"))
    if not labelled_by and not id_value:
        return ""

    references = _resolve_references(node, references)
    if references is None:
        return ""

    if labelled_by:
        text = _labelledby_text(labelled_by, references)
        if text:
            return text

    if id_value:
        return _label_for_text(id_value, references)
    return ""


def _compute_accessible_name(node: Tag, limit: int, references: ReferenceIndex | None) -> str:
    label_name = _compute_label_name(node, references)
    if label_name:
        return label_name

    if is_button_like(node) or is_text_like(node):
        value = normalize_space(form_value(node))
        if value:
            return value

    if is_image_like(node):
        alt = normalize_space(get_attr(node, "alt"))
        if alt:
            return alt

    text = visible_text(node)
    if text and len(text) < limit:
        return text

    title = normalize_space(get_attr(node, "title"))
    if title and len(title) < limit:
        return title

    return ""


def _labelledby_text(raw: str, references: ReferenceIndex) -> str:
    chunks: list[str] = []
    for ref in raw.split(" "):
        referenced = references.ids.get(ref)
        if referenced is None:
            continue
        text = visible_text(referenced) or normalize_space(referenced.get_text())
        if text:
            chunks.append(text)
    return " ".join(chunks)


def _label_for_text(id_value: str, references: ReferenceIndex) -> str:
    label = references.labels.get(id_value)
    if label is None:
        return ""
    return visible_text(label) or normalize_space(label.get_text())


class IntrospectionCache:
    """Role and name memo for one synthesis or match call, keyed by identity."""

    def __init__(self, limit: int = NAME_TEXT_LIMIT) -> None:
        self.limit = limit
        self._roles: dict[int, str | None] = {}
        self._names: dict[int, str] = {}
        self._labels: dict[int, str] = {}
        self._references: dict[int, ReferenceIndex] = {}
        # Keep nodes alive so ids are not recycled while cached.
        self._pinned: dict[int, Tag] = {}

    def role(self, node: Tag) -> str | None:
        key = id(node)
        if key not in self._roles:
            self._pinned[key] = node
            self._roles[key] = get_role(node)
        return self._roles[key]

    def name(self, node: Tag) -> str:
        key = id(node)
        if key not in self._names:
            self._pinned[key] = node
            self._names[key] = get_accessible_name(node, self.limit, self.references(node))
        return self._names[key]

    def label(self, node: Tag) -> str:
        key = id(node)
        if key not in self._labels:
            self._pinned[key] = node
            self._labels[key] = get_label_name(node, self.references(node))
        return self._labels[key]

    def references(self, node: Tag) -> ReferenceIndex | None:
        soup = owner_soup(node)
        if soup is None:
            return None
        key = id(soup)
        if key not in self._references:
            self._pinned[key] = soup
            self._references[key] = ReferenceIndex.from_soup(soup)
        return self._references[key]
