"""Document tree handles built on BeautifulSoup.

A ``Node`` is a plain ``bs4.element.Tag``. BeautifulSoup compares tags by
markup, so every identity check in this package uses ``is`` or ``id()``.

Snapshots taken from a live page carry three stamp attributes written by
``dom_extractor``: the element index, computed visibility and the current
form value. Parsed static HTML has none of them; visibility then falls back
to markup rules (``hidden``, inline ``display:none``, non-rendered tags).
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Iterator

from bs4 import BeautifulSoup
from bs4.element import Comment, NavigableString, Tag
import soupsieve

from .selector_rules import NON_RENDERED_TAGS, TOP_LEVEL_CONTAINER_TAGS, is_hidden_style, normalize_space

INDEX_ATTRIBUTE = "data-locator-index"
HIDDEN_ATTRIBUTE = "data-locator-hidden"
VALUE_ATTRIBUTE = "data-locator-value"

_BLOCK_TAGS = frozenset(
    {
        "address", "article", "aside", "blockquote", "br", "dd", "details", "dialog", "div", "dl",
        "dt", "fieldset", "figcaption", "figure", "footer", "form", "h1", "h2", "h3", "h4", "h5",
        "h6", "header", "hr", "li", "main", "nav", "ol", "p", "pre", "section", "summary", "table",
        "tbody", "td", "tfoot", "th", "thead", "tr", "ul",
    }
)

logger = logging.getLogger("locatorpicker.dom")


@dataclass(slots=True)
class Document:
    soup: BeautifulSoup
    url: str = ""
    title: str = ""
    _by_index: dict[int, Tag] | None = field(default=None, repr=False)

    @property
    def root(self) -> Tag | None:
        return self.soup.find(True)

    @property
    def body(self) -> Tag | None:
        return self.soup.find("body")

    def select(self, selector: str, scope: Tag | None = None) -> list[Tag]:
        """Run a CSS selector through soupsieve; raises on invalid syntax."""
        target = self.soup if scope is None else scope
        return list(soupsieve.select(selector, target))

    def node_at_index(self, index: int) -> Tag | None:
        if self._by_index is None:
            mapping: dict[int, Tag] = {}
            for element in self.soup.find_all(attrs={INDEX_ATTRIBUTE: True}):
                raw = element.get(INDEX_ATTRIBUTE)
                try:
                    mapping[int(str(raw))] = element
                except (TypeError, ValueError):
                    continue
            self._by_index = mapping
        return self._by_index.get(index)


def parse_html(markup: str, *, url: str = "") -> Document:
    soup = BeautifulSoup(markup or "", "html.parser")
    title_tag = soup.find("title")
    title = normalize_space(title_tag.get_text()) if title_tag else ""
    return Document(soup=soup, url=url, title=title)


def is_element(value: object) -> bool:
    return isinstance(value, Tag) and not isinstance(value, BeautifulSoup)


def tag_name(node: Tag) -> str:
    return (node.name or "").lower()


def get_attr(node: Tag, name: str) -> str | None:
    raw = node.attrs.get(name)
    if raw is None:
        return None
    if isinstance(raw, (list, tuple)):
        return " ".join(str(item) for item in raw)
    return str(raw)


def class_tokens(node: Tag) -> list[str]:
    raw = node.attrs.get("class")
    if not raw:
        return []
    if isinstance(raw, str):
        return raw.split()
    return [str(item) for item in raw]


def parent_element(node: Tag) -> Tag | None:
    parent = node.parent
    if parent is None or isinstance(parent, BeautifulSoup):
        return None
    return parent


def element_children(node: Tag) -> list[Tag]:
    return [child for child in node.children if isinstance(child, Tag)]


def iter_ancestors(node: Tag) -> Iterator[Tag]:
    current = parent_element(node)
    while current is not None:
        yield current
        current = parent_element(current)


def iter_descendants(scope: Tag) -> Iterator[Tag]:
    yield from scope.find_all(True)


def owner_soup(node: Tag) -> BeautifulSoup | None:
    current: Tag | None = node
    while current is not None:
        if isinstance(current, BeautifulSoup):
            return current
        current = current.parent
    return None


def is_top_level_container(node: Tag) -> bool:
    return tag_name(node) in TOP_LEVEL_CONTAINER_TAGS


def _is_self_hidden(node: Tag) -> bool:
    if tag_name(node) in NON_RENDERED_TAGS:
        return True
    stamp = get_attr(node, HIDDEN_ATTRIBUTE)
    if stamp is not None:
        return stamp.strip().lower() == "true"
    if "hidden" in node.attrs:
        return True
    if tag_name(node) == "input" and (get_attr(node, "type") or "").strip().lower() == "hidden":
        return True
    return is_hidden_style(get_attr(node, "style"))


def is_visible(node: Tag) -> bool:
    """Rendered and not hidden, taking every ancestor into account."""
    if not is_element(node):
        return False
    if tag_name(node) in NON_RENDERED_TAGS:
        return False
    stamp = get_attr(node, HIDDEN_ATTRIBUTE)
    if stamp is not None:
        # Snapshot stamps already account for inherited visibility.
        return stamp.strip().lower() != "true"
    if _is_self_hidden(node):
        return False
    return not any(_is_self_hidden(ancestor) for ancestor in iter_ancestors(node))


def visible_text(node: Tag) -> str:
    if not is_visible(node):
        return ""
    chunks: list[str] = []
    _collect_visible_text(node, chunks)
    return normalize_space("".join(chunks))


def _collect_visible_text(node: Tag, chunks: list[str]) -> None:
    for child in node.children:
        if isinstance(child, Comment):
            continue
        if isinstance(child, NavigableString):
            if type(child) is NavigableString:
                chunks.append(str(child))
            continue
        if not isinstance(child, Tag):
            continue
        if _is_self_hidden(child):
            continue
        name = tag_name(child)
        block = name in _BLOCK_TAGS
        if block:
            chunks.append(" ")
        _collect_visible_text(child, chunks)
        if block:
            chunks.append(" ")


def form_value(node: Tag) -> str:
    stamped = get_attr(node, VALUE_ATTRIBUTE)
    if stamped is not None:
        return stamped
    name = tag_name(node)
    if name == "input":
        return get_attr(node, "value") or ""
    if name == "textarea":
        return node.get_text()
    if name == "select":
        options = node.find_all("option")
        selected = next((option for option in options if option.has_attr("selected")), None)
        if selected is None and options:
            selected = options[0]
        if selected is None:
            return ""
        value = get_attr(selected, "value")
        return value if value is not None else normalize_space(selected.get_text())
    return ""


def unique_nodes(nodes: list[Tag]) -> list[Tag]:
    seen: set[int] = set()
    ordered: list[Tag] = []
    for node in nodes:
        key = id(node)
        if key in seen:
            continue
        seen.add(key)
        ordered.append(node)
    return ordered


def describe(node: Tag) -> str:
    parts = [tag_name(node) or "?"]
    id_value = get_attr(node, "id")
    if id_value:
        parts.append(f"#{id_value}")
    classes = class_tokens(node)
    if classes:
        parts.append("." + ".".join(classes[:3]))
    return "".join(parts)


def safe_select(document: Document, selector: str, scope: Tag | None = None) -> list[Tag] | None:
    """Like ``Document.select`` but returns None for a malformed selector."""
    try:
        return document.select(selector, scope)
    except soupsieve.SelectorSyntaxError:
        return None
    except Exception:
        logger.debug("Selector evaluation failed: %r", selector, exc_info=True)
        return None
