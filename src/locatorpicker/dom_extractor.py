from __future__ import annotations

from typing import Any, TYPE_CHECKING

from .dom import HIDDEN_ATTRIBUTE, INDEX_ATTRIBUTE, VALUE_ATTRIBUTE, Document, parse_html

if TYPE_CHECKING:
    from playwright.sync_api import Frame, Page

UI_ATTRIBUTE = "data-locatorpicker-ui"

SNAPSHOT_SCRIPT = """
({ indexAttr, hiddenAttr, valueAttr, uiAttr }) => {
  const live = [document.documentElement, ...document.documentElement.querySelectorAll('*')];
  const clone = document.documentElement.cloneNode(true);
  const copies = [clone, ...clone.querySelectorAll('*')];

  const isRendered = (el) => {
    if (typeof el.checkVisibility === 'function') {
      return el.checkVisibility({ checkOpacity: false, checkVisibilityCSS: true });
    }
    const style = window.getComputedStyle(el);
    if (style.display === 'none' || style.visibility === 'hidden') return false;
    return el.getClientRects().length > 0 || el === document.body || el === document.documentElement;
  };

  for (let index = 0; index < live.length && index < copies.length; index += 1) {
    const el = live[index];
    const copy = copies[index];
    copy.setAttribute(indexAttr, String(index));
    copy.setAttribute(hiddenAttr, isRendered(el) ? 'false' : 'true');
    const tag = el.tagName.toLowerCase();
    if ((tag === 'input' || tag === 'textarea' || tag === 'select') && typeof el.value === 'string') {
      copy.setAttribute(valueAttr, el.value);
    }
  }

  clone.querySelectorAll(`[${uiAttr}]`).forEach((node) => node.remove());

  return {
    html: clone.outerHTML,
    url: location.href || '',
    title: document.title || '',
    count: live.length,
  };
}
"""


def snapshot_payload(target: Page | Frame) -> dict[str, Any]:
    payload = target.evaluate(
        SNAPSHOT_SCRIPT,
        {
            "indexAttr": INDEX_ATTRIBUTE,
            "hiddenAttr": HIDDEN_ATTRIBUTE,
            "valueAttr": VALUE_ATTRIBUTE,
            "uiAttr": UI_ATTRIBUTE,
        },
    )
    if not isinstance(payload, dict):
        return {"html": "", "url": "", "title": "", "count": 0}
    return payload


def document_from_payload(payload: dict[str, Any]) -> Document:
    document = parse_html(str(payload.get("html", "") or ""), url=str(payload.get("url", "") or ""))
    title = str(payload.get("title", "") or "")
    if title:
        document.title = title
    return document


def extract_document(target: Page | Frame) -> Document:
    """Snapshot the live DOM with computed visibility and form values stamped in."""
    return document_from_payload(snapshot_payload(target))
