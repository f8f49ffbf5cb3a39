from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .dom_extractor import UI_ATTRIBUTE
from .session import ResultDisplay

if TYPE_CHECKING:
    from playwright.sync_api import Page

logger = logging.getLogger("locatorpicker.injector")

REPORT_BINDING = "__locatorPickerReport"
CLOSE_BINDING = "__locatorPickerClosed"

INJECT_SCRIPT = r"""
(() => {
  if (window.__locatorPickerInstalled) {
    return;
  }

  const UI_ATTR = '__UI_ATTR__';
  const state = {
    armed: false,
    overlay: null,
    panel: null,
    highlighted: null,
    marker: null,
    onMove: null,
    onClick: null,
    onScroll: null,
  };

  function isOwnUi(el) {
    return !!(el && el.closest && el.closest(`[${UI_ATTR}]`));
  }

  function ensureOverlay() {
    if (state.overlay) {
      return state.overlay;
    }
    const overlay = document.createElement('div');
    overlay.setAttribute(UI_ATTR, 'overlay');
    overlay.style.position = 'fixed';
    overlay.style.pointerEvents = 'none';
    overlay.style.zIndex = '2147483647';
    overlay.style.border = '2px solid #06b6d4';
    overlay.style.background = 'rgba(6, 182, 212, 0.12)';
    overlay.style.borderRadius = '2px';
    overlay.style.display = 'none';
    document.documentElement.appendChild(overlay);
    state.overlay = overlay;
    return overlay;
  }

  function hideOverlay() {
    if (state.overlay) {
      state.overlay.style.display = 'none';
    }
    state.highlighted = null;
  }

  function positionOverlay(el) {
    const overlay = ensureOverlay();
    if (!el || isOwnUi(el) || !el.getBoundingClientRect) {
      hideOverlay();
      return;
    }
    const rect = el.getBoundingClientRect();
    if (!rect || (rect.width === 0 && rect.height === 0)) {
      hideOverlay();
      return;
    }
    overlay.style.display = 'block';
    overlay.style.left = `${rect.left}px`;
    overlay.style.top = `${rect.top}px`;
    overlay.style.width = `${rect.width}px`;
    overlay.style.height = `${rect.height}px`;
    state.highlighted = el;
  }

  function elementIndex(el) {
    const all = [document.documentElement, ...document.documentElement.querySelectorAll('*')];
    return all.indexOf(el);
  }

  function attachListeners() {
    if (state.onMove) {
      return;
    }

    state.onMove = (event) => {
      if (!state.armed) return;
      positionOverlay(event.target);
    };

    state.onClick = (event) => {
      if (!state.armed) return;
      const el = event.target;
      if (!el || el.nodeType !== Node.ELEMENT_NODE || isOwnUi(el)) return;

      event.preventDefault();
      event.stopPropagation();
      event.stopImmediatePropagation();

      setArmed(false);
      const payload = {
        index: elementIndex(el),
        tag: el.tagName.toLowerCase(),
        id: el.id || null,
        name: el.getAttribute('name') || null,
        ariaLabel: el.getAttribute('aria-label') || null,
        placeholder: el.getAttribute('placeholder') || null,
      };
      if (typeof window.__locatorPickerReport === 'function') {
        window.__locatorPickerReport(payload);
      }
    };

    state.onScroll = () => {
      if (state.armed && state.highlighted) {
        positionOverlay(state.highlighted);
      }
    };

    document.addEventListener('mousemove', state.onMove, true);
    document.addEventListener('click', state.onClick, true);
    window.addEventListener('scroll', state.onScroll, true);
  }

  function detachListeners() {
    if (!state.onMove) {
      return;
    }
    document.removeEventListener('mousemove', state.onMove, true);
    document.removeEventListener('click', state.onClick, true);
    window.removeEventListener('scroll', state.onScroll, true);
    state.onMove = null;
    state.onClick = null;
    state.onScroll = null;
    hideOverlay();
  }

  function setArmed(armed) {
    state.armed = !!armed;
    if (state.armed) {
      hidePanel();
      ensureOverlay();
      attachListeners();
      return;
    }
    detachListeners();
  }

  function hidePanel() {
    if (state.panel && state.panel.parentNode) {
      state.panel.parentNode.removeChild(state.panel);
    }
    state.panel = null;
  }

  function copyToClipboard(text) {
    if (navigator.clipboard && navigator.clipboard.writeText) {
      return navigator.clipboard.writeText(text).catch(() => legacyCopy(text));
    }
    legacyCopy(text);
    return Promise.resolve();
  }

  function legacyCopy(text) {
    const area = document.createElement('textarea');
    area.setAttribute(UI_ATTR, 'clipboard');
    area.value = text;
    document.body.appendChild(area);
    area.select();
    try {
      document.execCommand('copy');
    } finally {
      area.remove();
    }
  }

  function showPanel({ text, copyText, severity, isError }) {
    hidePanel();
    const colors = { none: '#0f172a', warning: '#b45309', critical: '#b91c1c' };
    const panel = document.createElement('div');
    panel.setAttribute(UI_ATTR, 'panel');
    panel.style.cssText = [
      'position:fixed', 'right:16px', 'bottom:16px', 'z-index:2147483647',
      'max-width:560px', 'padding:12px', 'background:#ffffff',
      'border:1px solid #cbd5e1', 'border-radius:6px',
      'box-shadow:0 4px 16px rgba(15,23,42,0.2)',
      'font:12px/1.4 ui-monospace,monospace',
    ].join(';');

    const code = document.createElement('pre');
    code.style.cssText = 'margin:0 0 8px 0;white-space:pre-wrap;word-break:break-all';
    code.style.color = isError ? colors.critical : (colors[severity] || colors.none);
    code.textContent = text;
    panel.appendChild(code);

    const copy = document.createElement('button');
    copy.textContent = 'Copy';
    copy.addEventListener('click', (event) => {
      event.stopPropagation();
      copyToClipboard(copyText).then(() => {
        copy.textContent = 'Copied';
        setTimeout(() => { copy.textContent = 'Copy'; }, 1200);
      });
    });
    const close = document.createElement('button');
    close.textContent = 'Close';
    close.style.marginLeft = '6px';
    close.addEventListener('click', (event) => {
      event.stopPropagation();
      hidePanel();
      if (typeof window.__locatorPickerClosed === 'function') {
        window.__locatorPickerClosed();
      }
    });
    panel.appendChild(copy);
    panel.appendChild(close);
    document.documentElement.appendChild(panel);
    state.panel = panel;
  }

  function mark({ indices, marker }) {
    const previous = state.marker || marker;
    document.querySelectorAll(`[${previous}]`).forEach((el) => {
      el.removeAttribute(previous);
      el.style.removeProperty('outline');
    });
    state.marker = marker;
    const all = [document.documentElement, ...document.documentElement.querySelectorAll('*')];
    let count = 0;
    for (const index of indices || []) {
      const el = all[index];
      if (!el || isOwnUi(el)) continue;
      el.setAttribute(marker, 'true');
      el.style.setProperty('outline', '2px solid #ef4444');
      count += 1;
    }
    return count;
  }

  window.__locatorPickerSetArmed = setArmed;
  window.__locatorPickerShowPanel = showPanel;
  window.__locatorPickerHidePanel = hidePanel;
  window.__locatorPickerMark = mark;
  window.__locatorPickerRemove = () => {
    setArmed(false);
    hidePanel();
    if (state.overlay && state.overlay.parentNode) {
      state.overlay.parentNode.removeChild(state.overlay);
    }
    state.overlay = null;
  };

  window.__locatorPickerInstalled = true;
})();
""".replace("__UI_ATTR__", UI_ATTRIBUTE)


def _call(page: Page, script: str, arg: object = None) -> object:
    try:
        return page.evaluate(script, arg)
    except Exception:
        logger.debug("Page script call failed", exc_info=True)
        return None


def ensure_injected(page: Page, armed: bool) -> None:
    _call(page, INJECT_SCRIPT)
    if not _is_installed(page):
        logger.warning("Picker script could not be installed on %s", getattr(page, "url", ""))
        return
    set_armed(page, armed)


def _is_installed(page: Page) -> bool:
    return bool(_call(page, "() => !!window.__locatorPickerInstalled"))


def set_armed(page: Page, armed: bool) -> None:
    _call(
        page,
        "(armed) => { if (window.__locatorPickerSetArmed) window.__locatorPickerSetArmed(!!armed); }",
        armed,
    )


def show_panel(page: Page, display: ResultDisplay) -> None:
    _call(
        page,
        "(payload) => { if (window.__locatorPickerShowPanel) window.__locatorPickerShowPanel(payload); }",
        {
            "text": display.text,
            "copyText": display.copy_text,
            "severity": display.severity,
            "isError": display.is_error,
        },
    )


def hide_panel(page: Page) -> None:
    _call(page, "() => { if (window.__locatorPickerHidePanel) window.__locatorPickerHidePanel(); }")


def mirror_markers(page: Page, indices: list[int], marker: str) -> int:
    """Outline the nodes at ``indices`` on the live page, clearing earlier marks."""
    count = _call(
        page,
        "(payload) => window.__locatorPickerMark ? window.__locatorPickerMark(payload) : 0",
        {"indices": list(indices), "marker": marker},
    )
    return int(count) if isinstance(count, (int, float)) else 0


def remove_picker(page: Page) -> None:
    _call(page, "() => { if (window.__locatorPickerRemove) window.__locatorPickerRemove(); }")
