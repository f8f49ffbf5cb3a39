from __future__ import annotations

from collections import deque
import logging
from typing import TYPE_CHECKING, Any, Callable
from urllib.parse import urlparse

from .dom import INDEX_ATTRIBUTE, describe
from .dom_extractor import extract_document
from .injector import (
    CLOSE_BINDING,
    INJECT_SCRIPT,
    REPORT_BINDING,
    ensure_injected,
    hide_panel,
    mirror_markers,
    remove_picker,
    set_armed,
    show_panel,
)
from .models import Dialect, SynthesisResult, VerificationResult
from .runtime_checks import _is_closed_target_error, _is_missing_browser_error, parse_pick_index, pick_matches_node
from .session import PickSession, ResultDisplay
from .settings import PickerSettings

if TYPE_CHECKING:
    from playwright.sync_api import Browser, Frame, Page, Playwright

StatusCallback = Callable[[str], None]
ResultCallback = Callable[[SynthesisResult], None]


class BrowserManager:
    """Drive picking and verification on one live Playwright page."""

    def __init__(
        self,
        settings: PickerSettings | None = None,
        *,
        on_status: StatusCallback | None = None,
        on_result: ResultCallback | None = None,
        session: PickSession | None = None,
    ) -> None:
        self.settings = settings or PickerSettings()
        self.session = session or PickSession(settings=self.settings)
        self.session.on_display = self._show_display
        self.session.on_hide = self._hide_display
        self.logger = logging.getLogger("locatorpicker.browser")

        self._on_status = on_status or (lambda _message: None)
        self._on_result = on_result or (lambda _result: None)
        self._pending: deque[tuple[str, dict[str, Any]]] = deque()
        self._results: list[SynthesisResult] = []

        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._page: Page | None = None
        self._owns_browser = False

    @property
    def page(self) -> Page | None:
        return self._page

    @property
    def results(self) -> list[SynthesisResult]:
        return list(self._results)

    def _status(self, message: str) -> None:
        self.logger.info(message)
        self._on_status(message)

    def launch(self, url: str, *, headless: bool = False) -> bool:
        target = self._normalize_url(url)
        if not target:
            self._status("Please enter a URL.")
            return False

        try:
            from playwright.sync_api import sync_playwright
        except Exception as exc:
            self._status(f"Playwright is not available: {exc}")
            return False

        try:
            self._playwright = sync_playwright().start()
            self._browser = self._playwright.chromium.launch(headless=headless)
        except Exception as exc:
            if _is_missing_browser_error(exc):
                self._status("Chromium is not installed. Run `playwright install chromium` and try again.")
            else:
                self._status(f"Failed to launch Chromium: {exc}")
            self.shutdown()
            return False

        self._owns_browser = True
        page = self._browser.new_page()
        self.attach(page)
        self._status(f"Opening {target}")
        try:
            page.goto(target, wait_until="domcontentloaded")
        except Exception as exc:
            self._status(f"Navigation failed: {exc}")
            return False
        ensure_injected(page, self.session.armed)
        return True

    def attach(self, page: Page) -> None:
        """Install bindings, the page script and the navigation listener."""
        self._page = page
        page.expose_binding(REPORT_BINDING, self._on_report)
        page.expose_binding(CLOSE_BINDING, self._on_closed)
        page.add_init_script(INJECT_SCRIPT)
        page.on("framenavigated", self._on_frame_navigated)
        ensure_injected(page, self.session.armed)

    def _on_report(self, _source: Any, payload: Any = None) -> None:
        self._pending.append(("pick", payload if isinstance(payload, dict) else {}))

    def _on_closed(self, _source: Any, *_args: Any) -> None:
        self._pending.append(("close", {}))

    def _on_frame_navigated(self, frame: Frame) -> None:
        if self._page is None or frame is not self._page.main_frame:
            return
        self.session.on_navigation_started()
        self._pending.clear()

    def arm(self, dialect: Dialect | None = None) -> bool:
        if not self._page:
            self._status("Launch a page first.")
            return False
        changed = self.session.arm(dialect)
        ensure_injected(self._page, True)
        if changed:
            self._status(f"Picking mode ON ({self.session.dialect}). Click an element.")
        return changed

    def disarm(self) -> bool:
        changed = self.session.disarm()
        if self._page:
            set_armed(self._page, False)
        if changed:
            self._status("Picking mode OFF.")
        return changed

    def toggle(self, dialect: Dialect | None = None) -> bool:
        if self.session.armed:
            self.disarm()
        else:
            self.arm(dialect)
        return self.session.armed

    def process_pending(self) -> int:
        """Handle queued page events; returns how many were processed."""
        handled = 0
        while self._pending:
            kind, payload = self._pending.popleft()
            handled += 1
            try:
                if kind == "pick":
                    self._handle_pick(payload)
                elif kind == "close":
                    self.session.hide_result()
            except Exception as exc:
                self.logger.exception("Page event %s failed", kind)
                self._status(f"Pick handling failed: {exc}")
        return handled

    def _handle_pick(self, payload: dict[str, Any]) -> SynthesisResult | None:
        if not self._page or not self.session.armed:
            return None
        index = parse_pick_index(payload)
        if index is None:
            self.session.disarm()
            self._status("Pick report did not include an element index.")
            return None

        document = extract_document(self._page)
        node = document.node_at_index(index)
        if node is None:
            self.session.disarm()
            self._status("Picked element is no longer in the page.")
            return None
        if not pick_matches_node(payload, node):
            self.logger.warning("Snapshot node %s differs from the clicked %s", describe(node), payload.get("tag"))

        result = self.session.handle_pick(node, document)
        if result is not None:
            self._results.append(result)
            self._on_result(result)
        return result

    def verify(self, text: str) -> VerificationResult:
        if not self._page:
            self._status("Launch a page first.")
            return VerificationResult(count=0, message="No page.")
        document = extract_document(self._page)
        result = self.session.verify_result(text, document)
        indices = [
            int(str(node.get(INDEX_ATTRIBUTE)))
            for node in self.session.marked
            if str(node.get(INDEX_ATTRIBUTE, "")).isdigit()
        ]
        mirror_markers(self._page, indices, self.settings.marker_attribute)
        self._status(f"{result.count} match(es) for {text}")
        return result

    def run(self, *, max_picks: int | None = None, poll_ms: int = 100) -> list[SynthesisResult]:
        """Pump page events until the page closes or ``max_picks`` results arrive."""
        start = len(self._results)
        while self._page is not None:
            if max_picks is not None and len(self._results) - start >= max_picks:
                break
            try:
                if self._page.is_closed():
                    break
                self._page.wait_for_timeout(poll_ms)
            except Exception as exc:
                if not _is_closed_target_error(exc):
                    self._status(f"Browser loop stopped: {exc}")
                break
            self.process_pending()
        return self._results[start:]

    def _show_display(self, display: ResultDisplay) -> None:
        if self._page:
            show_panel(self._page, display)

    def _hide_display(self, _display: ResultDisplay) -> None:
        if self._page:
            hide_panel(self._page)

    def shutdown(self) -> None:
        if self._page is not None:
            try:
                if not self._page.is_closed():
                    remove_picker(self._page)
            except Exception:
                self.logger.debug("Picker removal skipped", exc_info=True)
        if self._owns_browser and self._browser is not None:
            try:
                self._browser.close()
            except Exception:
                self.logger.debug("Browser close failed", exc_info=True)
        if self._playwright is not None:
            try:
                self._playwright.stop()
            except Exception:
                self.logger.debug("Playwright stop failed", exc_info=True)
        self._page = None
        self._browser = None
        self._playwright = None
        self._owns_browser = False

    @staticmethod
    def _normalize_url(raw_url: str) -> str:
        url = (raw_url or "").strip()
        if not url:
            return ""
        parsed = urlparse(url)
        if parsed.scheme:
            return url
        return f"https://{url}"
