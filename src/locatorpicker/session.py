from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Callable

from bs4.element import Tag

from .dom import Document, describe
from .locator_generator import synthesize
from .models import DIALECTS, Dialect, Severity, SynthesisResult, VerificationResult
from .rendering import annotate, copyable_text
from .settings import PickerSettings
from .verifier import verify

logger = logging.getLogger("locatorpicker.session")

DisplayCallback = Callable[["ResultDisplay"], None]


@dataclass(slots=True)
class ResultDisplay:
    """The one result panel shown for a session."""

    text: str
    severity: Severity
    is_error: bool = False
    open: bool = True
    on_close: Callable[[ResultDisplay], None] | None = None

    @property
    def copy_text(self) -> str:
        return copyable_text(self.text)

    def close(self) -> None:
        if not self.open:
            return
        self.open = False
        if self.on_close:
            self.on_close(self)


@dataclass(slots=True)
class PickSession:
    """Per-document picking state: armed flag, dialect, display and markers."""

    settings: PickerSettings = field(default_factory=PickerSettings)
    armed: bool = False
    dialect: Dialect = "pytest"
    display: ResultDisplay | None = None
    marked: list[Tag] = field(default_factory=list)
    on_display: DisplayCallback | None = None
    on_hide: Callable[[ResultDisplay], None] | None = None

    def __post_init__(self) -> None:
        self.dialect = self.settings.dialect

    def arm(self, dialect: Dialect | None = None) -> bool:
        if self.armed:
            return False
        if dialect is not None:
            if dialect not in DIALECTS:
                raise ValueError(f"Unknown dialect: {dialect}")
            self.dialect = dialect
        self.armed = True
        self.hide_result()
        logger.info("Picking mode armed (dialect=%s)", self.dialect)
        return True

    def disarm(self) -> bool:
        if not self.armed:
            return False
        self.armed = False
        logger.info("Picking mode disarmed")
        return True

    def toggle(self, dialect: Dialect | None = None) -> bool:
        if self.armed:
            self.disarm()
        else:
            self.arm(dialect)
        return self.armed

    def on_navigation_started(self) -> None:
        if self.disarm():
            logger.info("Navigation started; picking mode forced off")

    def handle_pick(self, node: Tag, document: Document) -> SynthesisResult | None:
        """Consume one pick while armed; returns None when idle."""
        if not self.armed:
            return None
        self.armed = False
        try:
            result = synthesize(
                node,
                document,
                self.dialect,
                text_limit=self.settings.text_limit,
                ancestor_depth=self.settings.ancestor_depth,
            )
        except Exception as exc:
            logger.exception("Pick handling failed for %s", describe(node))
            self.show_result(f"An error occurred: {exc}", "critical", is_error=True)
            return None
        logger.info("Picked %s -> %s (%s)", describe(node), result.text, result.severity)
        self.show_result(annotate(result.text, result.severity, self.dialect), result.severity)
        return result

    def show_result(self, text: str, severity: Severity, *, is_error: bool = False) -> ResultDisplay:
        self.hide_result()
        self.display = ResultDisplay(text=text, severity=severity, is_error=is_error, on_close=self.on_hide)
        if self.on_display:
            self.on_display(self.display)
        return self.display

    def hide_result(self) -> None:
        if self.display is None:
            return
        self.display.close()
        self.display = None

    def verify(self, text: str, document: Document) -> int:
        return self.verify_result(text, document).count

    def verify_result(self, text: str, document: Document) -> VerificationResult:
        result = verify(
            text,
            document,
            previous=self.marked,
            marker=self.settings.marker_attribute,
            text_limit=self.settings.text_limit,
        )
        self.marked = list(result.nodes)
        return result
