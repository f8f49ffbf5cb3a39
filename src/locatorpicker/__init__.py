"""Stable Playwright locator synthesis for HTML documents."""

from __future__ import annotations

__version__ = "0.1.0"
