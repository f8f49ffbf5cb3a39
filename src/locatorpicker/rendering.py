from __future__ import annotations

import re

from .models import Candidate, Dialect, LocatorExpression, Severity

METHOD_NAMES: dict[str, str] = {
    "TestId": "getByTestId",
    "RoleName": "getByRole",
    "Role": "getByRole",
    "Label": "getByLabel",
    "Placeholder": "getByPlaceholder",
    "AltText": "getByAltText",
    "Title": "getByTitle",
    "Text": "getByText",
    "StructuralPath": "locator",
}

SEVERITY_COMMENTS: dict[str, str] = {
    "warning": "WARNING: fragile locator. Consider adding a data-testid.",
    "critical": "CRITICAL: tag-only locator. Add a data-testid or accessible name.",
}

_STRING_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}

_TRAILING_COMMENT_PATTERN = re.compile(r"\s+(#|//)\s*(WARNING|CRITICAL):.*$", re.DOTALL)


def escape_string(value: str) -> str:
    return "".join(_STRING_ESCAPES.get(char, char) for char in value)


def quote(value: str) -> str:
    return f'"{escape_string(value)}"'


def method_name(candidate: Candidate, dialect: Dialect) -> str:
    name = METHOD_NAMES[candidate.kind]
    if dialect == "pytest":
        return re.sub(r"([A-Z])", r"_\1", name).lower()
    return name


def _options(candidate: Candidate) -> list[tuple[str, str | bool]]:
    if candidate.kind in {"TestId", "StructuralPath", "Role"}:
        return []
    options: list[tuple[str, str | bool]] = []
    if candidate.kind == "RoleName" and candidate.options.name is not None:
        options.append(("name", candidate.options.name))
        if candidate.options.exact:
            options.append(("exact", True))
        return options
    if candidate.options.exact:
        options.append(("exact", True))
    return options


def _format_options(options: list[tuple[str, str | bool]], dialect: Dialect) -> str:
    if dialect == "pytest":
        parts = []
        for key, value in options:
            rendered = ("True" if value else "False") if isinstance(value, bool) else quote(value)
            parts.append(f"{key}={rendered}")
        return ", ".join(parts)

    parts = []
    for key, value in options:
        rendered = ("true" if value else "false") if isinstance(value, bool) else quote(value)
        parts.append(f"{key}: {rendered}")
    return "{ " + ", ".join(parts) + " }"


def render_segment(candidate: Candidate, dialect: Dialect) -> str:
    call = f"{method_name(candidate, dialect)}({quote(candidate.value)}"
    options = _options(candidate)
    if options:
        call += f", {_format_options(options, dialect)}"
    return call + ")"


def render_expression(expression: LocatorExpression, dialect: Dialect = "pytest", receiver: str = "page") -> str:
    calls = [render_segment(segment, dialect) for segment in expression.segments]
    return ".".join([receiver, *calls])


def annotate(text: str, severity: Severity, dialect: Dialect = "pytest") -> str:
    comment = SEVERITY_COMMENTS.get(severity)
    if not comment:
        return text
    marker = "#" if dialect == "pytest" else "//"
    return f"{text} {marker} {comment}"


def copyable_text(text: str) -> str:
    """Locator text without the trailing severity comment."""
    return _TRAILING_COMMENT_PATTERN.sub("", text).strip()
