from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal, Union

if TYPE_CHECKING:
    from bs4.element import Tag

StrategyKind = Literal[
    "TestId",
    "RoleName",
    "Role",
    "Label",
    "Placeholder",
    "AltText",
    "Title",
    "Text",
    "StructuralPath",
]
Severity = Literal["none", "warning", "critical"]
Dialect = Literal["pytest", "js"]

DOCUMENT_SCOPE: Literal["document"] = "document"
DIALECTS: tuple[Dialect, ...] = ("pytest", "js")

Scope = Union["Tag", Literal["document"]]


@dataclass(frozen=True, slots=True)
class CandidateOptions:
    name: str | None = None
    exact: bool = False


@dataclass(frozen=True, slots=True)
class Candidate:
    kind: StrategyKind
    value: str
    options: CandidateOptions = field(default_factory=CandidateOptions)
    scope: Scope = DOCUMENT_SCOPE

    def scoped_to(self, scope: Scope) -> Candidate:
        return Candidate(kind=self.kind, value=self.value, options=self.options, scope=scope)


@dataclass(frozen=True, slots=True)
class LocatorExpression:
    segments: tuple[Candidate, ...]
    severity: Severity = "none"
    strategy: str = ""

    def __post_init__(self) -> None:
        if not self.segments:
            raise ValueError("LocatorExpression requires at least one segment.")

    @property
    def is_chained(self) -> bool:
        return len(self.segments) > 1

    @property
    def head(self) -> Candidate:
        return self.segments[0]

    @property
    def tail(self) -> Candidate:
        return self.segments[-1]


@dataclass(frozen=True, slots=True)
class SynthesisResult:
    text: str
    severity: Severity
    expression: LocatorExpression

    @property
    def strategy(self) -> str:
        return self.expression.strategy


@dataclass(slots=True)
class VerificationResult:
    count: int
    nodes: list[Tag] = field(default_factory=list)
    mode: Literal["css", "locator", "none"] = "none"
    message: str = ""
