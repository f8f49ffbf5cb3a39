"""Parser for the small locator-call grammar.

    expression := [receiver "."] call ("." call)* [comment]
    call       := method "(" string ["," options] ")"
    options    := name "=" literal ("," name "=" literal)*
                | "{" name ":" literal ("," name ":" literal)* [","] "}"

``method`` is one of the Playwright ``getBy*`` methods or ``locator`` in
camelCase or snake_case. Strings may use double, single or back quotes.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import re

from .models import Candidate, CandidateOptions, StrategyKind

logger = logging.getLogger("locatorpicker.parser")

METHOD_KINDS: dict[str, StrategyKind] = {
    "getbytestid": "TestId",
    "getbyrole": "RoleName",
    "getbylabel": "Label",
    "getbyplaceholder": "Placeholder",
    "getbyalttext": "AltText",
    "getbytitle": "Title",
    "getbytext": "Text",
    "locator": "StructuralPath",
}

_LOCATOR_CALL_PATTERN = re.compile(r"(get_?by_?[a-z_]*|locator)\s*\(", re.IGNORECASE)
_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", "\\": "\\", '"': '"', "'": "'", "`": "`"}
_PUNCTUATION = frozenset("().,{}:=")
_BOOLEANS = {"true": True, "false": False}


class ExpressionSyntaxError(ValueError):
    pass


@dataclass(frozen=True, slots=True)
class Token:
    kind: str
    value: str
    position: int


def looks_like_locator_call(text: str) -> bool:
    return bool(_LOCATOR_CALL_PATTERN.search(text))


def tokenize(text: str) -> list[Token]:
    tokens: list[Token] = []
    index = 0
    length = len(text)
    while index < length:
        char = text[index]
        if char.isspace():
            index += 1
            continue
        if char == "#" or text.startswith("//", index):
            break
        if char in {'"', "'", "`"}:
            start = index
            value, index = _read_string(text, index)
            tokens.append(Token("string", value, start))
            continue
        if char.isdigit():
            start = index
            while index < length and text[index].isdigit():
                index += 1
            tokens.append(Token("number", text[start:index], start))
            continue
        if char in _PUNCTUATION:
            tokens.append(Token("punct", char, index))
            index += 1
            continue
        if char.isalpha() or char in {"_", "$"}:
            start = index
            while index < length and (text[index].isalnum() or text[index] in {"_", "$"}):
                index += 1
            tokens.append(Token("ident", text[start:index], start))
            continue
        raise ExpressionSyntaxError(f"Unexpected character {char!r} at {index}.")
    return tokens


def _read_string(text: str, start: int) -> tuple[str, int]:
    quote = text[start]
    chars: list[str] = []
    index = start + 1
    while index < len(text):
        char = text[index]
        if char == "\\":
            if index + 1 >= len(text):
                break
            following = text[index + 1]
            chars.append(_ESCAPES.get(following, following))
            index += 2
            continue
        if char == quote:
            return "".join(chars), index + 1
        chars.append(char)
        index += 1
    raise ExpressionSyntaxError(f"Unterminated string starting at {start}.")


class _Parser:
    def __init__(self, tokens: list[Token]) -> None:
        self.tokens = tokens
        self.index = 0

    def peek(self) -> Token | None:
        return self.tokens[self.index] if self.index < len(self.tokens) else None

    def take(self, kind: str, value: str | None = None) -> Token:
        token = self.peek()
        if token is None:
            raise ExpressionSyntaxError(f"Expected {value or kind} but reached the end.")
        if token.kind != kind or (value is not None and token.value != value):
            raise ExpressionSyntaxError(f"Expected {value or kind} at {token.position}, got {token.value!r}.")
        self.index += 1
        return token

    def accept(self, kind: str, value: str | None = None) -> bool:
        token = self.peek()
        if token is None or token.kind != kind or (value is not None and token.value != value):
            return False
        self.index += 1
        return True

    def parse(self) -> list[Candidate]:
        if not self.tokens:
            raise ExpressionSyntaxError("Empty expression.")
        if self.peek() and self.peek().kind == "ident" and self.peek().value == "await":
            self.index += 1

        segments: list[Candidate] = []
        while True:
            ident = self.take("ident")
            if self.accept("punct", "("):
                segments.append(self._call(ident))
            elif segments:
                raise ExpressionSyntaxError(f"Property access {ident.value!r} is not supported.")
            if self.peek() is None:
                break
            self.take("punct", ".")

        if not segments:
            raise ExpressionSyntaxError("No locator call found.")
        return segments

    def _call(self, ident: Token) -> Candidate:
        kind = METHOD_KINDS.get(ident.value.replace("_", "").lower())
        if kind is None:
            raise ExpressionSyntaxError(f"Unknown locator method {ident.value!r}.")
        value = self.take("string").value
        options: dict[str, str | bool] = {}
        if self.accept("punct", ","):
            if not (self.peek() and self.peek().kind == "punct" and self.peek().value == ")"):
                options = self._options()
        self.take("punct", ")")
        return _to_candidate(kind, value, options)

    def _options(self) -> dict[str, str | bool]:
        if self.accept("punct", "{"):
            options = self._pairs(separator=":", closing="}")
            self.take("punct", "}")
            return options
        return self._pairs(separator="=", closing=")")

    def _pairs(self, *, separator: str, closing: str) -> dict[str, str | bool]:
        options: dict[str, str | bool] = {}
        while True:
            key = self.take("ident").value
            self.take("punct", separator)
            options[key] = self._literal()
            if not self.accept("punct", ","):
                break
            token = self.peek()
            if token is not None and token.kind == "punct" and token.value == closing:
                break
        return options

    def _literal(self) -> str | bool:
        token = self.peek()
        if token is None:
            raise ExpressionSyntaxError("Expected a value but reached the end.")
        if token.kind in {"string", "number"}:
            self.index += 1
            return token.value
        if token.kind == "ident" and token.value.lower() in _BOOLEANS:
            self.index += 1
            return _BOOLEANS[token.value.lower()]
        raise ExpressionSyntaxError(f"Unsupported option value {token.value!r} at {token.position}.")


def _to_candidate(kind: StrategyKind, value: str, options: dict[str, str | bool]) -> Candidate:
    exact = options.get("exact") is True
    name = options.get("name")
    ignored = sorted(key for key in options if key not in {"exact", "name"})
    if ignored:
        logger.debug("Ignoring unsupported locator options: %s", ", ".join(ignored))

    if kind == "RoleName":
        if isinstance(name, str):
            return Candidate(kind="RoleName", value=value, options=CandidateOptions(name=name, exact=exact))
        return Candidate(kind="Role", value=value)
    if kind in {"TestId", "StructuralPath"}:
        return Candidate(kind=kind, value=value)
    return Candidate(kind=kind, value=value, options=CandidateOptions(exact=exact))


def parse_expression(text: str) -> list[Candidate]:
    """Parse locator text into document-scoped candidate segments."""
    return _Parser(tokenize(text.strip())).parse()
