"""URL schema compiler (source of truth).

Schemas are ``/``-delimited strings with three kinds of markers:

- ``:name`` captures one path segment (or whatever ``rules[name]`` allows)
- ``(...)`` wraps an optional part, e.g. ``/element(/:id)``
- ``*`` matches one or more of anything

A schema is *dynamic* when it contains any of ``: ( ? [ * +``; static schemas
are compared literally and never reach the regex engine.

``compile_pattern(schema, rules, extract_params=True, anchored=True)``

- escapes literal ``.``, turns every ``)`` into ``)?`` and ``*`` into ``.+``
- replaces ``:name`` with ``(?P<name>rule)`` when extracting, or with the bare
  rule fragment when only a boolean answer is needed
- the default rule is ``[^/]+``
- anchors the result at the start (always) and at the end (unless
  ``anchored`` is false, used for group prefixes)

Paths are normalized to ``"/" + path.strip("/")`` before matching. Schemas
containing ``#`` and fragments that do not compile raise
``MalformedSchemaError`` at compile time.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Optional, Pattern

__all__ = [
    "CompiledPattern",
    "MalformedSchemaError",
    "compile_pattern",
    "escape_literal",
    "extract_variables",
    "is_dynamic",
    "normalize_path",
    "static_prefix",
    "unescape_literal",
]

DYNAMIC_MARKERS = ":(?[*+"
DEFAULT_RULE = "[^/]+"
FORBIDDEN = "#"

_PARAM_TOKEN = re.compile(r":([a-zA-Z]\w*)")
_LITERAL_SPECIAL = frozenset("\\^$|?*+()[]{}:#")
_ESCAPED_CHAR = re.compile(r"\[\\x([0-9a-f]{2})\]")


class MalformedSchemaError(ValueError):
    """Raised when a URL schema cannot be turned into a matcher."""


def is_dynamic(schema: str) -> bool:
    return any(marker in schema for marker in DYNAMIC_MARKERS)


def normalize_path(url: str) -> str:
    return "/" + url.strip("/")


def escape_literal(text: str) -> str:
    """Turn request text into schema text that only ever matches itself.

    Characters the schema syntax or the regex engine would interpret become
    one-character classes written in hex (``+`` -> ``[\\x2b]``), which the
    compiler leaves alone. ``.`` is already escaped by the compiler.
    """
    return "".join(f"[\\x{ord(char):02x}]" if char in _LITERAL_SPECIAL else char for char in text)


def unescape_literal(schema: str) -> str:
    return _ESCAPED_CHAR.sub(lambda match: chr(int(match.group(1), 16)), schema)


def static_prefix(schema: str) -> str:
    """Return the literal leading segments of ``schema``.

    The cut happens at an optional group opening a new segment (``(/``) or
    else at the last ``/`` before the first dynamic marker, so a partially
    dynamic segment (``/file-*.txt``) never becomes a tree key.
    """
    for index, char in enumerate(schema):
        if char not in DYNAMIC_MARKERS:
            continue
        if schema.startswith("(/", index):
            return schema[:index]
        return schema[: schema.rfind("/", 0, index) + 1]
    return schema


def compile_pattern(
    schema: str,
    rules: Optional[Dict[str, str]] = None,
    extract_params: bool = True,
    anchored: bool = True,
) -> Pattern[str]:
    if FORBIDDEN in schema:
        raise MalformedSchemaError(f"URL schema {schema!r} must not contain {FORBIDDEN!r}")
    rules = rules or {}

    def replace(match: "re.Match[str]") -> str:
        name = match.group(1)
        rule = rules.get(name, DEFAULT_RULE)
        if extract_params:
            return f"(?P<{name}>{rule})"
        return f"(?:{rule})"

    body = schema.replace(".", r"\.").replace(")", ")?").replace("*", ".+")
    source = "^" + _PARAM_TOKEN.sub(replace, body) + ("$" if anchored else "")
    try:
        return re.compile(source)
    except re.error as exc:
        raise MalformedSchemaError(f"URL schema {schema!r} does not compile: {exc}") from exc


def extract_variables(pattern: Pattern[str], url: str) -> Optional[Dict[str, str]]:
    """Run ``pattern`` on ``url`` and keep only the named captures.

    Returns ``None`` on no match; optional parameters that did not take part
    in the match are left out.
    """
    match = pattern.match(normalize_path(url))
    if match is None:
        return None
    return {key: value for key, value in match.groupdict().items() if value is not None}


@dataclass
class CompiledPattern:
    """Both matcher forms for one schema/rules pair."""

    schema: str
    rules: Dict[str, str] = field(default_factory=dict)
    dynamic: bool = field(init=False)
    regex: Optional[Pattern[str]] = field(init=False, default=None)
    matcher: Optional[Pattern[str]] = field(init=False, default=None)

    def __post_init__(self) -> None:
        if FORBIDDEN in self.schema:
            raise MalformedSchemaError(
                f"URL schema {self.schema!r} must not contain {FORBIDDEN!r}"
            )
        self.dynamic = is_dynamic(self.schema)
        if self.dynamic:
            self.regex = compile_pattern(self.schema, self.rules)
            self.matcher = compile_pattern(self.schema, self.rules, extract_params=False)

    def matches(self, url: str) -> bool:
        if self.dynamic:
            return self.matcher.match(normalize_path(url)) is not None  # type: ignore[union-attr]
        return url.rstrip("/") == self.schema.rstrip("/")

    def extract(self, url: str) -> Dict[str, str]:
        if not self.dynamic:
            return {}
        return extract_variables(self.regex, url) or {}  # type: ignore[arg-type]
