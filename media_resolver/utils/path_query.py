"""A small JSONPath-like query language for schema-less payloads.

Supported syntax::

    $                 the payload root
    .key              child member
    ..key             search every depth (pre-order, document order)
    [3]               list index
    [*] or .*         every child

Patterns are compiled once and cached, so the pattern lists used by the
extractors stay plain data.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

_TOKEN = re.compile(
    r"""
    (?P<descend>\.\.)?
    (?:
        \.?(?P<key>[A-Za-z_$][\w$-]*)
      | \.?(?P<wild>\*)
      | \[(?P<index>-?\d+)\]
      | \[(?P<bwild>\*)\]
      | \[["'](?P<quoted>[^"']+)["']\]
    )
    """,
    re.VERBOSE,
)

_MEDIA_URL = re.compile(r"""https://[^"'\s]+?\.(?:mp4|jpg|png|webp)(?=[^\w]|$)""")

_WILDCARD = object()


@dataclass(frozen=True)
class Step:
    selector: Any  # str key, int index, or _WILDCARD
    descend: bool = False


@lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> tuple[Step, ...]:
    """Compile a pattern string into steps. Raises ValueError on bad syntax."""
    text = pattern.strip()
    if not text.startswith("$"):
        raise ValueError(f"Pattern must start with '$': {pattern!r}")

    steps: list[Step] = []
    pos = 1
    while pos < len(text):
        match = _TOKEN.match(text, pos)
        if not match or match.end() == pos:
            raise ValueError(f"Unexpected {text[pos:]!r} in pattern {pattern!r}")
        # A bare key is only valid right after '.' or '..'
        if match.group("key") and not match.group("descend") and text[pos] != ".":
            raise ValueError(f"Missing '.' before {match.group('key')!r} in {pattern!r}")

        descend = bool(match.group("descend"))
        if match.group("key") is not None:
            selector: Any = match.group("key")
        elif match.group("quoted") is not None:
            selector = match.group("quoted")
        elif match.group("index") is not None:
            selector = int(match.group("index"))
        else:
            selector = _WILDCARD
        steps.append(Step(selector=selector, descend=descend))
        pos = match.end()

    return tuple(steps)


def _walk(node: Any) -> Iterator[Any]:
    """Yield node and every descendant, parents before children."""
    yield node
    if isinstance(node, dict):
        for value in node.values():
            yield from _walk(value)
    elif isinstance(node, list):
        for value in node:
            yield from _walk(value)


def _select(node: Any, selector: Any) -> Iterator[Any]:
    if selector is _WILDCARD:
        if isinstance(node, dict):
            yield from node.values()
        elif isinstance(node, list):
            yield from node
    elif isinstance(selector, int):
        if isinstance(node, list) and -len(node) <= selector < len(node):
            yield node[selector]
    elif isinstance(node, dict) and selector in node:
        yield node[selector]


def iter_query(payload: Any, pattern: str) -> Iterator[Any]:
    nodes: list[Any] = [payload]
    for step in compile_pattern(pattern):
        pool = (desc for node in nodes for desc in _walk(node)) if step.descend else nodes
        nodes = [found for node in pool for found in _select(node, step.selector)]
        if not nodes:
            return
    yield from nodes


def query(payload: Any, pattern: str) -> list[Any]:
    """Return every value matched by pattern, in document order."""
    return list(iter_query(payload, pattern))


def _is_present(value: Any) -> bool:
    return value is not None and value != "" and value is not False


def first_match(
    payload: Any,
    patterns: Sequence[str],
    accept: Callable[[Any], bool] | None = None,
) -> Any | None:
    """Return the first usable value of the first pattern that finds one.

    When accept is given, values it rejects are skipped like empty ones.
    """
    for pattern in patterns:
        for value in iter_query(payload, pattern):
            if _is_present(value) and (accept is None or accept(value)):
                return value
    return None


def scavenge_media_url(payload: Any) -> str | None:
    """Last-resort regex scan of the serialized payload.

    Video (.mp4) URLs win over image URLs; otherwise the first image URL
    found is returned.
    """
    text = payload if isinstance(payload, str) else json.dumps(payload, default=str)
    # JSON escapes forward slashes in some payloads
    text = text.replace("\\/", "/")
    urls = _MEDIA_URL.findall(text)
    if not urls:
        return None
    videos = [url for url in urls if url.endswith(".mp4")]
    return videos[0] if videos else urls[0]
