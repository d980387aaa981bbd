from __future__ import annotations

import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, TypeVar

import structlog

from media_resolver.config import settings
from media_resolver.resolvers.errors import SoftFailure, StrategiesExhausted

logger = structlog.get_logger()

T = TypeVar("T")

BLOB_PREFIX = "blob:"

# Parsed JSON: dicts, lists and scalars of unknown schema
JsonValue = Any


class ContentType(StrEnum):
    POST = "post"
    REEL = "reel"
    TV = "tv"
    STORY = "story"


class MediaKind(StrEnum):
    IMAGE = "image"
    VIDEO = "video"


@dataclass
class SourceCandidate:
    """One entry of a responsive-image descriptor set."""

    url: str
    descriptor: str | None = None
    bytesize: int | None = None  # measured by the srcset resolver


@dataclass(frozen=True)
class MediaElement:
    """Read-only view of a rendered image or video node."""

    kind: MediaKind
    current_source_url: str | None = None
    srcset_candidates: tuple[SourceCandidate, ...] = ()
    child_sources: tuple[str, ...] = ()
    poster: str | None = None

    @property
    def is_video(self) -> bool:
        return self.kind == MediaKind.VIDEO

    @property
    def has_blob_source(self) -> bool:
        return is_blob_url(self.current_source_url)


@dataclass(frozen=True)
class StoryContext:
    username: str
    story_id: str | None = None


@dataclass(frozen=True)
class ContentContext:
    content_type: ContentType
    content_id: str | None = None
    story: StoryContext | None = None


@dataclass
class ResolvedMedia:
    """Outcome of one resolution: the URL and the branch that produced it."""

    url: str
    method_used: str = "unknown"
    details: dict[str, Any] = field(default_factory=dict)


def is_blob_url(url: str | None) -> bool:
    return bool(url) and url.startswith(BLOB_PREFIX)


def dbg(event: str, **kwargs: object) -> None:
    """Log at info level when debug_mode is on, otherwise debug."""
    if settings.debug_mode:
        logger.info(event, **kwargs)
    else:
        logger.debug(event, **kwargs)


Strategy = tuple[str, Callable[[], Awaitable[T]]]


async def first_success(
    strategies: Sequence[Strategy],
    *,
    chain: str,
) -> tuple[str, T]:
    """Run strategies in order and return ``(name, result)`` of the first that succeeds.

    Soft failures are logged and the next strategy runs. Anything else
    propagates untouched. When every strategy misses, StrategiesExhausted
    carries each ``(name, failure)`` pair.
    """
    failures: list[tuple[str, SoftFailure]] = []

    for name, strategy in strategies:
        start = time.monotonic()
        try:
            result = await strategy()
        except SoftFailure as exc:
            duration_ms = int((time.monotonic() - start) * 1000)
            logger.warning(
                "strategy_failed",
                chain=chain,
                strategy=name,
                category=type(exc).__name__,
                duration_ms=duration_ms,
                error=str(exc),
            )
            failures.append((name, exc))
            continue

        duration_ms = int((time.monotonic() - start) * 1000)
        dbg("strategy_succeeded", chain=chain, strategy=name, duration_ms=duration_ms)
        return name, result

    logger.error("all_strategies_failed", chain=chain, attempted=[name for name, _ in failures])
    raise StrategiesExhausted(f"All {chain} strategies failed", failures)
