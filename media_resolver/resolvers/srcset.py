from __future__ import annotations

import asyncio
from collections.abc import Sequence

import aiohttp
import structlog

from media_resolver.config import settings
from media_resolver.resolvers.base import SourceCandidate, dbg
from media_resolver.resolvers.errors import NetworkFailure

logger = structlog.get_logger()


def parse_srcset(srcset: str) -> list[SourceCandidate]:
    """Split a srcset attribute into ordered candidates.

    A URL runs until whitespace; trailing commas on the URL end the entry
    without a descriptor. Otherwise the descriptor runs to the next comma.
    """
    candidates: list[SourceCandidate] = []
    pos, length = 0, len(srcset)

    while pos < length:
        while pos < length and (srcset[pos].isspace() or srcset[pos] == ","):
            pos += 1
        if pos >= length:
            break

        start = pos
        while pos < length and not srcset[pos].isspace():
            pos += 1
        url = srcset[start:pos]

        descriptor: str | None = None
        if url.endswith(","):
            url = url.rstrip(",")
        else:
            start = pos
            while pos < length and srcset[pos] != ",":
                pos += 1
            descriptor = srcset[start:pos].strip() or None

        if url:
            candidates.append(SourceCandidate(url=url, descriptor=descriptor))

    return candidates


def candidates_with_current(
    candidates: Sequence[SourceCandidate],
    current_url: str | None,
) -> list[SourceCandidate]:
    """Copy candidates, appending current_url when no descriptor lists it."""
    pool = [SourceCandidate(url=c.url, descriptor=c.descriptor) for c in candidates]
    if current_url and current_url not in {c.url for c in pool}:
        pool.append(SourceCandidate(url=current_url))
    return pool


async def _measure(session: aiohttp.ClientSession, candidate: SourceCandidate) -> SourceCandidate:
    timeout = aiohttp.ClientTimeout(total=settings.request_timeout_seconds)
    try:
        async with session.get(
            candidate.url,
            headers={"User-Agent": settings.user_agent},
            timeout=timeout,
        ) as resp:
            # The body is measured whatever the status, like a browser fetch
            body = await resp.read()
    except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
        raise NetworkFailure(
            f"Size probe failed for {candidate.url}: {exc}", url=candidate.url
        ) from exc

    candidate.bytesize = len(body)
    dbg("srcset_candidate_measured", url=candidate.url, bytesize=candidate.bytesize)
    return candidate


async def resolve_biggest(
    candidates: Sequence[SourceCandidate],
    current_url: str | None,
    session: aiohttp.ClientSession | None = None,
) -> str:
    """Download every candidate and return the URL with the largest body.

    All probes run concurrently and all must finish: a single failed probe
    fails the whole resolution with NetworkFailure. Equal sizes keep the
    descriptor order.
    """
    pool = candidates_with_current(candidates, current_url)
    if not pool:
        raise ValueError("No srcset candidates to compare")

    own_session = session is None
    if own_session:
        session = aiohttp.ClientSession()

    try:
        # Every probe settles before the session closes; the first failure wins
        outcomes = await asyncio.gather(*[_measure(session, c) for c in pool], return_exceptions=True)
    finally:
        if own_session:
            await session.close()

    for outcome in outcomes:
        if isinstance(outcome, BaseException):
            raise outcome
    measured: list[SourceCandidate] = list(outcomes)

    # sorted() is stable, so ties keep insertion order
    best = sorted(measured, key=lambda c: c.bytesize or 0, reverse=True)[0]
    logger.info(
        "srcset_biggest_picked",
        url=best.url,
        bytesize=best.bytesize,
        candidates=len(measured),
    )
    return best.url
