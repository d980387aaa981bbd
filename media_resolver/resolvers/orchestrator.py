"""Top-level policy: one decision tree per media element."""

from __future__ import annotations

import re

import aiohttp
import structlog

from media_resolver.config import settings
from media_resolver.resolvers.base import (
    ContentContext,
    ContentType,
    MediaElement,
    ResolvedMedia,
    dbg,
    first_success,
    is_blob_url,
)
from media_resolver.resolvers.content import identify_content
from media_resolver.resolvers.direct_probe import ProbeKind, ProbeResult, probe_page
from media_resolver.resolvers.errors import (
    MediaUnresolvable,
    NetworkFailure,
    ProbeUnavailable,
    SoftFailure,
    StrategiesExhausted,
)
from media_resolver.resolvers.extract import extract_media_url
from media_resolver.resolvers.page import PageContext
from media_resolver.resolvers.remote import fetch_remote
from media_resolver.resolvers.srcset import resolve_biggest

logger = structlog.get_logger()

_SIZE_SUFFIX = re.compile(r"_[0-9]+\.(?P<ext>[a-zA-Z0-9]+)(?P<query>\?.*)?$")


def upgrade_story_image_url(url: str, width: int | None = None) -> str:
    """Rewrite a trailing ``_<digits>.<ext>`` size suffix to the high-res width.

    URLs already carrying a ``1080x`` / ``1080w`` marker, or without a size
    suffix, come back unchanged.
    """
    width = width or settings.high_res_width
    if f"{width}x" in url or f"{width}w" in url:
        return url
    return _SIZE_SUFFIX.sub(
        lambda m: f"_{width}.{m.group('ext')}{m.group('query') or ''}", url, count=1
    )


class MediaUrlResolver:
    """Resolve the best fetchable URL for media elements of one page.

    The resolver holds the page snapshot and an optional shared session; it
    keeps no state between resolve() calls.
    """

    def __init__(self, page: PageContext, session: aiohttp.ClientSession | None = None) -> None:
        self.page = page
        self.session = session

    async def resolve(self, media: MediaElement) -> str:
        return (await self.resolve_media(media)).url

    async def resolve_media(self, media: MediaElement) -> ResolvedMedia:
        context = identify_content(self.page.path)
        resolved = await self._dispatch(media, context)
        logger.info(
            "media_resolved",
            content_type=context.content_type,
            content_id=context.content_id,
            method=resolved.method_used,
            url=resolved.url,
        )
        return resolved

    async def _dispatch(self, media: MediaElement, context: ContentContext) -> ResolvedMedia:
        current = media.current_source_url

        if context.content_type == ContentType.STORY:
            if media.is_video and media.has_blob_source:
                # The browser already holds the bytes; nothing better is reachable
                return ResolvedMedia(url=current, method_used="story_blob")
            if media.srcset_candidates:
                return await self._biggest_from_srcset(media, "story_srcset")
            if current and not is_blob_url(current):
                return ResolvedMedia(url=upgrade_story_image_url(current), method_used="story_direct")

        if media.srcset_candidates:
            return await self._biggest_from_srcset(media, "srcset")
        if media.child_sources:
            return ResolvedMedia(url=media.child_sources[0], method_used="first_child_source")
        if media.has_blob_source:
            return await self._recover_blob(media, context)
        if current:
            return ResolvedMedia(url=current, method_used="current_source")

        raise MediaUnresolvable("Media element exposes no source URL")

    async def _biggest_from_srcset(self, media: MediaElement, method: str) -> ResolvedMedia:
        try:
            url = await resolve_biggest(media.srcset_candidates, media.current_source_url, self.session)
        except NetworkFailure as exc:
            fallback = media.current_source_url
            if not fallback:
                raise
            logger.warning("srcset_probe_failed", error=str(exc), fallback=fallback)
            return ResolvedMedia(url=fallback, method_used=f"{method}_fallback")
        return ResolvedMedia(url=url, method_used=method)

    async def _recover_blob(self, media: MediaElement, context: ContentContext) -> ResolvedMedia:
        """Page probes, then network tiers; the blob itself is the last resort."""
        blob = media.current_source_url

        async def _from_page() -> ProbeResult:
            return await probe_page(self.page)

        async def _from_network() -> ProbeResult:
            payload = await fetch_remote(context, self.session)
            return ProbeResult(ProbeKind.REMOTE, payload=payload)

        def _extracting(source, miss: type[SoftFailure]):
            async def _run() -> tuple[ProbeResult, str]:
                try:
                    result = await source()
                except StrategiesExhausted as exc:
                    # An exhausted inner chain is a single miss for this source
                    raise miss(str(exc)) from exc
                return result, extract_media_url(result, context.content_type)

            return _run

        try:
            name, (result, url) = await first_success(
                [
                    ("page", _extracting(_from_page, ProbeUnavailable)),
                    ("network", _extracting(_from_network, NetworkFailure)),
                ],
                chain="blob_recovery",
            )
        except StrategiesExhausted as exc:
            logger.warning(
                "blob_recovery_failed",
                content_type=context.content_type,
                categories=[c.__name__ for c in exc.categories],
                fallback=blob,
            )
            return ResolvedMedia(
                url=blob,
                method_used="blob_fallback",
                details={"failures": [(n, type(e).__name__) for n, e in exc.failures]},
            )

        dbg("blob_recovered", source=name, kind=result.kind, url=url)
        return ResolvedMedia(url=url, method_used=f"blob_{name}", details={"kind": result.kind})


async def get_media_url(
    media: MediaElement,
    page: PageContext,
    session: aiohttp.ClientSession | None = None,
) -> str:
    """Resolve a single media element on page."""
    return await MediaUrlResolver(page, session).resolve(media)
