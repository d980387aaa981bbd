"""Tiered network fallbacks for page and story metadata.

Tiers run strictly one after another; a tier is only tried when the one
before it answered non-2xx or raised.
"""

from __future__ import annotations

import asyncio
import json
from urllib.parse import quote, urlencode

import aiohttp
import structlog

from media_resolver.config import settings
from media_resolver.resolvers.base import (
    ContentContext,
    ContentType,
    JsonValue,
    StoryContext,
    dbg,
    first_success,
)
from media_resolver.resolvers.content import TYPE_SEGMENTS
from media_resolver.resolvers.errors import NetworkFailure, ProbeUnavailable

logger = structlog.get_logger()


def _app_headers() -> dict[str, str]:
    return {"User-Agent": settings.user_agent, "x-ig-app-id": settings.app_id}


async def fetch_json(
    session: aiohttp.ClientSession,
    url: str,
    headers: dict[str, str] | None = None,
) -> JsonValue:
    """GET url and decode JSON; every failure becomes NetworkFailure."""
    timeout = aiohttp.ClientTimeout(total=settings.request_timeout_seconds)
    try:
        async with session.get(
            url,
            headers=headers or {"User-Agent": settings.user_agent},
            timeout=timeout,
        ) as resp:
            if not 200 <= resp.status < 300:
                raise NetworkFailure(
                    f"Failed to fetch {url}. Status: {resp.status}",
                    url=url,
                    status=resp.status,
                )
            data = await resp.json(content_type=None)
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
        # ValueError covers invalid JSON and bodies that are not valid UTF-8
        raise NetworkFailure(f"Request to {url} failed: {exc}", url=url) from exc

    dbg("remote_fetched", url=url)
    return data


def page_data_url(content_type: ContentType, content_id: str) -> str:
    segment = TYPE_SEGMENTS[content_type]
    return f"{settings.web_origin}/{segment}/{content_id}/?__a=1&__d=dis"


def graphql_url(content_id: str) -> str:
    params = {
        "query_hash": settings.graphql_query_hash,
        "variables": json.dumps({"shortcode": content_id}, separators=(",", ":")),
    }
    return f"{settings.web_origin}/graphql/query/?{urlencode(params)}"


def story_feed_url(story: StoryContext) -> str:
    return f"{settings.private_api_origin}/api/v1/feed/user/{quote(story.username)}/story/"


def reels_media_url(story: StoryContext) -> str:
    reel_id = story.story_id or story.username
    return f"{settings.web_origin}/api/v1/feed/reels_media/?reel_ids=highlight:{quote(reel_id)}"


def profile_url(story: StoryContext) -> str:
    return f"{settings.web_origin}/{quote(story.username)}/?__a=1"


async def fetch_post_data(
    session: aiohttp.ClientSession,
    content_type: ContentType,
    content_id: str,
) -> JsonValue:
    """Page data endpoint first, the GraphQL query endpoint on failure."""
    _, data = await first_success(
        [
            ("page_data", lambda: fetch_json(session, page_data_url(content_type, content_id))),
            ("graphql", lambda: fetch_json(session, graphql_url(content_id))),
        ],
        chain="remote_post",
    )
    return data


async def fetch_story_data(session: aiohttp.ClientSession, story: StoryContext) -> JsonValue:
    """Private story feed, then reels media, then the owner's profile."""
    _, data = await first_success(
        [
            ("story_feed", lambda: fetch_json(session, story_feed_url(story), _app_headers())),
            ("reels_media", lambda: fetch_json(session, reels_media_url(story), _app_headers())),
            ("profile", lambda: fetch_json(session, profile_url(story))),
        ],
        chain="remote_story",
    )
    return data


async def fetch_remote(
    context: ContentContext,
    session: aiohttp.ClientSession | None = None,
) -> JsonValue:
    """Fetch metadata for the content, picking the story or post tiers.

    Raises StrategiesExhausted when the last tier fails, and
    ProbeUnavailable when the path carries no usable identifier.
    """
    if context.content_type == ContentType.STORY:
        if context.story is None:
            raise ProbeUnavailable("Could not find story data")
    elif not context.content_id:
        raise ProbeUnavailable("No content id in the page path")

    own_session = session is None
    if own_session:
        session = aiohttp.ClientSession()

    try:
        if context.content_type == ContentType.STORY:
            data = await fetch_story_data(session, context.story)
        else:
            data = await fetch_post_data(session, context.content_type, context.content_id)
    finally:
        if own_session:
            await session.close()

    logger.info("remote_data_fetched", content_type=context.content_type, content_id=context.content_id)
    return data
