import json
from unittest.mock import AsyncMock, MagicMock, patch
from urllib.parse import parse_qs, urlparse

import aiohttp
import pytest

from media_resolver.resolvers.base import ContentContext, ContentType, StoryContext
from media_resolver.resolvers.errors import NetworkFailure, ProbeUnavailable, StrategiesExhausted
from media_resolver.resolvers.remote import (
    fetch_json,
    fetch_remote,
    graphql_url,
    page_data_url,
    profile_url,
    reels_media_url,
    story_feed_url,
)

ALICE = StoryContext(username="alice", story_id="17890000000012345")


def _make_json_response(data, status: int = 200):
    """Create an aiohttp-compatible async context-manager mock response."""
    resp = AsyncMock()
    resp.status = status
    resp.json = AsyncMock(return_value=data)
    resp.__aenter__ = AsyncMock(return_value=resp)
    resp.__aexit__ = AsyncMock(return_value=False)
    return resp


def _make_failing_response(exc: Exception):
    resp = AsyncMock()
    resp.__aenter__ = AsyncMock(side_effect=exc)
    resp.__aexit__ = AsyncMock(return_value=False)
    return resp


def _make_session(routes: dict):
    """Session answering from *routes*; unknown URLs get a 404."""
    session = AsyncMock()
    session.get = MagicMock(
        side_effect=lambda url, **kwargs: routes.get(url, _make_json_response(None, status=404))
    )
    return session


def _requested(session) -> list[str]:
    return [c.args[0] for c in session.get.call_args_list]


# ---------------------------------------------------------------------------
# Endpoint URLs
# ---------------------------------------------------------------------------


def test_page_data_url_uses_type_segment():
    assert page_data_url(ContentType.POST, "ABC123") == "https://www.instagram.com/p/ABC123/?__a=1&__d=dis"
    assert page_data_url(ContentType.REEL, "XYZ") == "https://www.instagram.com/reel/XYZ/?__a=1&__d=dis"


def test_graphql_url_carries_hash_and_shortcode():
    query = parse_qs(urlparse(graphql_url("ABC123")).query)
    assert query["query_hash"] == ["b3055c01b4b222b8a47dc12b090e4e64"]
    assert json.loads(query["variables"][0]) == {"shortcode": "ABC123"}


def test_story_urls():
    assert story_feed_url(ALICE) == "https://i.instagram.com/api/v1/feed/user/alice/story/"
    assert reels_media_url(ALICE).endswith("reel_ids=highlight:17890000000012345")
    assert reels_media_url(StoryContext(username="alice")).endswith("reel_ids=highlight:alice")
    assert profile_url(ALICE) == "https://www.instagram.com/alice/?__a=1"


# ---------------------------------------------------------------------------
# fetch_json
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_fetch_json_non_2xx():
    session = _make_session({"https://x.example/": _make_json_response({}, status=429)})
    with pytest.raises(NetworkFailure) as excinfo:
        await fetch_json(session, "https://x.example/")
    assert excinfo.value.status == 429


@pytest.mark.asyncio
async def test_fetch_json_client_error_is_network_failure():
    session = _make_session(
        {"https://x.example/": _make_failing_response(aiohttp.ClientConnectionError("refused"))}
    )
    with pytest.raises(NetworkFailure, match="refused"):
        await fetch_json(session, "https://x.example/")


# ---------------------------------------------------------------------------
# Post tiers
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_post_primary_endpoint():
    context = ContentContext(ContentType.POST, content_id="ABC123")
    session = _make_session({
        page_data_url(ContentType.POST, "ABC123"): _make_json_response({"video_url": "v.mp4"}),
    })

    data = await fetch_remote(context, session)

    assert data == {"video_url": "v.mp4"}
    assert _requested(session) == [page_data_url(ContentType.POST, "ABC123")]


@pytest.mark.asyncio
async def test_post_falls_back_to_graphql():
    context = ContentContext(ContentType.REEL, content_id="XYZ")
    session = _make_session({
        page_data_url(ContentType.REEL, "XYZ"): _make_json_response(None, status=500),
        graphql_url("XYZ"): _make_json_response({"data": {"shortcode_media": {}}}),
    })

    data = await fetch_remote(context, session)

    assert data == {"data": {"shortcode_media": {}}}
    assert _requested(session) == [page_data_url(ContentType.REEL, "XYZ"), graphql_url("XYZ")]


@pytest.mark.asyncio
async def test_post_tiers_exhausted():
    context = ContentContext(ContentType.POST, content_id="ABC123")
    with pytest.raises(StrategiesExhausted) as excinfo:
        await fetch_remote(context, _make_session({}))
    assert excinfo.value.categories == [NetworkFailure, NetworkFailure]


@pytest.mark.asyncio
async def test_post_without_id():
    with pytest.raises(ProbeUnavailable):
        await fetch_remote(ContentContext(ContentType.POST), _make_session({}))


# ---------------------------------------------------------------------------
# Story tiers
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_story_feed_sends_app_id():
    context = ContentContext(ContentType.STORY, story=ALICE)
    session = _make_session({story_feed_url(ALICE): _make_json_response({"reel": {"items": []}})})

    data = await fetch_remote(context, session)

    assert data == {"reel": {"items": []}}
    headers = session.get.call_args.kwargs["headers"]
    assert headers["x-ig-app-id"] == "936619743392459"


@pytest.mark.asyncio
async def test_story_tiers_run_in_order():
    context = ContentContext(ContentType.STORY, story=ALICE)
    session = _make_session({
        story_feed_url(ALICE): _make_failing_response(aiohttp.ClientConnectionError("reset")),
        reels_media_url(ALICE): _make_json_response(None, status=403),
        profile_url(ALICE): _make_json_response({"graphql": {"user": {}}}),
    })

    data = await fetch_remote(context, session)

    assert data == {"graphql": {"user": {}}}
    assert _requested(session) == [story_feed_url(ALICE), reels_media_url(ALICE), profile_url(ALICE)]


@pytest.mark.asyncio
async def test_story_tiers_exhausted():
    context = ContentContext(ContentType.STORY, story=ALICE)
    with pytest.raises(StrategiesExhausted) as excinfo:
        await fetch_remote(context, _make_session({}))
    assert [name for name, _ in excinfo.value.failures] == ["story_feed", "reels_media", "profile"]


@pytest.mark.asyncio
async def test_story_without_context():
    with pytest.raises(ProbeUnavailable, match="story data"):
        await fetch_remote(ContentContext(ContentType.STORY), _make_session({}))


@pytest.mark.asyncio
async def test_own_session_is_closed():
    context = ContentContext(ContentType.POST, content_id="ABC123")
    session = _make_session({
        page_data_url(ContentType.POST, "ABC123"): _make_json_response({"ok": True}),
    })

    with patch("media_resolver.resolvers.remote.aiohttp.ClientSession", return_value=session):
        await fetch_remote(context)

    session.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_fetch_json_invalid_json_is_network_failure():
    resp = _make_json_response(None)
    resp.json = AsyncMock(side_effect=json.JSONDecodeError("Expecting value", "<html>", 0))
    session = _make_session({"https://x.example/": resp})

    with pytest.raises(NetworkFailure, match="Expecting value"):
        await fetch_json(session, "https://x.example/")


@pytest.mark.asyncio
async def test_fetch_json_non_utf8_body_is_network_failure():
    resp = _make_json_response(None)
    resp.json = AsyncMock(
        side_effect=UnicodeDecodeError("utf-8", b"\xff\xfe\xfa garbage", 0, 1, "invalid start byte")
    )
    session = _make_session({"https://x.example/": resp})

    with pytest.raises(NetworkFailure, match="utf-8"):
        await fetch_json(session, "https://x.example/")


@pytest.mark.asyncio
async def test_undecodable_primary_falls_back_to_graphql():
    context = ContentContext(ContentType.POST, content_id="ABC123")
    garbled = _make_json_response(None)
    garbled.json = AsyncMock(side_effect=UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte"))
    session = _make_session({
        page_data_url(ContentType.POST, "ABC123"): garbled,
        graphql_url("ABC123"): _make_json_response({"data": {}}),
    })

    assert await fetch_remote(context, session) == {"data": {}}
