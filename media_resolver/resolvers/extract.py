"""Find a video (or story image) URL inside a metadata payload.

Pattern lists are ordered; the first pattern that yields a value wins. The
same lists apply whether the payload came from the page or the network.
"""

from __future__ import annotations

import structlog

from media_resolver.resolvers.base import ContentType, JsonValue, dbg
from media_resolver.resolvers.direct_probe import ProbeResult
from media_resolver.resolvers.errors import ExtractionMiss
from media_resolver.utils.path_query import first_match, scavenge_media_url

logger = structlog.get_logger()

STORY_VIDEO_PATTERNS: list[str] = [
    # Page-state stores
    "$..reels_media[0].items[0].video_versions[0].url",
    "$..stories_tray[0].items[0].video_versions[0].url",
    "$..tray[0].items[0].video_versions[0].url",
    "$..story.items[0].video_versions[0].url",
    # Stories API
    "$..items[0].video_versions[0].url",
    "$..reel.items[0].video_versions[0].url",
    "$..reels.items[0].video_versions[0].url",
    "$..entry_data.StoriesPage[0].user.story.items[0].video_versions[0].url",
    "$..media_preview_payload.reels_media[0].items[0].video_versions[0].url",
    "$..data.reels_media[0].items[0].video_versions[0].url",
    "$..items[0].videoresources[0].src",
    "$..video_resources[0].src",
    # Embedded script and cache blobs
    "$..video_versions[*].url",
]

STORY_IMAGE_PATTERNS: list[str] = [
    "$..items[0].image_versions2.candidates[0].url",
    "$..story.items[0].image_versions2.candidates[0].url",
    "$..reels_media[0].items[0].image_versions2.candidates[0].url",
    "$..entry_data.StoriesPage[0].user.story.items[0].image_versions2.candidates[0].url",
]

VIDEO_PATTERNS: list[str] = [
    "$..video_url",
    # Reels
    "$..shortform_video_url",
    # GraphQL query response
    "$.data.shortcode_media.video_url",
    # TV / IGTV
    "$..video_versions[0].url",
    "$..items[0].video_versions[0].url",
    "$..media[0].video_versions[0].url",
    "$..edge_sidecar_to_children.edges[0].node.video_url",
    "$..video_resources[0].src",
    "$..videoData.video_url",
]


def _is_url(value: object) -> bool:
    return isinstance(value, str) and bool(value)


def extract_from_payload(payload: JsonValue, content_type: ContentType) -> str:
    """Search payload for a media URL, raising ExtractionMiss if none is found."""
    if content_type == ContentType.STORY:
        for family, patterns in (("story_video", STORY_VIDEO_PATTERNS), ("story_image", STORY_IMAGE_PATTERNS)):
            url = first_match(payload, patterns, accept=_is_url)
            if url:
                dbg("payload_url_found", family=family, url=url)
                return url

        url = scavenge_media_url(payload)
        if url:
            dbg("payload_url_scavenged", url=url)
            return url

    url = first_match(payload, VIDEO_PATTERNS, accept=_is_url)
    if url:
        dbg("payload_url_found", family="video", url=url)
        return url

    if content_type != ContentType.STORY:
        url = scavenge_media_url(payload)
        if url:
            dbg("payload_url_scavenged", url=url)
            return url

    raise ExtractionMiss("Could not find video URL in the response")


def extract_media_url(result: ProbeResult, content_type: ContentType) -> str:
    if result.is_direct:
        return result.url
    return extract_from_payload(result.payload, content_type)
