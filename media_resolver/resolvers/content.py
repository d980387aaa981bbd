"""Classify what kind of content a page shows from its navigation path."""

from __future__ import annotations

import re

from media_resolver.resolvers.base import ContentContext, ContentType, StoryContext

# Checked in order; the first marker present in the path wins.
_TYPE_MARKERS: list[tuple[str, ContentType]] = [
    ("/p/", ContentType.POST),
    ("/reel/", ContentType.REEL),
    ("/tv/", ContentType.TV),
    ("/stories/", ContentType.STORY),
]

# Path segment used for each type by the page endpoints
TYPE_SEGMENTS: dict[ContentType, str] = {
    ContentType.POST: "p",
    ContentType.REEL: "reel",
    ContentType.TV: "tv",
    ContentType.STORY: "stories",
}

_MARKER_SEGMENTS = frozenset(TYPE_SEGMENTS.values())

_STORY_WITH_ID = re.compile(r"/stories/([^/]+)/(\d+)")
_STORY_USER = re.compile(r"/stories/([^/]+)")


def classify_content_type(path: str) -> ContentType:
    for marker, content_type in _TYPE_MARKERS:
        if marker in path:
            return content_type
    return ContentType.POST


def extract_content_id(path: str) -> str | None:
    """Return the longest non-marker path segment.

    Ties keep the order of the segments in the path.
    """
    segments = [s for s in path.split("/") if s and s not in _MARKER_SEGMENTS]
    if not segments:
        return None
    return sorted(segments, key=len, reverse=True)[0]


def extract_story_context(path: str) -> StoryContext | None:
    if "/stories/" not in path:
        return None
    match = _STORY_WITH_ID.search(path)
    if match:
        return StoryContext(username=match.group(1), story_id=match.group(2))
    match = _STORY_USER.search(path)
    if match:
        return StoryContext(username=match.group(1))
    return None


def identify_content(path: str) -> ContentContext:
    content_type = classify_content_type(path)
    return ContentContext(
        content_type=content_type,
        content_id=extract_content_id(path),
        story=extract_story_context(path) if content_type == ContentType.STORY else None,
    )
