"""Recover story media from the page itself, without any network call.

Each step either returns a tagged ProbeResult or raises ProbeUnavailable;
``probe_page`` runs them in priority order and stops at the first hit.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from enum import StrEnum
from functools import cmp_to_key
from typing import Any

import structlog

from media_resolver.resolvers.base import JsonValue, first_success, is_blob_url
from media_resolver.resolvers.errors import ProbeUnavailable
from media_resolver.resolvers.page import PageContext, ResourceEntry

logger = structlog.get_logger()

_VIDEO_NAME_MARKERS = (".mp4", "/video/", "/media/")

_CACHE_LOADER_MARKER = "window.__additionalDataLoaded"
_CACHE_LOADER_CALL = re.compile(r"window\.__additionalDataLoaded\([^,]+,\s*({.+})\);")


class ProbeKind(StrEnum):
    DIRECT_URL = "direct_url"
    ADDITIONAL_DATA = "additional_data"
    SHARED_DATA = "shared_data"
    SCRIPT_DATA = "script_data"
    CACHE_DATA = "cache_data"
    REMOTE = "remote"


@dataclass(frozen=True)
class ProbeResult:
    """A usable URL, or a payload still to be searched for one."""

    kind: ProbeKind
    url: str | None = None
    payload: JsonValue = None

    @property
    def is_direct(self) -> bool:
        return self.kind == ProbeKind.DIRECT_URL and bool(self.url)


def probe_video_elements(page: PageContext) -> ProbeResult:
    """First non-blob video source, poster, or child <source>, per video."""
    if not page.videos:
        raise ProbeUnavailable("No video elements on page")

    for video in page.videos:
        if video.current_source_url and not is_blob_url(video.current_source_url):
            return ProbeResult(ProbeKind.DIRECT_URL, url=video.current_source_url)
        if video.poster:
            return ProbeResult(ProbeKind.DIRECT_URL, url=video.poster)
        for source in video.child_sources:
            if source and not is_blob_url(source):
                return ProbeResult(ProbeKind.DIRECT_URL, url=source)

    raise ProbeUnavailable("Video elements expose only blob sources")


def _compare_entries(a: ResourceEntry, b: ResourceEntry) -> int:
    if a.encoded_body_size and b.encoded_body_size:
        return b.encoded_body_size - a.encoded_body_size
    if b.start_time > a.start_time:
        return 1
    if b.start_time < a.start_time:
        return -1
    return 0


def _is_media_entry(entry: ResourceEntry) -> bool:
    return entry.initiator_type == "media" or any(m in entry.name for m in _VIDEO_NAME_MARKERS)


def probe_resource_timing(page: PageContext) -> ProbeResult:
    """Largest (else most recent) media download seen by the browser."""
    if page.resource_entries is None:
        raise ProbeUnavailable("Resource timing is not available")

    media = [entry for entry in page.resource_entries if _is_media_entry(entry)]
    if not media:
        raise ProbeUnavailable("No media entries in the resource-timing buffer")

    media.sort(key=cmp_to_key(_compare_entries))
    return ProbeResult(ProbeKind.DIRECT_URL, url=media[0].name)


def probe_page_globals(page: PageContext) -> ProbeResult:
    additional = page.globals.get("__additionalData")
    if additional:
        return ProbeResult(ProbeKind.ADDITIONAL_DATA, payload={"additionalData": additional})

    shared = page.globals.get("_sharedData")
    if isinstance(shared, dict) and (shared.get("entry_data") or {}).get("StoriesPage"):
        return ProbeResult(ProbeKind.SHARED_DATA, payload=shared)

    raise ProbeUnavailable("No page-state globals")


def probe_json_scripts(page: PageContext) -> ProbeResult:
    """First <script type="application/json"> whose body parses to a non-empty value."""
    for script in page.scripts:
        if script.type != "application/json":
            continue
        try:
            data: Any = json.loads(script.content)
        except (json.JSONDecodeError, TypeError):
            continue
        if data:
            return ProbeResult(ProbeKind.SCRIPT_DATA, payload={"scriptData": data})

    raise ProbeUnavailable("No parseable JSON script tags")


def probe_cache_loader(page: PageContext) -> ProbeResult:
    """JSON argument of the first window.__additionalDataLoaded(...) call."""
    loaders = [s for s in page.scripts if _CACHE_LOADER_MARKER in s.content]
    if not loaders:
        raise ProbeUnavailable("No cache loader script")

    match = _CACHE_LOADER_CALL.search(loaders[0].content)
    if not match:
        raise ProbeUnavailable("Cache loader call has no JSON argument")
    try:
        data = json.loads(match.group(1))
    except json.JSONDecodeError as exc:
        raise ProbeUnavailable(f"Cache loader JSON is invalid: {exc}") from exc

    return ProbeResult(ProbeKind.CACHE_DATA, payload={"parsedCacheData": data})


PROBE_STEPS = [
    ("video_elements", probe_video_elements),
    ("resource_timing", probe_resource_timing),
    ("page_globals", probe_page_globals),
    ("json_scripts", probe_json_scripts),
    ("cache_loader", probe_cache_loader),
]


async def probe_page(page: PageContext) -> ProbeResult:
    """Run every probe step in priority order.

    Raises StrategiesExhausted when the page offers nothing, so the caller
    can fall through to the network.
    """

    def _as_strategy(step):
        async def _run() -> ProbeResult:
            return step(page)

        return _run

    name, result = await first_success(
        [(name, _as_strategy(step)) for name, step in PROBE_STEPS],
        chain="direct_probe",
    )
    logger.info("direct_probe_hit", step=name, kind=result.kind, url=result.url)
    return result
