"""Snapshot of the page a media element lives on.

The resolvers never read browser or process-wide state directly; everything
they inspect (location, live video elements, the resource-timing buffer,
page-state globals, inline scripts) arrives through a PageContext.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urljoin, urlparse

import structlog
from bs4 import BeautifulSoup, Tag

from media_resolver.resolvers.base import MediaElement, MediaKind, SourceCandidate
from media_resolver.resolvers.srcset import parse_srcset

logger = structlog.get_logger()

# Page-state assignments in inline scripts, e.g. window._sharedData = {...};
_GLOBAL_ASSIGNMENT = re.compile(r"window\.(?P<name>_sharedData|__additionalData)\s*=\s*(?=\{)")
_DECODER = json.JSONDecoder()


@dataclass(frozen=True)
class ResourceEntry:
    """One entry of the browser's resource-timing buffer."""

    name: str
    initiator_type: str = "other"
    encoded_body_size: int = 0
    start_time: float = 0.0


@dataclass(frozen=True)
class ScriptTag:
    content: str
    type: str | None = None


@dataclass(frozen=True)
class PageContext:
    url: str
    path: str
    origin: str
    videos: tuple[MediaElement, ...] = ()
    # None means the resource-timing API is not available at all
    resource_entries: tuple[ResourceEntry, ...] | None = None
    globals: dict[str, Any] = field(default_factory=dict)
    scripts: tuple[ScriptTag, ...] = ()

    @classmethod
    def from_url(cls, url: str, **parts: Any) -> PageContext:
        parsed = urlparse(url)
        origin = f"{parsed.scheme}://{parsed.netloc}" if parsed.netloc else ""
        return cls(url=url, path=parsed.path or "/", origin=origin, **parts)


def _absolute(url: str | None, base_url: str) -> str | None:
    if not url:
        return None
    if url.startswith(("blob:", "data:")):
        return url
    return urljoin(base_url, url)


def _video_from_tag(tag: Tag, base_url: str) -> MediaElement:
    sources = tuple(
        src
        for src in (_absolute(source.get("src"), base_url) for source in tag.find_all("source"))
        if src
    )
    return MediaElement(
        kind=MediaKind.VIDEO,
        current_source_url=_absolute(tag.get("src"), base_url),
        child_sources=sources,
        poster=_absolute(tag.get("poster"), base_url),
    )


def _image_from_tag(tag: Tag, base_url: str) -> MediaElement:
    candidates = tuple(
        SourceCandidate(url=_absolute(candidate.url, base_url), descriptor=candidate.descriptor)
        for candidate in parse_srcset(tag.get("srcset") or "")
    )
    return MediaElement(
        kind=MediaKind.IMAGE,
        current_source_url=_absolute(tag.get("src"), base_url),
        srcset_candidates=candidates,
    )


def _picture_from_tag(tag: Tag, base_url: str) -> MediaElement:
    sources: list[str] = []
    for source in tag.find_all("source"):
        for candidate in parse_srcset(source.get("srcset") or source.get("src") or ""):
            url = _absolute(candidate.url, base_url)
            if url:
                sources.append(url)
    img = tag.find("img")
    return MediaElement(
        kind=MediaKind.IMAGE,
        current_source_url=_absolute(img.get("src"), base_url) if img else None,
        child_sources=tuple(sources),
    )


def media_from_html(html: str, base_url: str) -> list[MediaElement]:
    """Collect every <picture>, <img> and <video> of a document as MediaElements.

    An <img> nested in a <picture> is reported once, through its picture.
    """
    soup = BeautifulSoup(html, "html.parser")
    media: list[MediaElement] = []

    for tag in soup.find_all(["picture", "img", "video"]):
        if tag.name == "picture":
            media.append(_picture_from_tag(tag, base_url))
        elif tag.name == "video":
            media.append(_video_from_tag(tag, base_url))
        elif tag.find_parent("picture") is None:
            media.append(_image_from_tag(tag, base_url))

    return media


def _globals_from_scripts(scripts: list[ScriptTag]) -> dict[str, Any]:
    found: dict[str, Any] = {}
    for script in scripts:
        for match in _GLOBAL_ASSIGNMENT.finditer(script.content):
            name = match.group("name")
            if name in found:
                continue
            try:
                found[name], _ = _DECODER.raw_decode(script.content, match.end())
            except json.JSONDecodeError:
                logger.debug("page_global_unparseable", name=name)
    return found


def page_from_html(url: str, html: str) -> PageContext:
    """Build a PageContext from a fetched HTML document.

    There is no resource-timing buffer outside a live browser, so
    ``resource_entries`` is left as None.
    """
    soup = BeautifulSoup(html, "html.parser")

    videos = tuple(_video_from_tag(tag, url) for tag in soup.find_all("video"))
    scripts = [
        ScriptTag(content=tag.string or tag.get_text() or "", type=tag.get("type"))
        for tag in soup.find_all("script")
    ]

    page = PageContext.from_url(
        url,
        videos=videos,
        globals=_globals_from_scripts(scripts),
        scripts=tuple(scripts),
    )
    logger.debug(
        "page_parsed",
        url=url,
        videos=len(page.videos),
        scripts=len(page.scripts),
        globals=sorted(page.globals),
    )
    return page
