from media_resolver.resolvers.base import (
    ContentContext,
    ContentType,
    MediaElement,
    MediaKind,
    ResolvedMedia,
    SourceCandidate,
    StoryContext,
    first_success,
)
from media_resolver.resolvers.errors import (
    ExtractionMiss,
    HardFailure,
    MediaUnresolvable,
    NetworkFailure,
    ProbeUnavailable,
    ResolutionError,
    SoftFailure,
    StrategiesExhausted,
)
from media_resolver.resolvers.srcset import parse_srcset, resolve_biggest
from media_resolver.resolvers.page import (
    PageContext,
    ResourceEntry,
    ScriptTag,
    media_from_html,
    page_from_html,
)
from media_resolver.resolvers.content import (
    classify_content_type,
    extract_content_id,
    extract_story_context,
    identify_content,
)
from media_resolver.resolvers.direct_probe import ProbeKind, ProbeResult, probe_page
from media_resolver.resolvers.remote import fetch_remote
from media_resolver.resolvers.extract import extract_from_payload, extract_media_url
from media_resolver.resolvers.orchestrator import (
    MediaUrlResolver,
    get_media_url,
    upgrade_story_image_url,
)

__all__ = [
    "ContentContext",
    "ContentType",
    "MediaElement",
    "MediaKind",
    "ResolvedMedia",
    "SourceCandidate",
    "StoryContext",
    "first_success",
    "ExtractionMiss",
    "HardFailure",
    "MediaUnresolvable",
    "NetworkFailure",
    "ProbeUnavailable",
    "ResolutionError",
    "SoftFailure",
    "StrategiesExhausted",
    "parse_srcset",
    "resolve_biggest",
    "PageContext",
    "ResourceEntry",
    "ScriptTag",
    "media_from_html",
    "page_from_html",
    "classify_content_type",
    "extract_content_id",
    "extract_story_context",
    "identify_content",
    "ProbeKind",
    "ProbeResult",
    "probe_page",
    "fetch_remote",
    "extract_from_payload",
    "extract_media_url",
    "MediaUrlResolver",
    "get_media_url",
    "upgrade_story_image_url",
]
