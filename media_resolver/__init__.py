"""Resolve the best-quality fetchable URL for media embedded in social-media pages."""

from media_resolver.resolvers import MediaUrlResolver, PageContext, get_media_url

__version__ = "0.1.0"

__all__ = ["MediaUrlResolver", "PageContext", "get_media_url", "__version__"]
