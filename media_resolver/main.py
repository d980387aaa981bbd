from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import aiohttp
import structlog

from media_resolver.config import settings
from media_resolver.resolvers import (
    MediaUrlResolver,
    ResolutionError,
    media_from_html,
    page_from_html,
)


def configure_logging() -> None:
    """Set up structlog with JSON rendering for production, pretty for dev."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer()
            if sys.stderr.isatty()
            else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level.upper(), logging.INFO)
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


async def _fetch_html(session: aiohttp.ClientSession, url: str) -> str:
    async with session.get(
        url,
        headers={
            "User-Agent": settings.user_agent,
            "Accept": "text/html,application/xhtml+xml",
        },
        timeout=aiohttp.ClientTimeout(total=settings.request_timeout_seconds),
    ) as resp:
        resp.raise_for_status()
        return await resp.text(encoding="utf-8", errors="ignore")


async def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="media-resolver",
        description="Print the best fetchable URL of every media element on a page.",
    )
    parser.add_argument("url", help="page URL (its path decides the content type)")
    parser.add_argument("--html", type=Path, help="read the page from this file instead of fetching it")
    args = parser.parse_args(argv)

    configure_logging()
    log = structlog.get_logger()

    async with aiohttp.ClientSession() as session:
        if args.html:
            html = args.html.read_text(encoding="utf-8", errors="ignore")
        else:
            html = await _fetch_html(session, args.url)

        page = page_from_html(args.url, html)
        media = media_from_html(html, args.url)
        log.info("page_loaded", url=args.url, media_count=len(media))

        resolver = MediaUrlResolver(page, session)
        resolved = 0
        for element in media:
            try:
                print(await resolver.resolve(element))
                resolved += 1
            except ResolutionError as exc:
                log.warning("media_unresolved", kind=element.kind, error=str(exc))

    if not resolved:
        log.error("no_media_resolved", url=args.url)
        return 1
    return 0


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
