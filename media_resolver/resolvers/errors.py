"""Failure categories raised while resolving a media URL.

Soft failures mean "this strategy found nothing, try the next one" and are
swallowed by :func:`media_resolver.resolvers.base.first_success`. Hard
failures end the resolution and reach the caller.
"""

from __future__ import annotations


class ResolutionError(Exception):
    """Base class for every failure raised by the resolvers."""


class SoftFailure(ResolutionError):
    """A strategy missed; the next strategy in the chain should run."""


class ProbeUnavailable(SoftFailure):
    """A page capability (resource timing, globals, scripts) is absent or empty."""


class NetworkFailure(SoftFailure):
    """A request raised or answered with a non-2xx status."""

    def __init__(self, message: str, *, url: str | None = None, status: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status = status


class ExtractionMiss(SoftFailure):
    """No query pattern and no scavenged URL matched the payload."""


class HardFailure(ResolutionError):
    """Resolution cannot continue."""


class StrategiesExhausted(HardFailure):
    """Every strategy of a chain failed softly."""

    def __init__(self, message: str, failures: list[tuple[str, SoftFailure]]) -> None:
        super().__init__(message)
        self.failures = failures

    @property
    def categories(self) -> list[type[SoftFailure]]:
        return [type(exc) for _, exc in self.failures]


class MediaUnresolvable(HardFailure):
    """The media element exposes no source and nothing could be recovered."""
