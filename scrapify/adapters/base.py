"""SourceAdapter protocol.

An adapter encapsulates one external source's fetch-and-parse behavior.
Adapters don't share a base class; the helpers they have in common live in
scrapify.adapters.utils and are called explicitly.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from scrapify.data_types import (
        OutputFormat,
        ScrapeOptions,
        ScrapeResult,
        SourceDescriptor,
    )


@runtime_checkable
class SourceAdapter(Protocol):
    """Uniform contract every source adapter implements.

    scrape() raises ValidationError for a non-positive limit, NetworkError
    for unreachable, non-2xx or timed-out upstream calls, and ParseError when
    the upstream payload no longer has the expected shape.
    """

    def describe(self) -> SourceDescriptor: ...

    def supports_format(self, fmt: OutputFormat | str) -> bool: ...

    async def scrape(self, options: ScrapeOptions | None = None) -> ScrapeResult: ...
