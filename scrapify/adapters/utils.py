"""Helpers shared by source adapters.

Adapters call these explicitly instead of inheriting them.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from typing import Any

import httpx

from scrapify.common.exceptions import ParseError, UnsupportedFormatError
from scrapify.common.request_manager import AsyncRequestManager
from scrapify.data_types import (
    OutputFormat,
    Record,
    ScrapeOptions,
    ScrapeResult,
    SourceDescriptor,
)
from scrapify.formatters import format_records

logger = logging.getLogger(__name__)


def validate_options(options: ScrapeOptions | None) -> ScrapeOptions:
    """Return validated options, substituting defaults for None.

    Raises:
        ValidationError: If the limit or timeout is not positive.
    """
    options = options or ScrapeOptions()
    options.validate()
    return options


def merged_timeout(
    descriptor: SourceDescriptor, options: ScrapeOptions
) -> float:
    return options.timeout or descriptor.timeout


def merged_headers(
    descriptor: SourceDescriptor, options: ScrapeOptions
) -> dict[str, str]:
    """Descriptor defaults overlaid with the caller's headers."""
    return {**descriptor.default_headers, **options.headers}


def request_manager_for(
    descriptor: SourceDescriptor,
    options: ScrapeOptions,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AsyncRequestManager:
    """Open a request manager configured from descriptor and options."""
    return AsyncRequestManager(
        timeout=merged_timeout(descriptor, options),
        headers=merged_headers(descriptor, options),
        source_id=descriptor.id,
        transport=transport,
    )


def clamp_limit(limit: int | None, upstream_max: int) -> int:
    """Clamp a requested limit to what the upstream API will return.

    Over-large limits are reduced silently; no limit means the maximum.
    """
    if limit is None:
        return upstream_max
    return min(limit, upstream_max)


def apply_limit(records: Sequence[Record], limit: int | None) -> list[Record]:
    """Take a stable prefix of at most ``limit`` records, keeping source order."""
    if limit is not None and limit > 0:
        return list(records[:limit])
    return list(records)


def typed_items(
    items: Sequence[Any],
    item_type: type,
    descriptor: SourceDescriptor,
    what: str,
) -> list[Any]:
    """Keep the items of the expected JSON type, skipping the rest.

    Upstream collections occasionally carry nulls or stray scalars; each one
    is logged and dropped so the rest of the payload still extracts.
    """
    kept = []
    for index, item in enumerate(items):
        if isinstance(item, item_type):
            kept.append(item)
        else:
            logger.warning(
                f"Skipping {what} {index} from '{descriptor.id}': "
                f"expected {item_type.__name__}, got {type(item).__name__}"
            )
    return kept


def require_records(
    records: Sequence[Record], descriptor: SourceDescriptor, what: str
) -> None:
    """Raise ParseError when extraction produced nothing usable."""
    if not records:
        raise ParseError(
            f"No {what} could be parsed from {descriptor.display_name}",
            source_id=descriptor.id,
            actual_count=0,
        )


def build_result(
    records: Sequence[Record],
    descriptor: SourceDescriptor,
    options: ScrapeOptions,
    started: float,
    source_url: str | None = None,
) -> ScrapeResult:
    """Apply the limit and wrap records in a ScrapeResult.

    Args:
        records: Extracted records in source order.
        descriptor: The adapter's descriptor.
        options: Validated scrape options.
        started: ``time.perf_counter()`` value taken when the call began.
        source_url: URL actually fetched, defaults to the descriptor's.
    """
    return ScrapeResult(
        records=apply_limit(records, options.limit),
        duration=time.perf_counter() - started,
        source_url=source_url or descriptor.source_url,
    )


def supports_format(
    descriptor: SourceDescriptor, fmt: OutputFormat | str
) -> bool:
    output_format = OutputFormat.parse(fmt)
    return output_format is not None and descriptor.supports(output_format)


def format_for(
    descriptor: SourceDescriptor, records: Any, fmt: OutputFormat | str
) -> Any:
    """Format records, refusing formats the source doesn't declare.

    Raises:
        UnsupportedFormatError: If the source doesn't accept the format.
    """
    if not supports_format(descriptor, fmt):
        raise UnsupportedFormatError(
            str(fmt.value if isinstance(fmt, OutputFormat) else fmt),
            source_id=descriptor.id,
            supported=[f.value for f in descriptor.supported_formats],
        )
    return format_records(records, fmt)
