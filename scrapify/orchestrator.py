"""Extraction orchestrator.

The single entry point the route layer (or the CLI) calls. A scrape request
is resolved against the catalog, validated, handed to the adapter, formatted
and recorded in the activity log:

    request -> lookup -> format check -> option check -> adapter.scrape
            -> format_records -> activity log -> {data, recordCount}

Client errors (unknown source, unsupported format, invalid options) are
raised before the adapter is invoked. Every attempt, successful or not,
leaves exactly one entry in the activity log.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from scrapify.activity_log import ActivityLog
from scrapify.adapters.base import SourceAdapter
from scrapify.adapters.utils import format_for
from scrapify.catalog import AdapterCatalog
from scrapify.common.exceptions import (
    ScrapifyError,
    SourceNotFoundError,
    UnsupportedFormatError,
    ValidationError,
)
from scrapify.config import ScrapifyConfig
from scrapify.data_types import (
    OutputFormat,
    ScrapeRequest,
    SourceDescriptor,
)

logger = logging.getLogger(__name__)


def _elapsed_ms(started: float) -> int:
    return int(round((time.perf_counter() - started) * 1000))


def _envelope_metadata(request: Any) -> dict[str, Any]:
    """Source and format as the caller sent them, even when malformed."""
    if isinstance(request, ScrapeRequest):
        source, fmt = request.source_id, request.format
    elif isinstance(request, Mapping):
        source = request.get("source", "")
        fmt = request.get("format", OutputFormat.JSON.value)
    else:
        source, fmt = "", ""
    if isinstance(fmt, OutputFormat):
        fmt = fmt.value
    return {"source": str(source), "format": str(fmt)}


def _failure_envelope(
    error: ScrapifyError, metadata: dict[str, Any], started: float
) -> dict[str, Any]:
    metadata["timestamp"] = datetime.now(timezone.utc).isoformat()
    metadata["duration"] = _elapsed_ms(started)
    return {"success": False, "error": error.message, "metadata": metadata}


class ExtractionOrchestrator:
    """Resolves, runs, formats and records scrape requests.

    Example::

        orchestrator = ExtractionOrchestrator(build_default_catalog())
        result = await orchestrator.scrape(
            ScrapeRequest("github-most-starred", "csv", ScrapeOptions(limit=5))
        )
    """

    def __init__(
        self,
        catalog: AdapterCatalog,
        activity_log: ActivityLog | None = None,
        config: ScrapifyConfig | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            catalog: Registered adapters.
            activity_log: Ledger of attempts; a new one sized from
                ``config`` is created when omitted.
            config: Startup settings.
        """
        self.config = config or ScrapifyConfig()
        self.catalog = catalog
        if activity_log is None:
            activity_log = ActivityLog(self.config.activity_capacity)
        self.activity_log = activity_log

    def _resolve(
        self, request: ScrapeRequest
    ) -> tuple[SourceAdapter, SourceDescriptor, OutputFormat]:
        """Look up the adapter and check format and options.

        Raises:
            SourceNotFoundError: If the source id is not registered.
            UnsupportedFormatError: If the format is unknown or not
                accepted by the source.
            ValidationError: If the options are invalid.
        """
        adapter = self.catalog.lookup(request.source_id)
        descriptor = self.catalog.descriptor(request.source_id)
        if adapter is None or descriptor is None:
            raise SourceNotFoundError(request.source_id)

        fmt = OutputFormat.parse(request.format)
        if fmt is None or not adapter.supports_format(fmt):
            raise UnsupportedFormatError(
                str(request.format),
                source_id=descriptor.id,
                supported=[f.value for f in descriptor.supported_formats],
            )

        request.options.validate()
        return adapter, descriptor, fmt

    async def scrape(self, request: ScrapeRequest) -> dict[str, Any]:
        """Run one scrape request.

        Args:
            request: Source id, requested format and options.

        Returns:
            ``{"data": <formatted records>, "recordCount": <int>}``. For JSON
            ``data`` is the record list, for CSV and XML it is a string.

        Raises:
            SourceNotFoundError: Unknown source id (adapter not invoked).
            UnsupportedFormatError: Format not accepted (adapter not invoked).
            ValidationError: Invalid options (adapter not invoked).
            NetworkError: Upstream unreachable, timed out or not 2xx.
            ParseError: Upstream payload no longer matches the adapter.
            ScrapifyError: Any other adapter failure, chained to its cause.
        """
        try:
            adapter, descriptor, fmt = self._resolve(request)
        except ScrapifyError as e:
            logger.warning(f"Rejected scrape of '{request.source_id}': {e.message}")
            self.activity_log.append(
                request.source_id, str(request.format), 0, 0, False
            )
            raise

        logger.info(
            f"Scraping '{descriptor.id}' as {fmt.value} "
            f"(limit={request.options.limit})"
        )
        started = time.perf_counter()
        try:
            result = await adapter.scrape(request.options)
            data = format_for(descriptor, result.records, fmt)
        except ScrapifyError as e:
            duration = _elapsed_ms(started)
            if e.source_id is None:
                e.source_id = descriptor.id
            logger.error(
                f"Scrape of '{descriptor.id}' failed after {duration}ms: "
                f"{type(e).__name__}: {e.message}"
            )
            self.activity_log.append(descriptor.id, fmt.value, duration, 0, False)
            raise
        except Exception as e:
            duration = _elapsed_ms(started)
            logger.exception(
                f"Unexpected error scraping '{descriptor.id}' after {duration}ms"
            )
            self.activity_log.append(descriptor.id, fmt.value, duration, 0, False)
            raise ScrapifyError(
                str(e) or type(e).__name__, source_id=descriptor.id
            ) from e

        duration = _elapsed_ms(started)
        self.activity_log.append(
            descriptor.id, fmt.value, duration, result.record_count, True
        )
        logger.info(
            f"Scraped {result.record_count} records from '{descriptor.id}' "
            f"in {duration}ms"
        )
        return {"data": data, "recordCount": result.record_count}

    async def handle(
        self, request: ScrapeRequest | Mapping[str, Any]
    ) -> dict[str, Any]:
        """Run a request and wrap the outcome in the response envelope.

        Accepts either a ScrapeRequest or the wire shape
        ``{source, format, options?}``. Malformed wire requests and
        extraction errors become a failure envelope instead of propagating.

        Returns:
            On success ``{success, data, metadata}`` where metadata holds
            source, format, timestamp, duration (ms) and recordCount. On
            failure ``{success: False, error, metadata}``.
        """
        started = time.perf_counter()
        metadata = _envelope_metadata(request)
        try:
            if not isinstance(request, ScrapeRequest):
                request = ScrapeRequest.from_dict(request)
        except ValidationError as e:
            logger.warning(f"Rejected malformed request: {e.message}")
            self.activity_log.append(
                metadata["source"], metadata["format"], 0, 0, False
            )
            return _failure_envelope(e, metadata, started)

        try:
            result = await self.scrape(request)
        except ScrapifyError as e:
            return _failure_envelope(e, metadata, started)

        metadata["timestamp"] = datetime.now(timezone.utc).isoformat()
        metadata["duration"] = _elapsed_ms(started)
        metadata["recordCount"] = result["recordCount"]
        return {"success": True, "data": result["data"], "metadata": metadata}

    def list_sources(self) -> list[dict[str, Any]]:
        """Listing of enabled sources, in registration order."""
        return [d.to_dict() for d in self.catalog.enabled_descriptors()]

    def status(self) -> dict[str, Any]:
        """Summary of the catalog and recent activity."""
        recent = self.activity_log.recent(self.config.recent_activity_size)
        return {
            "activeSources": len(self.catalog.enabled_descriptors()),
            "totalScrapes": len(self.activity_log),
            "recentActivity": [entry.to_dict() for entry in recent],
            "systemHealth": "healthy",
        }
