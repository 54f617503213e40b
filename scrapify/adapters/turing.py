"""Turing remote jobs adapter (JSON API)."""

from __future__ import annotations

import time

import httpx

from scrapify.adapters.utils import (
    build_result,
    clamp_limit,
    request_manager_for,
    supports_format,
    typed_items,
    validate_options,
)
from scrapify.common.exceptions import ParseError
from scrapify.data_types import (
    OutputFormat,
    Record,
    ScrapeOptions,
    ScrapeResult,
    SourceDescriptor,
)

JOBS_URL = "https://turing.com/api/remote-jobs"
UPSTREAM_MAX = 1000

JOB_FIELDS = (
    "jobId",
    "createdDate",
    "updatedDate",
    "industry",
    "customerWeeklyHourEngagement",
    "publishedOnJobBoard",
    "role",
    "companySize",
    "publicTitle",
    "isActive",
    "showOnJobBoard",
    "fulfilmentProbability",
    "directApplyUrl",
    "description",
)


class TuringJobsAdapter:
    """Remote job listings from Turing.com, newest first.

    Records carry the JOB_FIELDS subset of each listing; nested skill trees
    and translations are dropped.
    """

    def __init__(
        self,
        url: str = JOBS_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self._transport = transport
        self.descriptor = SourceDescriptor(
            id="turing-remote-jobs",
            display_name="Turing Remote Jobs",
            description="Scrape remote job listings from Turing.com",
            source_url=(
                "https://turing.com/api/remote-jobs"
                "?sortBy=publishedOnJobBoard,desc&limit=1000&offset=0&locale=en"
            ),
            supported_formats=(OutputFormat.JSON, OutputFormat.CSV),
            estimated_record_count=UPSTREAM_MAX,
            timeout=30.0,
            default_headers={
                "User-Agent": (
                    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
                    "AppleWebKit/537.36 (KHTML, like Gecko) "
                    "Chrome/91.0.4472.124 Safari/537.36"
                ),
                "Accept": "application/json",
                "Accept-Language": "en-US,en;q=0.5",
            },
        )

    def describe(self) -> SourceDescriptor:
        return self.descriptor

    def supports_format(self, fmt: OutputFormat | str) -> bool:
        return supports_format(self.descriptor, fmt)

    async def scrape(self, options: ScrapeOptions | None = None) -> ScrapeResult:
        options = validate_options(options)
        limit = clamp_limit(options.limit, UPSTREAM_MAX)
        started = time.perf_counter()

        async with request_manager_for(
            self.descriptor, options, self._transport
        ) as manager:
            payload = await manager.fetch_json(
                "GET",
                self.url,
                params={
                    "sortBy": "publishedOnJobBoard,desc",
                    "limit": limit,
                    "offset": 0,
                    "locale": "en",
                },
            )

        if payload is None:
            payload = []
        if not isinstance(payload, list):
            raise ParseError(
                "Turing jobs response is not a list",
                source_id=self.descriptor.id,
            )

        jobs = typed_items(payload[:limit], dict, self.descriptor, "job")
        records = [self.normalize(job) for job in jobs]
        return build_result(records, self.descriptor, options, started)

    @staticmethod
    def normalize(job: dict) -> Record:
        return {name: job.get(name) for name in JOB_FIELDS}
