"""Bullish markets adapter (DOM scraping).

Scrapes the embeddable markets table from Bullish.com. Each market row is a
``[market-table-symbol]`` element; the page also carries one total 24h
volume figure that is copied onto every record.
"""

from __future__ import annotations

import logging
import time

import httpx

from scrapify.adapters.utils import (
    build_result,
    request_manager_for,
    require_records,
    supports_format,
    validate_options,
)
from scrapify.common.checked_html import parse_html
from scrapify.data_types import (
    OutputFormat,
    Record,
    ScrapeOptions,
    ScrapeResult,
    SourceDescriptor,
)

logger = logging.getLogger(__name__)

MARKETS_URL = (
    "https://www.bullish.com/embeds/markets-table-embeddable?5abd7e47_page=2"
)
MARKET_SELECTOR = "[market-table-symbol]"
TOTAL_VOLUME_SELECTOR = (
    '[class="volumes-table-row w-dyn-items"] '
    '[market-table-value="total-volume"]'
)
# Fewer rows than this means the table markup changed, not a quiet market
MIN_MARKETS = 20


class BullishMarketsAdapter:
    """Top markets by 24h volume from Bullish.com.

    Record fields: market, volume24Hrs, totalMarkets, totalVolume24Hrs, rank.
    """

    def __init__(
        self,
        url: str = MARKETS_URL,
        min_markets: int = MIN_MARKETS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.min_markets = min_markets
        self._transport = transport
        self.descriptor = SourceDescriptor(
            id="bullish-markets",
            display_name="Top 100 Bullish Markets",
            description=(
                "Scrape cryptocurrency markets from Bullish.com "
                "with 24h volume data"
            ),
            source_url="https://www.bullish.com/embeds/markets-table-embeddable",
            supported_formats=(OutputFormat.JSON, OutputFormat.CSV),
            estimated_record_count=150,
            timeout=30.0,
            default_headers={
                "User-Agent": (
                    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
                    "AppleWebKit/537.36 (KHTML, like Gecko) "
                    "Chrome/91.0.4472.124 Safari/537.36"
                ),
                "Accept": (
                    "text/html,application/xhtml+xml,"
                    "application/xml;q=0.9,image/webp,*/*;q=0.8"
                ),
                "Accept-Language": "en-US,en;q=0.5",
            },
        )

    def describe(self) -> SourceDescriptor:
        return self.descriptor

    def supports_format(self, fmt: OutputFormat | str) -> bool:
        return supports_format(self.descriptor, fmt)

    async def scrape(self, options: ScrapeOptions | None = None) -> ScrapeResult:
        """Fetch the markets table and extract one record per market row.

        Raises:
            ValidationError: If the limit is not positive.
            NetworkError: If the page can't be fetched.
            ParseError: If fewer than ``min_markets`` rows are present or no
                row yields a name and a volume.
        """
        options = validate_options(options)
        started = time.perf_counter()

        async with request_manager_for(
            self.descriptor, options, self._transport
        ) as manager:
            page = await manager.fetch_text("GET", self.url)

        records = self.parse(page)
        return build_result(records, self.descriptor, options, started)

    def parse(self, page: str) -> list[Record]:
        """Extract market records from the markets table HTML."""
        tree = parse_html(page, self.url)
        markets = tree.checked_css(
            MARKET_SELECTOR, "market rows", min_count=self.min_markets
        )
        total_markets = len(markets)

        totals = tree.checked_css(
            TOTAL_VOLUME_SELECTOR, "total 24h volume", min_count=0
        )
        total_volume = totals[0].text() if totals else ""

        records: list[Record] = []
        for index, market in enumerate(markets):
            name = market.first_text([".markets-table-name"])
            volume = market.first_text(['[market-table-value="24h-volume"]'])
            if not name or not volume:
                logger.debug(f"Skipping market row {index}: missing name or volume")
                continue
            records.append(
                {
                    "market": name,
                    "volume24Hrs": f"${volume}",
                    "totalMarkets": total_markets,
                    "totalVolume24Hrs": f"${total_volume}",
                    "rank": index + 1,
                }
            )

        require_records(records, self.descriptor, "market data")
        return records
