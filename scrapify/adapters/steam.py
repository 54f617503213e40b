"""Steam top sellers adapter.

Steam's search endpoint answers with a JSON envelope whose ``results_html``
field holds the rendered result rows, so this is a JSON call followed by DOM
extraction of each ``a.search_result_row``.
"""

from __future__ import annotations

import json
import logging
import re
import time
from typing import Any

import httpx

from scrapify.adapters.utils import (
    build_result,
    clamp_limit,
    request_manager_for,
    require_records,
    supports_format,
    validate_options,
)
from scrapify.common.checked_html import CheckedHtmlElement, parse_html
from scrapify.common.exceptions import ParseError
from scrapify.data_types import (
    OutputFormat,
    Record,
    ScrapeOptions,
    ScrapeResult,
    SourceDescriptor,
)

logger = logging.getLogger(__name__)

SEARCH_URL = "https://store.steampowered.com/search/results/"
UPSTREAM_MAX = 50

_REVIEW_RE = re.compile(r"(\d+)% of the ([\d,]+) user reviews")
_PLATFORMS = (("win", "Windows"), ("mac", "Mac"), ("linux", "Linux"))


def _parse_price(text: str) -> float | None:
    cleaned = text.strip().replace("$", "").replace(",", "")
    try:
        return float(cleaned)
    except ValueError:
        return None


class SteamTopSellersAdapter:
    """Global top sellers from the Steam store.

    Record fields: rank, appId, title, url, imageUrl, releaseDate,
    reviewScore, reviewPercentage, reviewCount, priceFinal, priceOriginal,
    discountPercentage, platforms, creatorIds, itemKey.
    """

    def __init__(
        self,
        url: str = SEARCH_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self._transport = transport
        self.descriptor = SourceDescriptor(
            id="steam-top-sellers",
            display_name="Steam Top Sellers",
            description="Scrape top selling games from Steam store",
            source_url=(
                "https://store.steampowered.com/search/?filter=globaltopsellers"
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

    def query_params(self, count: int) -> dict[str, Any]:
        return {
            "query": "",
            "start": 0,
            "count": count,
            "dynamic_data": "",
            "sort_by": "_ASC",
            "supportedlang": "english",
            "snr": "1_7_7_globaltopsellers_7",
            "filter": "globaltopsellers",
            "infinite": 1,
        }

    async def scrape(self, options: ScrapeOptions | None = None) -> ScrapeResult:
        """Fetch one page of top sellers, at most 50 rows.

        Raises:
            ValidationError: If the limit is not positive.
            NetworkError: If the search endpoint can't be reached.
            ParseError: If the envelope reports failure or has no HTML.
        """
        options = validate_options(options)
        count = clamp_limit(options.limit, UPSTREAM_MAX)
        started = time.perf_counter()

        async with request_manager_for(
            self.descriptor, options, self._transport
        ) as manager:
            payload = await manager.fetch_json(
                "GET", self.url, params=self.query_params(count)
            )

        if (
            not isinstance(payload, dict)
            or payload.get("success") != 1
            or not payload.get("results_html")
        ):
            raise ParseError(
                "Invalid response from Steam API", source_id=self.descriptor.id
            )

        records = self.parse(payload["results_html"])[:count]
        require_records(records, self.descriptor, "game data")
        return build_result(records, self.descriptor, options, started)

    def parse(self, results_html: str) -> list[Record]:
        """Extract one record per search result row."""
        tree = parse_html(results_html, self.url)
        rows = tree.checked_css(
            "a.search_result_row", "search result rows", min_count=0
        )
        return [self._parse_row(index, row) for index, row in enumerate(rows)]

    def _parse_row(self, index: int, row: CheckedHtmlElement) -> Record:
        review_percentage = ""
        review_count = ""
        reviews = row.checked_css(
            "span.search_review_summary", "review summary", min_count=0
        )
        review_score = ""
        if reviews:
            review_score = (
                reviews[0].attr("class").replace("search_review_summary", "").strip()
            )
            match = _REVIEW_RE.search(reviews[0].attr("data-tooltip-html"))
            if match:
                review_percentage = f"{match.group(1)}%"
                review_count = match.group(2).replace(",", "")

        price_final = 0.0
        price_blocks = row.checked_css(
            "div.search_price_discount_combined", "price block", min_count=0
        )
        if price_blocks:
            cents = price_blocks[0].attr("data-price-final", "0")
            price_final = int(cents) / 100 if cents.isdigit() else 0.0

        discount_percentage: int | None = None
        price_original: float | None = None
        discounts = row.checked_css("div.discount_block", "discount block", min_count=0)
        if discounts:
            raw_discount = discounts[0].attr("data-discount")
            if raw_discount.isdigit():
                discount_percentage = int(raw_discount)
            original = discounts[0].first_text(["div.discount_original_price"])
            if original:
                price_original = _parse_price(original)

        platforms: list[str] = []
        for classes in row.checked_xpath(
            ".//span[contains(@class, 'platform_img')]/@class",
            "platform icons",
            min_count=0,
            type=str,
        ):
            for marker, label in _PLATFORMS:
                if marker in classes:
                    platforms.append(label)
                    break
        if row.checked_css("span.vr_supported", "vr badge", min_count=0):
            platforms.append("VR Supported")

        creator_ids: list[str] = []
        try:
            parsed = json.loads(row.attr("data-ds-crtrids", "[]"))
            if isinstance(parsed, list):
                creator_ids = [str(c) for c in parsed]
        except json.JSONDecodeError:
            logger.debug(f"Unparseable creator ids on row {index}")

        images = row.checked_css("div.search_capsule img", "capsule image", min_count=0)

        return {
            "rank": index + 1,
            "appId": row.attr("data-ds-appid"),
            "title": row.first_text(["span.title"]),
            "url": row.attr("href"),
            "imageUrl": images[0].attr("src") if images else "",
            "releaseDate": row.first_text(["div.search_released"]),
            "reviewScore": review_score,
            "reviewPercentage": review_percentage,
            "reviewCount": review_count,
            "priceFinal": price_final,
            "priceOriginal": price_original,
            "discountPercentage": discount_percentage,
            "platforms": ", ".join(platforms),
            "creatorIds": ", ".join(creator_ids),
            "itemKey": row.attr("data-ds-itemkey"),
        }
