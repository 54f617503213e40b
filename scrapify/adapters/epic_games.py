"""Epic Games Store top sellers adapter (headless browser).

The store renders client-side and rejects plain HTTP clients, so this
adapter drives a headless browser. Card markup drifts often; the card and
field selectors below are tried in priority order.
"""

from __future__ import annotations

import logging
import re
import time
from typing import Any
from urllib.parse import urljoin

from scrapify.adapters.utils import (
    build_result,
    merged_headers,
    merged_timeout,
    require_records,
    supports_format,
    validate_options,
)
from scrapify.browser import (
    DEFAULT_HEADERS,
    DEFAULT_USER_AGENT,
    BrowserLauncher,
    evaluate_cards,
    navigate,
    open_page,
    settle,
)
from scrapify.data_types import (
    OutputFormat,
    Record,
    ScrapeOptions,
    ScrapeResult,
    SourceDescriptor,
)

logger = logging.getLogger(__name__)

TOP_SELLERS_URL = "https://store.epicgames.com/en-US/collection/top-sellers"
STORE_ORIGIN = "https://store.epicgames.com"
DEFAULT_SETTLE_DELAY = 3.0

CARD_SELECTORS = (
    '[data-testid="game-card"]',
    ".game-card",
    '[class*="game-card"]',
    '[class*="GameCard"]',
    ".css-1jnx0a8",
    '[class*="game"]',
    '[class*="Game"]',
    'a[href*="/p/"]',
)
FIELD_SELECTORS = {
    "name": (
        '[data-testid="game-title"]',
        ".game-title",
        ".game-name",
        "h3",
        "h4",
        '[class*="title"]',
        '[class*="name"]',
    ),
    "price": (
        '[data-testid="game-price"]',
        ".price",
        ".game-price",
        '[class*="price"]',
        ".css-1jnx0a8",
    ),
    "discount": (
        ".discount",
        ".sale-badge",
        '[class*="discount"]',
        '[class*="sale"]',
        '[class*="off"]',
    ),
    "platform": (
        '[data-testid="platform"]',
        '[class*="platform"]',
        '[aria-label*="Windows"]',
        '[aria-label*="Mac"]',
    ),
}

_PRICE_RE = re.compile(r"[\d,]+\.?\d*")
_DISCOUNT_RE = re.compile(r"(\d+)%")


def discounted_price(price: str, discount: str) -> str | None:
    """Compute the sale price from an original price and a "N%" discount.

    Returns:
        ``$X.YY`` when both parse to positive numbers, otherwise None.
    """
    if not price or not discount:
        return None
    price_match = _PRICE_RE.search(price)
    discount_match = _DISCOUNT_RE.search(discount)
    if not price_match or not discount_match:
        return None
    try:
        original = float(price_match.group(0).replace(",", ""))
    except ValueError:
        return None
    percent = float(discount_match.group(1))
    if original <= 0 or percent <= 0:
        return None
    return f"${original * (1 - percent / 100):.2f}"


def normalize_game(raw: dict[str, Any], index: int) -> Record | None:
    """Turn one raw card into a record, or None when it has no name."""
    name = (raw.get("name") or "").strip()
    if not name:
        return None
    price = (raw.get("price") or "").strip()
    discount = (raw.get("discount") or "").strip()
    href = (raw.get("link") or "").strip()
    return {
        "name": name,
        "price": price or "Free",
        "discountPercentage": discount or "0%",
        "discountedPrice": discounted_price(price, discount) or price or "Free",
        "platform": (raw.get("platform") or "").strip(),
        "link": urljoin(STORE_ORIGIN, href) if href else TOP_SELLERS_URL,
        "rank": index + 1,
    }


class EpicGamesTopSellersAdapter:
    """Top selling games on the Epic Games Store with pricing information.

    Record fields: name, price, discountPercentage, discountedPrice,
    platform, link, rank.
    """

    def __init__(
        self,
        url: str = TOP_SELLERS_URL,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        headless: bool = True,
        launcher: BrowserLauncher | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            url: Page to render.
            settle_delay: Seconds to wait after navigation for rendering.
            headless: Run the browser without a window.
            launcher: Browser launcher; defaults to a local Chromium.
        """
        self.url = url
        self.settle_delay = settle_delay
        self.headless = headless
        self._launcher = launcher
        self.descriptor = SourceDescriptor(
            id="epic-games-top-sellers",
            display_name="Epic Games Top Sellers",
            description=(
                "Scrape top selling games from Epic Games Store "
                "with pricing information"
            ),
            source_url=TOP_SELLERS_URL,
            supported_formats=(OutputFormat.JSON, OutputFormat.CSV),
            estimated_record_count=50,
            timeout=60.0,
            default_headers={"User-Agent": DEFAULT_USER_AGENT, **DEFAULT_HEADERS},
        )

    def describe(self) -> SourceDescriptor:
        return self.descriptor

    def supports_format(self, fmt: OutputFormat | str) -> bool:
        return supports_format(self.descriptor, fmt)

    async def scrape(self, options: ScrapeOptions | None = None) -> ScrapeResult:
        """Render the top sellers page and extract one record per game card.

        Raises:
            ValidationError: If the limit is not positive.
            NetworkError: If navigation fails or times out.
            ParseError: If no card yields a game name.
        """
        options = validate_options(options)
        started = time.perf_counter()
        headers = merged_headers(self.descriptor, options)
        user_agent = headers.pop("User-Agent", DEFAULT_USER_AGENT)

        async with open_page(
            self._launcher,
            headless=self.headless,
            user_agent=user_agent,
            headers=headers,
        ) as page:
            logger.info(f"Navigating to {self.url}")
            timeout = merged_timeout(self.descriptor, options)
            await navigate(page, self.url, timeout)
            await settle(self.settle_delay)
            selector, raw_cards = await evaluate_cards(
                page, CARD_SELECTORS, FIELD_SELECTORS, timeout=timeout
            )

        logger.info(f"Found {len(raw_cards)} cards with selector: {selector}")
        records = [
            record
            for index, raw in enumerate(raw_cards)
            if (record := normalize_game(raw, index)) is not None
        ]
        require_records(records, self.descriptor, "game data")
        return build_result(records, self.descriptor, options, started)
