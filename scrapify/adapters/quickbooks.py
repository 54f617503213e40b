"""QuickBooks pricing adapter (JSON API).

The billing offers document nests monthly paid offer ids under
``campaigns.default.default.QBO.<PLAN>``; each id points into
``offerDefinitions``. Offers missing a plan name or discount details are
skipped rather than failing the whole scrape.
"""

from __future__ import annotations

import logging
import re
import time
from typing import Any

import httpx

from scrapify.adapters.utils import (
    build_result,
    request_manager_for,
    require_records,
    supports_format,
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

logger = logging.getLogger(__name__)

OFFERS_URL = "https://quickbooks.intuit.com/qbmds-data/us/billing_offers_us.json?v4=5"
PLAN_KEYS = ("QBO_SIMPLE_START", "QBO_ESSENTIALS", "QBO_PLUS", "QBO_ADVANCED")
_PLAN_NAME_RE = re.compile(r"QBO\s*(.*?)\s*US")


def _dig(data: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


class QuickBooksPricingAdapter:
    """QuickBooks Online plan prices and introductory discounts.

    Record fields: plan, price, discountedPrice, category, discountDuration,
    discountUnit, offerName, offerId.
    """

    def __init__(
        self,
        url: str = OFFERS_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self._transport = transport
        self.descriptor = SourceDescriptor(
            id="quickbooks-pricing",
            display_name="QuickBooks Pricing",
            description="Scrape QuickBooks pricing plans and offers",
            source_url=OFFERS_URL,
            supported_formats=(OutputFormat.JSON, OutputFormat.CSV),
            estimated_record_count=len(PLAN_KEYS),
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
        started = time.perf_counter()

        async with request_manager_for(
            self.descriptor, options, self._transport
        ) as manager:
            payload = await manager.fetch_json("GET", self.url)

        records = self.parse(payload)
        return build_result(records, self.descriptor, options, started)

    def parse(self, payload: Any) -> list[Record]:
        """Project the offers document into one record per plan."""
        campaigns = _dig(payload, "campaigns", "default", "default", "QBO")
        if not isinstance(campaigns, dict):
            raise ParseError(
                "Invalid QuickBooks pricing data structure",
                source_id=self.descriptor.id,
            )

        definitions = payload.get("offerDefinitions") or {}
        if not isinstance(definitions, dict):
            raise ParseError(
                "QuickBooks offerDefinitions is not an object",
                source_id=self.descriptor.id,
            )
        offer_ids = [
            offer_id
            for plan in PLAN_KEYS
            if isinstance(
                offer_id := _dig(campaigns, plan, "MONTHLY", "PAID", "offer_id"),
                (str, int),
            )
            and offer_id
        ]

        records: list[Record] = []
        for offer_id in offer_ids:
            offer = definitions.get(offer_id)
            if not offer:
                logger.warning(f"Offer not found with ID {offer_id}")
                continue
            if not isinstance(offer, dict):
                logger.warning(f"Offer {offer_id} is not an object, skipping")
                continue

            match = _PLAN_NAME_RE.search(str(offer.get("name") or ""))
            plan_name = match.group(1) if match else ""
            if not plan_name:
                logger.warning(
                    f"Could not extract plan name from offer: {offer.get('name')}"
                )
                continue

            if any(
                offer.get(key) is None
                for key in ("discountDuration", "discountUnit", "discountPriceWhole")
            ):
                logger.warning(f"Missing required offer info for {plan_name}")
                continue

            cents = offer.get("discountPriceCents") or 0
            try:
                price = float(offer.get("basePrice") or 0)
                discounted = float(f"{offer['discountPriceWhole']}.{cents}")
            except (TypeError, ValueError):
                logger.warning(f"Unparseable prices for {plan_name}")
                continue

            records.append(
                {
                    "plan": plan_name,
                    "price": price,
                    "discountedPrice": discounted,
                    "category": plan_name,
                    "discountDuration": str(offer["discountDuration"]),
                    "discountUnit": offer["discountUnit"],
                    "offerName": offer.get("name"),
                    "offerId": offer_id,
                }
            )

        require_records(records, self.descriptor, "pricing data")
        return records
