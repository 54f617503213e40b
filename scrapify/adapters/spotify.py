"""Spotify most followed artists adapter (JSON API via ChartMasters).

ChartMasters serves the table through a wpDataTables AJAX endpoint. Each row
is a positional array; the artist cell is an HTML snippet whose text is the
artist name.
"""

from __future__ import annotations

import time
from typing import Any

import httpx

from scrapify.adapters.utils import (
    build_result,
    request_manager_for,
    supports_format,
    typed_items,
    validate_options,
)
from scrapify.common.checked_html import html_to_text
from scrapify.common.exceptions import ParseError
from scrapify.data_types import (
    OutputFormat,
    Record,
    ScrapeOptions,
    ScrapeResult,
    SourceDescriptor,
)

TABLE_URL = (
    "https://chartmasters.org/wp-admin/admin-ajax.php"
    "?action=get_wdtable&table_id=65"
)
UPSTREAM_MAX = 100

# Positional columns of the wpDataTables row, in order
COLUMNS = (
    "rank",
    "g#",
    "pic",
    "artist",
    "followers",
    "daily",
    "weekly",
    "artist_spotify_id",
    "gender",
    "genre",
    "country",
    "language",
)
SEARCHABLE = {"artist", "daily", "gender", "genre", "country", "language"}
UNORDERABLE = {"pic", "artist_spotify_id", "gender", "genre", "country", "language"}


def table_form(length: int = UPSTREAM_MAX, nonce: str = "f921317402") -> dict[str, Any]:
    """Build the wpDataTables form body requesting the first ``length`` rows."""
    form: dict[str, Any] = {"draw": 1}
    for index, name in enumerate(COLUMNS):
        prefix = f"columns[{index}]"
        form[f"{prefix}[data]"] = index
        form[f"{prefix}[name]"] = name
        form[f"{prefix}[searchable]"] = str(name in SEARCHABLE).lower()
        form[f"{prefix}[orderable]"] = str(name not in UNORDERABLE).lower()
        form[f"{prefix}[search][value]"] = ""
        form[f"{prefix}[search][regex]"] = "false"
    form.update(
        {
            "order[0][column]": 0,
            "order[0][dir]": "asc",
            "start": 0,
            "length": length,
            "search[value]": "",
            "search[regex]": "false",
            "wdtNonce": nonce,
        }
    )
    return form


def _cell(row: list, index: int) -> Any:
    value = row[index] if index < len(row) else None
    return value if value not in (None, "") else ""


class SpotifyMostFollowedAdapter:
    """Most followed artists on Spotify, as tracked by ChartMasters.

    Record fields: rank, artist, followers, dailyChange, weeklyChange,
    spotifyId, gender, genre, country, language.
    """

    def __init__(
        self,
        url: str = TABLE_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self._transport = transport
        self.descriptor = SourceDescriptor(
            id="spotify-most-followed",
            display_name="Spotify Most Followed Artists",
            description=(
                "Scrape most followed artists from Spotify data via ChartMasters"
            ),
            source_url="https://chartmasters.org/wp-admin/admin-ajax.php",
            supported_formats=(OutputFormat.JSON, OutputFormat.CSV),
            estimated_record_count=UPSTREAM_MAX,
            timeout=30.0,
            default_headers={
                "User-Agent": (
                    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
                    "AppleWebKit/537.36 (KHTML, like Gecko) "
                    "Chrome/91.0.4472.124 Safari/537.36"
                ),
                "Accept": "application/json, text/javascript, */*; q=0.01",
                "Accept-Language": "en-US,en;q=0.5",
                "X-Requested-With": "XMLHttpRequest",
                "Referer": "https://chartmasters.org/spotify-most-followed-artists",
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
            payload = await manager.fetch_json(
                "POST", self.url, data=table_form()
            )

        rows = payload.get("data") if isinstance(payload, dict) else None
        if rows is None:
            raise ParseError(
                "Invalid response structure from ChartMasters API",
                source_id=self.descriptor.id,
            )
        if isinstance(rows, list):
            rows = typed_items(rows, list, self.descriptor, "artist row")
        if not isinstance(rows, list) or not rows:
            raise ParseError(
                "No artist data found in ChartMasters response",
                source_id=self.descriptor.id,
                actual_count=0,
            )

        records = [self.normalize(index, row) for index, row in enumerate(rows)]
        return build_result(records, self.descriptor, options, started)

    @staticmethod
    def normalize(index: int, row: list) -> Record:
        return {
            "rank": _cell(row, 0) or index + 1,
            "artist": html_to_text(str(_cell(row, 3))),
            "followers": _cell(row, 4),
            "dailyChange": _cell(row, 5),
            "weeklyChange": _cell(row, 6),
            "spotifyId": _cell(row, 7),
            "gender": _cell(row, 8),
            "genre": _cell(row, 9),
            "country": _cell(row, 10),
            "language": _cell(row, 11),
        }
