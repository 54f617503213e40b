"""GitHub most starred repositories adapter (JSON API)."""

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

SEARCH_URL = "https://api.github.com/search/repositories"
# The search API returns at most 100 items per page
UPSTREAM_MAX = 100


class GitHubMostStarredAdapter:
    """Repositories with more than 1000 stars, most starred first.

    Record fields: id, name, fullName, description, stars, url, language,
    owner, topics.
    """

    def __init__(
        self,
        url: str = SEARCH_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self._transport = transport
        self.descriptor = SourceDescriptor(
            id="github-most-starred",
            display_name="GitHub Most Starred Repositories",
            description="Scrape trending repositories from GitHub",
            source_url=(
                "https://github.com/search/repositories"
                "?q=stars%3A%3E1000&o=desc&s=stars"
            ),
            supported_formats=(OutputFormat.JSON, OutputFormat.CSV),
            estimated_record_count=UPSTREAM_MAX,
            timeout=30.0,
            default_headers={
                "Accept": "application/vnd.github.v3+json",
                "User-Agent": "Scrapify/1.0",
            },
        )

    def describe(self) -> SourceDescriptor:
        return self.descriptor

    def supports_format(self, fmt: OutputFormat | str) -> bool:
        return supports_format(self.descriptor, fmt)

    async def scrape(self, options: ScrapeOptions | None = None) -> ScrapeResult:
        options = validate_options(options)
        per_page = clamp_limit(options.limit, UPSTREAM_MAX)
        started = time.perf_counter()

        async with request_manager_for(
            self.descriptor, options, self._transport
        ) as manager:
            payload = await manager.fetch_json(
                "GET",
                self.url,
                params={
                    "q": "stars:>1000",
                    "o": "desc",
                    "s": "stars",
                    "per_page": per_page,
                },
            )

        items = payload.get("items") if isinstance(payload, dict) else None
        if not isinstance(items, list):
            raise ParseError(
                "GitHub search response has no 'items' list",
                source_id=self.descriptor.id,
            )

        repos = typed_items(items[:per_page], dict, self.descriptor, "repository")
        records = [self.normalize(repo) for repo in repos]
        return build_result(records, self.descriptor, options, started)

    @staticmethod
    def normalize(repo: dict) -> Record:
        owner = repo.get("owner")
        if not isinstance(owner, dict):
            owner = {}
        return {
            "id": repo.get("id"),
            "name": repo.get("name"),
            "fullName": repo.get("full_name"),
            "description": repo.get("description"),
            "stars": repo.get("stargazers_count"),
            "url": repo.get("html_url"),
            "language": repo.get("language"),
            "owner": owner.get("login"),
            "topics": repo.get("topics") or [],
        }
