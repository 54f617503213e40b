"""Tests for the extraction orchestrator.

The orchestrator runs over a catalog holding a fake adapter that returns
five fixed records and counts how often it is invoked, so each test can
check both the returned payload and whether the adapter was reached.
"""

import pytest

from scrapify.activity_log import ActivityLog
from scrapify.catalog import AdapterCatalog
from scrapify.common.exceptions import (
    NetworkError,
    ParseError,
    ScrapifyError,
    SourceNotFoundError,
    UnsupportedFormatError,
    ValidationError,
)
from scrapify.config import ScrapifyConfig
from scrapify.data_types import OutputFormat, ScrapeOptions, ScrapeRequest
from scrapify.orchestrator import ExtractionOrchestrator
from tests.fakes import FIXTURE_RECORDS, FixtureAdapter


def make_orchestrator(*adapters) -> ExtractionOrchestrator:
    return ExtractionOrchestrator(AdapterCatalog(adapters), activity_log=ActivityLog())


class TestScrape:
    """Tests for ExtractionOrchestrator.scrape."""

    @pytest.mark.asyncio
    async def test_json_returns_records_and_count(self, orchestrator, fixture_adapter):
        """A JSON scrape shall return the records with recordCount == len(data)."""
        result = await orchestrator.scrape(ScrapeRequest("test-fixture", "json"))

        assert result["data"] == FIXTURE_RECORDS
        assert result["recordCount"] == len(result["data"]) == 5
        assert fixture_adapter.calls == 1

    @pytest.mark.asyncio
    async def test_csv_with_limit(self, orchestrator):
        """A CSV scrape with limit 3 shall produce a header and three rows."""
        result = await orchestrator.scrape(
            ScrapeRequest("test-fixture", "csv", ScrapeOptions(limit=3))
        )

        lines = result["data"].split("\n")
        assert len(lines) == 4
        assert lines[0] == "id,name,note"
        assert lines[2] == '2,Record 2,"has ""quotes"", commas"'
        assert result["recordCount"] == 3

    @pytest.mark.asyncio
    async def test_limit_is_a_stable_prefix(self, orchestrator):
        """A limit shall keep the first records in source order."""
        result = await orchestrator.scrape(
            ScrapeRequest("test-fixture", "json", ScrapeOptions(limit=2))
        )

        assert [r["id"] for r in result["data"]] == [1, 2]

    @pytest.mark.asyncio
    async def test_unknown_source(self, orchestrator):
        """An unknown source id shall raise SourceNotFoundError and log a failure."""
        with pytest.raises(SourceNotFoundError) as exc_info:
            await orchestrator.scrape(ScrapeRequest("does-not-exist", "json"))

        assert exc_info.value.message == "Scraping source 'does-not-exist' not found"
        entry = orchestrator.activity_log.entries()[-1]
        assert entry.source_id == "does-not-exist"
        assert entry.success is False
        assert entry.record_count == 0
        assert entry.duration == 0

    @pytest.mark.asyncio
    async def test_unsupported_format_never_invokes_adapter(
        self, orchestrator, fixture_adapter
    ):
        """XML for a JSON/CSV source shall raise before the adapter is invoked."""
        with pytest.raises(UnsupportedFormatError) as exc_info:
            await orchestrator.scrape(ScrapeRequest("test-fixture", "xml"))

        assert exc_info.value.source_id == "test-fixture"
        assert fixture_adapter.calls == 0
        assert orchestrator.activity_log.entries()[-1].success is False

    @pytest.mark.asyncio
    async def test_unknown_format_never_invokes_adapter(
        self, orchestrator, fixture_adapter
    ):
        """An unknown format name shall raise UnsupportedFormatError."""
        with pytest.raises(UnsupportedFormatError):
            await orchestrator.scrape(ScrapeRequest("test-fixture", "yaml"))

        assert fixture_adapter.calls == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [0, -5])
    async def test_invalid_limit_never_invokes_adapter(
        self, orchestrator, fixture_adapter, limit
    ):
        """A non-positive limit shall raise ValidationError with zero adapter calls."""
        with pytest.raises(ValidationError):
            await orchestrator.scrape(
                ScrapeRequest("test-fixture", "json", ScrapeOptions(limit=limit))
            )

        assert fixture_adapter.calls == 0

    @pytest.mark.asyncio
    async def test_xml_for_source_declaring_it(self):
        """A source declaring XML shall be formatted as XML."""
        adapter = FixtureAdapter(
            formats=(OutputFormat.JSON, OutputFormat.CSV, OutputFormat.XML)
        )
        orchestrator = make_orchestrator(adapter)

        result = await orchestrator.scrape(ScrapeRequest("test-fixture", "xml"))

        assert result["data"].startswith("<data><item id=\"0\">")
        assert result["recordCount"] == 5

    @pytest.mark.asyncio
    async def test_adapter_error_is_reraised_and_logged(self):
        """A typed adapter error shall propagate and leave one failure entry."""
        adapter = FixtureAdapter(error=ParseError("markup changed"))
        orchestrator = make_orchestrator(adapter)

        with pytest.raises(ParseError) as exc_info:
            await orchestrator.scrape(ScrapeRequest("test-fixture", "json"))

        assert exc_info.value.source_id == "test-fixture"
        entries = orchestrator.activity_log.entries()
        assert len(entries) == 1
        assert entries[0].success is False
        assert entries[0].record_count == 0
        assert entries[0].duration >= 0

    @pytest.mark.asyncio
    async def test_unexpected_error_is_wrapped(self):
        """An untyped adapter exception shall become a chained ScrapifyError."""
        cause = KeyError("price")
        orchestrator = make_orchestrator(FixtureAdapter(error=cause))

        with pytest.raises(ScrapifyError) as exc_info:
            await orchestrator.scrape(ScrapeRequest("test-fixture", "json"))

        assert type(exc_info.value) is ScrapifyError
        assert exc_info.value.__cause__ is cause
        assert "price" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_every_attempt_is_logged_once(self, orchestrator):
        """Each attempt, successful or not, shall add exactly one entry."""
        await orchestrator.scrape(ScrapeRequest("test-fixture", "json"))
        with pytest.raises(SourceNotFoundError):
            await orchestrator.scrape(ScrapeRequest("nope", "json"))
        await orchestrator.scrape(ScrapeRequest("test-fixture", "csv"))

        entries = orchestrator.activity_log.entries()
        assert [e.success for e in entries] == [True, False, True]
        assert entries[0].record_count == 5
        assert entries[2].format == "csv"

    @pytest.mark.asyncio
    async def test_log_keeps_the_latest_hundred_attempts(self):
        """After 150 scrapes the log shall hold 100 entries, oldest being call 51."""
        orchestrator = make_orchestrator(
            *(FixtureAdapter(f"source-{n}") for n in range(1, 151))
        )

        for n in range(1, 151):
            await orchestrator.scrape(ScrapeRequest(f"source-{n}", "json"))

        entries = orchestrator.activity_log.entries()
        assert len(entries) == 100
        assert entries[0].source_id == "source-51"
        assert entries[-1].source_id == "source-150"
        assert all(entry.success for entry in entries)


class TestHandle:
    """Tests for the response envelope."""

    @pytest.mark.asyncio
    async def test_success_envelope(self, orchestrator):
        """A successful request shall return data with full metadata."""
        envelope = await orchestrator.handle(
            {"source": "test-fixture", "format": "json", "options": {"limit": 2}}
        )

        assert envelope["success"] is True
        assert len(envelope["data"]) == 2
        metadata = envelope["metadata"]
        assert metadata["source"] == "test-fixture"
        assert metadata["format"] == "json"
        assert metadata["recordCount"] == 2
        assert isinstance(metadata["duration"], int)
        assert "T" in metadata["timestamp"]

    @pytest.mark.asyncio
    async def test_not_found_envelope(self, orchestrator):
        """A missing source shall give a failure envelope and a failure entry."""
        envelope = await orchestrator.handle(
            ScrapeRequest("does-not-exist", "json")
        )

        assert envelope["success"] is False
        assert envelope["error"] == "Scraping source 'does-not-exist' not found"
        assert envelope["metadata"]["source"] == "does-not-exist"
        assert "recordCount" not in envelope["metadata"]
        assert orchestrator.activity_log.entries()[-1].success is False

    @pytest.mark.asyncio
    async def test_network_error_envelope(self):
        """An upstream failure shall become a failure envelope, not an exception."""
        orchestrator = make_orchestrator(
            FixtureAdapter(error=NetworkError("HTTP 503 from x", status_code=503))
        )

        envelope = await orchestrator.handle(ScrapeRequest("test-fixture", "json"))

        assert envelope == {
            "success": False,
            "error": "HTTP 503 from x",
            "metadata": envelope["metadata"],
        }

    @pytest.mark.asyncio
    async def test_bad_wire_timeout_envelope(self, orchestrator, fixture_adapter):
        """A non-numeric wire timeout shall give a validation failure envelope."""
        envelope = await orchestrator.handle(
            {"source": "test-fixture", "options": {"timeout": "soon"}}
        )

        assert envelope["success"] is False
        assert fixture_adapter.calls == 0

    @pytest.mark.asyncio
    async def test_non_mapping_options_envelope(self, orchestrator, fixture_adapter):
        """Options sent as a string shall give a failure envelope."""
        envelope = await orchestrator.handle(
            {"source": "test-fixture", "format": "json", "options": "limit=3"}
        )

        assert envelope["success"] is False
        assert envelope["error"] == "Options must be an object, got str"
        assert envelope["metadata"]["source"] == "test-fixture"
        assert envelope["metadata"]["format"] == "json"
        assert fixture_adapter.calls == 0
        assert orchestrator.activity_log.entries()[-1].success is False

    @pytest.mark.asyncio
    async def test_non_mapping_headers_envelope(self, orchestrator, fixture_adapter):
        """Headers sent as a list shall give a failure envelope."""
        envelope = await orchestrator.handle(
            {"source": "test-fixture", "options": {"headers": ["X"]}}
        )

        assert envelope["success"] is False
        assert envelope["error"] == "Headers must be an object, got list"
        assert fixture_adapter.calls == 0

    @pytest.mark.asyncio
    async def test_non_mapping_request_envelope(self, orchestrator):
        """A request body that isn't an object shall give a failure envelope."""
        envelope = await orchestrator.handle(["test-fixture", "json"])

        assert envelope["success"] is False
        assert envelope["metadata"]["source"] == ""
        assert "duration" in envelope["metadata"]


class TestListingAndStatus:
    """Tests for list_sources and status."""

    def test_list_sources_only_enabled(self):
        """list_sources() shall list enabled sources in registration order."""
        orchestrator = make_orchestrator(
            FixtureAdapter("b"), FixtureAdapter("hidden", enabled=False), FixtureAdapter("a")
        )

        assert [s["id"] for s in orchestrator.list_sources()] == ["b", "a"]

    @pytest.mark.asyncio
    async def test_status(self):
        """status() shall count sources and report the newest activity first."""
        orchestrator = ExtractionOrchestrator(
            AdapterCatalog([FixtureAdapter()]),
            config=ScrapifyConfig(recent_activity_size=3),
        )
        for _ in range(5):
            await orchestrator.handle(ScrapeRequest("test-fixture", "json"))
        await orchestrator.handle(ScrapeRequest("missing", "json"))

        status = orchestrator.status()

        assert status["activeSources"] == 1
        assert status["totalScrapes"] == 6
        assert status["systemHealth"] == "healthy"
        assert len(status["recentActivity"]) == 3
        assert status["recentActivity"][0]["source"] == "missing"
        assert status["recentActivity"][0]["success"] is False

    def test_activity_log_sized_from_config(self):
        """Without an explicit log, capacity shall come from config."""
        orchestrator = ExtractionOrchestrator(
            AdapterCatalog([]), config=ScrapifyConfig(activity_capacity=7)
        )

        assert orchestrator.activity_log.capacity == 7

    @pytest.mark.asyncio
    async def test_uses_injected_activity_log(self):
        """An injected log shall be used even while it is still empty."""
        log = ActivityLog(capacity=5)
        orchestrator = ExtractionOrchestrator(
            AdapterCatalog([FixtureAdapter()]), activity_log=log
        )

        await orchestrator.handle(ScrapeRequest("test-fixture", "json"))

        assert orchestrator.activity_log is log
        assert len(log) == 1
