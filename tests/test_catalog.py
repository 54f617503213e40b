"""Tests for the adapter catalog."""

import pytest

from scrapify.adapters import SourceAdapter
from scrapify.catalog import AdapterCatalog, build_default_catalog
from scrapify.config import ScrapifyConfig
from tests.fakes import FixtureAdapter


class TestAdapterCatalog:
    """Tests for AdapterCatalog lookup and listing."""

    def test_lookup_returns_adapter_whose_descriptor_matches(self):
        """lookup(id) shall return an adapter whose describe().id equals id."""
        catalog = AdapterCatalog([FixtureAdapter("a"), FixtureAdapter("b")])

        for source_id in ("a", "b"):
            assert catalog.lookup(source_id).describe().id == source_id

    def test_lookup_unknown_returns_none(self):
        """lookup() of an unregistered id shall return None."""
        catalog = AdapterCatalog([FixtureAdapter("a")])

        assert catalog.lookup("missing") is None
        assert catalog.descriptor("missing") is None
        assert "missing" not in catalog

    def test_duplicate_ids_are_rejected(self):
        """Registering two adapters with the same id shall fail."""
        with pytest.raises(ValueError, match="Duplicate source id 'a'"):
            AdapterCatalog([FixtureAdapter("a"), FixtureAdapter("a")])

    def test_enabled_descriptors_in_registration_order(self):
        """enabled_descriptors() shall skip disabled sources and keep order."""
        catalog = AdapterCatalog(
            [
                FixtureAdapter("c"),
                FixtureAdapter("a", enabled=False),
                FixtureAdapter("b"),
            ]
        )

        assert [d.id for d in catalog.enabled_descriptors()] == ["c", "b"]
        assert catalog.ids() == ["c", "a", "b"]
        assert len(catalog) == 3


class TestDefaultCatalog:
    """Tests for the built-in catalog."""

    def test_registers_every_source(self):
        """The default catalog shall hold every built-in source."""
        catalog = build_default_catalog()

        assert set(catalog.ids()) == {
            "bullish-markets",
            "github-most-starred",
            "turing-remote-jobs",
            "quickbooks-pricing",
            "spotify-most-followed",
            "steam-top-sellers",
            "epic-games-top-sellers",
        }

    def test_every_adapter_satisfies_the_protocol(self):
        """Each built-in adapter shall satisfy SourceAdapter and describe its own id."""
        catalog = build_default_catalog()

        for entry in catalog:
            assert isinstance(entry.adapter, SourceAdapter)
            assert entry.adapter.describe() is entry.descriptor
            assert entry.adapter.supports_format(entry.descriptor.default_format)

    def test_config_reaches_browser_adapter(self):
        """Browser settings from config shall be passed to the browser adapter."""
        catalog = build_default_catalog(
            ScrapifyConfig(browser_settle_delay=0.5, browser_headless=False)
        )

        adapter = catalog.lookup("epic-games-top-sellers")
        assert adapter.settle_delay == 0.5
        assert adapter.headless is False
