"""Adapter catalog: source id to (adapter, descriptor).

The catalog is built once from a list of adapters and is read-only
afterwards. It is passed to the orchestrator explicitly, so tests can build
one from fake adapters.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from types import MappingProxyType
from typing import NamedTuple

from scrapify.adapters import (
    BullishMarketsAdapter,
    EpicGamesTopSellersAdapter,
    GitHubMostStarredAdapter,
    QuickBooksPricingAdapter,
    SourceAdapter,
    SpotifyMostFollowedAdapter,
    SteamTopSellersAdapter,
    TuringJobsAdapter,
)
from scrapify.config import ScrapifyConfig
from scrapify.data_types import SourceDescriptor

logger = logging.getLogger(__name__)


class CatalogEntry(NamedTuple):
    adapter: SourceAdapter
    descriptor: SourceDescriptor


class AdapterCatalog:
    """Immutable registry of source adapters keyed by descriptor id.

    Example::

        catalog = AdapterCatalog([GitHubMostStarredAdapter(), TuringJobsAdapter()])
        adapter = catalog.lookup("github-most-starred")
    """

    def __init__(self, adapters: Iterable[SourceAdapter]) -> None:
        """Register every adapter under its descriptor id.

        Args:
            adapters: The adapters to register, in listing order.

        Raises:
            ValueError: If two adapters share an id.
        """
        entries: dict[str, CatalogEntry] = {}
        for adapter in adapters:
            descriptor = adapter.describe()
            if descriptor.id in entries:
                raise ValueError(f"Duplicate source id '{descriptor.id}'")
            entries[descriptor.id] = CatalogEntry(adapter, descriptor)
        self._entries = MappingProxyType(entries)
        logger.debug(f"Catalog built with sources: {', '.join(entries)}")

    def lookup(self, source_id: str) -> SourceAdapter | None:
        """Return the adapter registered under ``source_id``, or None."""
        entry = self._entries.get(source_id)
        return entry.adapter if entry else None

    def descriptor(self, source_id: str) -> SourceDescriptor | None:
        """Return the descriptor registered under ``source_id``, or None."""
        entry = self._entries.get(source_id)
        return entry.descriptor if entry else None

    def ids(self) -> list[str]:
        return list(self._entries)

    def enabled_descriptors(self) -> list[SourceDescriptor]:
        """Descriptors of enabled sources, in registration order."""
        return [e.descriptor for e in self._entries.values() if e.descriptor.enabled]

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._entries

    def __iter__(self) -> Iterator[CatalogEntry]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)


AdapterFactory = Callable[[ScrapifyConfig], SourceAdapter]

DEFAULT_ADAPTERS: tuple[AdapterFactory, ...] = (
    lambda config: BullishMarketsAdapter(),
    lambda config: GitHubMostStarredAdapter(),
    lambda config: TuringJobsAdapter(),
    lambda config: QuickBooksPricingAdapter(),
    lambda config: SpotifyMostFollowedAdapter(),
    lambda config: SteamTopSellersAdapter(),
    lambda config: EpicGamesTopSellersAdapter(
        settle_delay=config.browser_settle_delay,
        headless=config.browser_headless,
    ),
)


def build_default_catalog(config: ScrapifyConfig | None = None) -> AdapterCatalog:
    """Instantiate every known adapter and build the catalog."""
    config = config or ScrapifyConfig()
    return AdapterCatalog(factory(config) for factory in DEFAULT_ADAPTERS)
