"""Source adapter implementations."""

from __future__ import annotations

from .base import SourceAdapter
from .bullish import BullishMarketsAdapter
from .epic_games import EpicGamesTopSellersAdapter
from .github import GitHubMostStarredAdapter
from .quickbooks import QuickBooksPricingAdapter
from .spotify import SpotifyMostFollowedAdapter
from .steam import SteamTopSellersAdapter
from .turing import TuringJobsAdapter

__all__ = [
    "BullishMarketsAdapter",
    "EpicGamesTopSellersAdapter",
    "GitHubMostStarredAdapter",
    "QuickBooksPricingAdapter",
    "SourceAdapter",
    "SpotifyMostFollowedAdapter",
    "SteamTopSellersAdapter",
    "TuringJobsAdapter",
]
