"""Market catalog: the last good market list per catalog key."""
from __future__ import annotations

import logging
from typing import Awaitable, Callable, Sequence

from ..models import LendingProtocol, Market

logger = logging.getLogger(__name__)

MarketFetcher = Callable[[], Awaitable[Sequence[Market]]]


class MarketCatalog:
    """Holds the freshest known markets per key (``kamino``, ``aave:eth``, ...).

    Every refresh replaces a key's tuple wholesale, so readers never observe a
    partial list. A failed or empty fetch leaves the previous list in place.
    """

    def __init__(self) -> None:
        self._fetchers: dict[str, tuple[LendingProtocol, MarketFetcher]] = {}
        self._markets: dict[str, tuple[Market, ...]] = {}

    def register(
        self, key: str, protocol: LendingProtocol, fetcher: MarketFetcher
    ) -> None:
        self._fetchers[key] = (protocol, fetcher)

    def keys(self, protocol: LendingProtocol | None = None) -> list[str]:
        return [
            key
            for key, (proto, _) in self._fetchers.items()
            if protocol is None or proto is protocol
        ]

    def get(self, key: str) -> tuple[Market, ...]:
        """Return the cached markets without fetching."""
        return self._markets.get(key, ())

    async def refresh_key(self, key: str) -> bool:
        """Fetch one key's market list; return whether the cache was replaced."""
        if key not in self._fetchers:
            raise KeyError(f"No market source registered for '{key}'")
        _, fetcher = self._fetchers[key]

        try:
            markets = tuple(await fetcher())
        except Exception as e:
            logger.warning("Market refresh failed for %s: %s", key, e)
            return False

        if not markets:
            logger.warning("Market refresh for %s returned no markets; keeping cache", key)
            return False

        self._markets[key] = markets
        logger.info("Loaded %d markets for %s", len(markets), key)
        return True

    async def refresh(self, protocol: LendingProtocol) -> list[str]:
        """Refresh every key of a protocol independently.

        Returns:
            The keys that were refreshed successfully.
        """
        refreshed: list[str] = []
        for key in self.keys(protocol):
            if await self.refresh_key(key):
                refreshed.append(key)
        return refreshed

    async def refresh_all(self) -> list[str]:
        refreshed: list[str] = []
        for protocol in LendingProtocol:
            refreshed.extend(await self.refresh(protocol))
        return refreshed

    async def get_or_fetch(self, key: str) -> tuple[Market, ...]:
        """Return cached markets, fetching once when nothing is loaded yet."""
        markets = self.get(key)
        if markets:
            return markets
        logger.info("Markets for %s not loaded yet; fetching", key)
        await self.refresh_key(key)
        return self.get(key)
