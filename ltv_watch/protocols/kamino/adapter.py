"""Kamino protocol adapter — scans lending markets for a wallet's obligations."""
from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from ...errors import ScanError
from ...interfaces.protocol_adapter import ProgressCallback
from ...models import KaminoWallet, LendingProtocol, Market, Position, WalletSubscription
from ...services.catalog import MarketCatalog
from ..progress import report_progress
from . import parser
from .api import KaminoApiClient

logger = logging.getLogger(__name__)

CATALOG_KEY = "kamino"


class KaminoAdapter:
    """Find Kamino borrow positions across every lending market."""

    def __init__(
        self,
        api: KaminoApiClient,
        catalog: MarketCatalog,
        max_concurrent_requests: int = 4,
    ) -> None:
        self._api = api
        self._catalog = catalog
        self._max_concurrent = max_concurrent_requests
        catalog.register(CATALOG_KEY, LendingProtocol.KAMINO, self.fetch_markets)

    @property
    def protocol(self) -> LendingProtocol:
        return LendingProtocol.KAMINO

    def catalog_keys(self) -> tuple[str, ...]:
        return (CATALOG_KEY,)

    async def fetch_markets(self) -> list[Market]:
        """Fetch the full market listing (catalog source)."""
        return parser.parse_markets(await self._api.fetch_markets())

    async def _query_market(
        self, market: Market, wallet_address: str
    ) -> list[Position]:
        raw = await self._api.fetch_obligations(market.id, wallet_address)
        return parser.parse_obligations(raw, market.name)

    async def _scan_markets(
        self,
        wallet_address: str,
        markets: Sequence[Market],
        progress: ProgressCallback | None = None,
    ) -> list[Position]:
        """Query each market; failed markets contribute nothing.

        Raises:
            ScanError: every market query failed.
        """
        total = len(markets)
        semaphore = asyncio.Semaphore(self._max_concurrent)
        completed = 0

        async def run(market: Market) -> list[Position] | None:
            nonlocal completed
            async with semaphore:
                try:
                    result: list[Position] | None = await self._query_market(
                        market, wallet_address
                    )
                except Exception as e:
                    logger.warning(
                        "Kamino market %s (%s) failed for %s: %s",
                        market.name, market.id, wallet_address, e,
                    )
                    result = None
            completed += 1
            await report_progress(progress, completed, total)
            return result

        results = await asyncio.gather(*(run(market) for market in markets))

        failures = sum(1 for r in results if r is None)
        if total and failures == total:
            raise ScanError(f"All {total} Kamino market queries failed")
        if failures:
            logger.warning(
                "Kamino scan for %s: %d of %d markets failed", wallet_address, failures, total
            )

        positions: list[Position] = []
        for result in results:
            if result:
                positions.extend(result)
        return positions

    async def full_scan(
        self, wallet_address: str, progress: ProgressCallback | None = None
    ) -> list[Position]:
        """Query every known market for the wallet's obligations."""
        markets = await self._catalog.get_or_fetch(CATALOG_KEY)
        if not markets:
            raise ScanError("Kamino markets are not loaded")

        logger.info(
            "Scanning %d Kamino markets for %s", len(markets), wallet_address
        )
        positions = await self._scan_markets(wallet_address, markets, progress)
        logger.info(
            "Kamino scan for %s found %d positions", wallet_address, len(positions)
        )
        return positions

    async def targeted_scan(
        self, wallet_address: str, markets: Sequence[str]
    ) -> list[Position]:
        """Query only the named markets the wallet was last seen active in."""
        if not markets:
            return []

        known = await self._catalog.get_or_fetch(CATALOG_KEY)
        if not known:
            raise ScanError("Kamino markets are not loaded")

        by_name = {market.name: market for market in known}
        selected: list[Market] = []
        for name in markets:
            market = by_name.get(name)
            if market is None:
                logger.warning("Cached Kamino market '%s' is no longer listed", name)
                continue
            selected.append(market)

        if not selected:
            raise ScanError("None of the cached Kamino markets are listed anymore")
        return await self._scan_markets(wallet_address, selected)

    async def check(self, wallet: WalletSubscription) -> list[Position]:
        if not isinstance(wallet, KaminoWallet):
            raise TypeError(f"Kamino adapter cannot check {type(wallet).__name__}")
        return await self.targeted_scan(wallet.address, wallet.markets)

    def subscribe(
        self, wallet_address: str, positions: Sequence[Position]
    ) -> KaminoWallet:
        names = tuple(dict.fromkeys(p.market for p in positions))
        return KaminoWallet(address=wallet_address, markets=names)
