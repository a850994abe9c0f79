"""Aave V3 protocol adapter: reads account data on each supported network."""
from __future__ import annotations

import asyncio
import functools
import logging
from typing import Sequence

from ...config import AaveNetworkConfig
from ...errors import ScanError
from ...interfaces.chain import EvmCaller, EvmChainClient
from ...interfaces.protocol_adapter import ProgressCallback
from ...models import AaveWallet, LendingProtocol, Market, Position, WalletSubscription
from ...services.catalog import MarketCatalog
from ..progress import report_progress
from . import abi, parser
from .abi import AccountData, UserReserve

logger = logging.getLogger(__name__)


def catalog_key(network_key: str) -> str:
    return f"aave:{network_key}"


class AaveAdapter:
    """Find Aave V3 borrow positions on every configured EVM network.

    Each network is scanned independently: a failure on one (including every
    RPC endpoint being down) never hides the positions found on the others.
    """

    def __init__(
        self,
        clients: dict[str, EvmChainClient],
        networks: dict[str, AaveNetworkConfig],
        catalog: MarketCatalog,
        max_concurrent_requests: int = 8,
    ) -> None:
        self._clients = clients
        self._networks = networks
        self._catalog = catalog
        self._max_concurrent = max_concurrent_requests
        for key in networks:
            catalog.register(
                catalog_key(key),
                LendingProtocol.AAVE,
                functools.partial(self.fetch_markets, key),
            )

    @property
    def protocol(self) -> LendingProtocol:
        return LendingProtocol.AAVE

    def catalog_keys(self) -> tuple[str, ...]:
        return tuple(catalog_key(key) for key in self._networks)

    # ------------------------------------------------------------------
    # Market catalog source
    # ------------------------------------------------------------------

    async def fetch_markets(self, network_key: str) -> list[Market]:
        """List the network's reserves with their symbols (catalog source)."""
        contracts = self._networks[network_key].contracts
        pool = contracts["pool"]

        async def read(call: EvmCaller) -> list[Market]:
            assets = abi.decode_reserves_list(
                await call(pool, abi.encode_reserves_list())
            )
            semaphore = asyncio.Semaphore(self._max_concurrent)

            async def token(asset: str) -> Market:
                async with semaphore:
                    symbol, decimals = await asyncio.gather(
                        call(asset, abi.ERC20_SYMBOL), call(asset, abi.ERC20_DECIMALS)
                    )
                return Market(
                    id=asset,
                    name=abi.decode_symbol(symbol),
                    protocol=LendingProtocol.AAVE,
                    network=network_key,
                    decimals=abi.decode_decimals(decimals),
                )

            # gather keeps reserve order
            return list(await asyncio.gather(*(token(asset) for asset in assets)))

        return await self._clients[network_key].call_with_fallback(read)

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    async def scan_network(
        self, network_key: str, wallet_address: str
    ) -> list[Position]:
        """Read one network's aggregate account data and debt-bearing reserves."""
        network = self._networks[network_key]
        contracts = network.contracts

        async def read(call: EvmCaller) -> tuple[AccountData, list[UserReserve]]:
            account = abi.decode_user_account_data(
                await call(contracts["pool"], abi.encode_user_account_data(wallet_address))
            )
            reserves = abi.decode_user_reserves_data(
                await call(
                    contracts["ui_pool_data_provider"],
                    abi.encode_user_reserves_data(
                        contracts["pool_addresses_provider"], wallet_address
                    ),
                ),
                network.user_reserve_layout,
            )
            return account, reserves

        account, reserves = await self._clients[network_key].call_with_fallback(read)

        # Missing markets only degrade the labels.
        markets = await self._catalog.get_or_fetch(catalog_key(network_key))

        positions = parser.build_positions(
            network_key, network.label, account, reserves, markets
        )
        logger.debug(
            "%s: %d positions for %s", network.label, len(positions), wallet_address
        )
        return positions

    async def _scan_networks(
        self,
        wallet_address: str,
        network_keys: Sequence[str],
        progress: ProgressCallback | None = None,
    ) -> list[Position]:
        positions: list[Position] = []
        failures: list[str] = []
        total = len(network_keys)

        for index, key in enumerate(network_keys, start=1):
            try:
                positions.extend(await self.scan_network(key, wallet_address))
            except Exception as e:
                failures.append(key)
                logger.warning(
                    "Aave scan failed on %s for %s: %s", key, wallet_address, e
                )
            await report_progress(progress, index, total)

        if total and len(failures) == total:
            raise ScanError(
                f"Aave scan failed on every network ({', '.join(failures)})"
            )
        return positions

    async def full_scan(
        self, wallet_address: str, progress: ProgressCallback | None = None
    ) -> list[Position]:
        """Scan every configured network."""
        if not self._networks:
            raise ScanError("No Aave networks configured")
        return await self._scan_networks(wallet_address, list(self._networks), progress)

    async def targeted_scan(
        self, wallet_address: str, markets: Sequence[str]
    ) -> list[Position]:
        """Scan only the given network keys."""
        if not markets:
            return []
        keys = []
        for key in markets:
            if key in self._networks:
                keys.append(key)
            else:
                logger.warning("Unknown Aave network '%s' skipped", key)
        if not keys:
            raise ScanError("None of the requested Aave networks are configured")
        return await self._scan_networks(wallet_address, keys)

    async def check(self, wallet: WalletSubscription) -> list[Position]:
        # Debt can show up on any network, so periodic checks cover them all.
        if not isinstance(wallet, AaveWallet):
            raise TypeError(f"Aave adapter cannot check {type(wallet).__name__}")
        return await self.full_scan(wallet.address)

    def subscribe(
        self, wallet_address: str, positions: Sequence[Position]
    ) -> AaveWallet:
        networks = tuple(dict.fromkeys(p.network for p in positions if p.network))
        return AaveWallet(address=wallet_address, networks=networks)
