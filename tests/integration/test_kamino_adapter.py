"""Integration tests for the Kamino adapter: market fan-out with a mocked API."""
from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from ltv_watch.errors import KaminoApiError, ScanError
from ltv_watch.models import KaminoWallet, LendingProtocol
from ltv_watch.protocols.kamino import KaminoAdapter
from ltv_watch.services.catalog import MarketCatalog

WALLET = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"


def _obligation(ltv: str) -> dict:
    return {
        "refreshedStats": {
            "loanToValue": ltv,
            "liquidationLtv": "0.8",
            "userTotalBorrow": "10",
        }
    }


@pytest.fixture()
def api(sample_markets_payload) -> AsyncMock:
    api = AsyncMock()
    api.fetch_markets.return_value = sample_markets_payload
    api.fetch_obligations.return_value = []
    return api


@pytest.fixture()
def adapter(api: AsyncMock, catalog: MarketCatalog) -> KaminoAdapter:
    return KaminoAdapter(api, catalog, max_concurrent_requests=2)


class TestFullScan:
    @pytest.mark.asyncio
    async def test_registers_catalog_source(self, adapter: KaminoAdapter, catalog: MarketCatalog) -> None:
        assert catalog.keys(LendingProtocol.KAMINO) == ["kamino"]
        await catalog.refresh_all()
        assert [m.name for m in catalog.get("kamino")] == ["Main Market", "JLP Market", "Altcoins Market"]

    @pytest.mark.asyncio
    async def test_results_in_market_order(self, adapter: KaminoAdapter, api: AsyncMock) -> None:
        responses = {"mkt1": [_obligation("0.5")], "mkt2": [], "mkt3": [_obligation("0.4")]}
        api.fetch_obligations.side_effect = lambda market_id, wallet: responses[market_id]

        positions = await adapter.full_scan(WALLET)

        assert [p.market for p in positions] == ["Main Market", "Altcoins Market"]
        assert all(p.protocol is LendingProtocol.KAMINO for p in positions)

    @pytest.mark.asyncio
    async def test_partial_failures_are_isolated(self, adapter: KaminoAdapter, api: AsyncMock) -> None:
        def obligations(market_id: str, wallet: str) -> list:
            if market_id == "mkt2":
                raise KaminoApiError("HTTP 500", status=500)
            return [_obligation("0.5")]

        api.fetch_obligations.side_effect = obligations

        positions = await adapter.full_scan(WALLET)

        assert [p.market for p in positions] == ["Main Market", "Altcoins Market"]

    @pytest.mark.asyncio
    async def test_every_market_failing_raises(self, adapter: KaminoAdapter, api: AsyncMock) -> None:
        api.fetch_obligations.side_effect = ConnectionError("down")

        with pytest.raises(ScanError):
            await adapter.full_scan(WALLET)

    @pytest.mark.asyncio
    async def test_progress_reported_per_market(self, adapter: KaminoAdapter) -> None:
        seen: list[tuple[int, int]] = []

        await adapter.full_scan(WALLET, lambda current, total: seen.append((current, total)))

        assert seen == [(1, 3), (2, 3), (3, 3)]

    @pytest.mark.asyncio
    async def test_async_progress_callback(self, adapter: KaminoAdapter) -> None:
        progress = AsyncMock()
        await adapter.full_scan(WALLET, progress)
        assert progress.await_count == 3

    @pytest.mark.asyncio
    async def test_no_markets_raises(self, adapter: KaminoAdapter, api: AsyncMock) -> None:
        api.fetch_markets.return_value = []
        with pytest.raises(ScanError, match="not loaded"):
            await adapter.full_scan(WALLET)


class TestTargetedScan:
    @pytest.mark.asyncio
    async def test_empty_list_makes_no_query(self, adapter: KaminoAdapter, api: AsyncMock) -> None:
        assert await adapter.targeted_scan(WALLET, []) == []
        api.fetch_obligations.assert_not_called()
        api.fetch_markets.assert_not_called()

    @pytest.mark.asyncio
    async def test_queries_named_markets_only(self, adapter: KaminoAdapter, api: AsyncMock) -> None:
        api.fetch_obligations.return_value = [_obligation("0.5")]

        positions = await adapter.targeted_scan(WALLET, ["JLP Market", "Gone Market"])

        assert [p.market for p in positions] == ["JLP Market"]
        api.fetch_obligations.assert_awaited_once_with("mkt2", WALLET)

    @pytest.mark.asyncio
    async def test_no_listed_market_raises(self, adapter: KaminoAdapter) -> None:
        with pytest.raises(ScanError):
            await adapter.targeted_scan(WALLET, ["Gone Market"])

    @pytest.mark.asyncio
    async def test_check_uses_cached_markets(self, adapter: KaminoAdapter, api: AsyncMock) -> None:
        api.fetch_obligations.return_value = [_obligation("0.5")]
        wallet = KaminoWallet(address=WALLET, markets=("Main Market",))

        positions = await adapter.check(wallet)

        assert len(positions) == 1
        api.fetch_obligations.assert_awaited_once_with("mkt1", WALLET)


class TestSubscribe:
    def test_unique_market_names(self, adapter: KaminoAdapter, position_factory) -> None:
        wallet = adapter.subscribe(
            WALLET,
            [position_factory(market="A"), position_factory(market="B"), position_factory(market="A")],
        )
        assert wallet == KaminoWallet(address=WALLET, markets=("A", "B"))
