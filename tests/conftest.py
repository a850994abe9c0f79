"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Sequence

import pytest

from ltv_watch.config import (
    AaveConfig,
    AaveNetworkConfig,
    AppConfig,
    KaminoConfig,
    MonitorConfig,
    StorageConfig,
    ThresholdsConfig,
)
from ltv_watch.errors import ScanError
from ltv_watch.models import (
    AaveWallet,
    KaminoWallet,
    LendingProtocol,
    Position,
    ThresholdSettings,
    WalletSubscription,
)
from ltv_watch.services.catalog import MarketCatalog
from ltv_watch.services.risk import RiskEvaluator

KAMINO_WALLET = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"
AAVE_WALLET = "0x1111111111111111111111111111111111111111"


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_thresholds() -> ThresholdsConfig:
    return ThresholdsConfig(
        kamino=ThresholdSettings(warning=1.5, danger=1.3),
        aave=ThresholdSettings(warning=1.4, danger=1.2),
    )


@pytest.fixture()
def sample_network_config() -> AaveNetworkConfig:
    return AaveNetworkConfig(
        label="Aave V3 Base",
        rpc_endpoints=("https://rpc1.example.com", "https://rpc2.example.com"),
        rpc_timeout=5,
        contracts={
            "pool": "0xA238Dd80C259a72e81d7e4664a9801593F98d1c5",
            "pool_addresses_provider": "0xe20fCBdBfFC4Dd138cE8b2E6FBb6CB49777ad64D",
            "ui_pool_data_provider": "0x174446a6741300cD2E7C1b1A636Fee99c8F83502",
        },
    )


@pytest.fixture()
def sample_app_config(
    sample_thresholds: ThresholdsConfig,
    sample_network_config: AaveNetworkConfig,
    tmp_path: Path,
) -> AppConfig:
    return AppConfig(
        monitor=MonitorConfig(check_interval_minutes=5, startup_delay_seconds=0),
        thresholds=sample_thresholds,
        kamino=KaminoConfig(api_url="https://kamino.example.com"),
        aave=AaveConfig(networks={"base": sample_network_config}),
        storage=StorageConfig(path=str(tmp_path / "users.json")),
    )


@pytest.fixture()
def evaluator(sample_thresholds: ThresholdsConfig) -> RiskEvaluator:
    return RiskEvaluator(sample_thresholds)


@pytest.fixture()
def catalog() -> MarketCatalog:
    return MarketCatalog()


# ---------------------------------------------------------------------------
# Model fixtures
# ---------------------------------------------------------------------------


def make_position(
    market: str = "Main Market",
    health_factor: float = 1.33,
    protocol: LendingProtocol = LendingProtocol.KAMINO,
    ltv: float = 60.0,
    liquidation_ltv: float = 80.0,
    network: str = "",
) -> Position:
    return Position(
        market=market,
        ltv=ltv,
        liquidation_ltv=liquidation_ltv,
        health_factor=health_factor,
        protocol=protocol,
        network=network,
    )


@pytest.fixture()
def sample_position() -> Position:
    return make_position()


class FakeScanner:
    """In-memory scanner returning canned positions per wallet address."""

    def __init__(
        self,
        protocol: LendingProtocol,
        positions: dict[str, list[Position]] | None = None,
        failing: set[str] | None = None,
    ) -> None:
        self._protocol = protocol
        self.positions = positions or {}
        self.failing = failing or set()
        self.full_scans: list[str] = []
        self.checks: list[WalletSubscription] = []

    @property
    def protocol(self) -> LendingProtocol:
        return self._protocol

    def catalog_keys(self) -> tuple[str, ...]:
        return (self._protocol.value,)

    def _result(self, address: str) -> list[Position]:
        if address in self.failing:
            raise ScanError(f"scan failed for {address}")
        return list(self.positions.get(address, []))

    async def full_scan(self, wallet_address, progress=None):
        self.full_scans.append(wallet_address)
        if progress is not None:
            progress(1, 1)
        return self._result(wallet_address)

    async def targeted_scan(self, wallet_address, markets: Sequence[str]):
        return self._result(wallet_address) if markets else []

    async def check(self, wallet):
        self.checks.append(wallet)
        return self._result(wallet.address)

    def subscribe(self, wallet_address, positions):
        if self._protocol is LendingProtocol.KAMINO:
            return KaminoWallet(
                address=wallet_address,
                markets=tuple(dict.fromkeys(p.market for p in positions)),
            )
        return AaveWallet(
            address=wallet_address,
            networks=tuple(dict.fromkeys(p.network for p in positions if p.network)),
        )


class MemoryUserStore:
    """Dict-backed user store."""

    def __init__(self) -> None:
        self.records = {}

    async def get(self, chat_id):
        return self.records.get(chat_id)

    async def set(self, record):
        self.records[record.chat_id] = record

    async def delete(self, chat_id):
        self.records.pop(chat_id, None)

    async def list_ids(self):
        return list(self.records)


@pytest.fixture()
def memory_store() -> MemoryUserStore:
    return MemoryUserStore()


@pytest.fixture()
def position_factory():
    return make_position


@pytest.fixture()
def scanner_factory():
    return FakeScanner


@pytest.fixture()
def wallet_addresses() -> dict[LendingProtocol, str]:
    return {LendingProtocol.KAMINO: KAMINO_WALLET, LendingProtocol.AAVE: AAVE_WALLET}


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent("""\
    monitor:
      check_interval_minutes: 5
      market_refresh_interval_minutes: 15
      notify_policy: cooldown
      notify_cooldown_minutes: 30
    thresholds:
      kamino: {warning: 1.6, danger: 1.2}
      aave: {warning: 1.4}
    kamino:
      api_url: "https://kamino.example.com/"
      max_concurrent_requests: 2
    aave:
      networks:
        base:
          label: "Aave V3 Base"
          rpc_endpoints: ["https://rpc.example.com", "${TEST_BASE_RPC}"]
          rpc_timeout: 10
          contracts:
            pool: "0xA238Dd80C259a72e81d7e4664a9801593F98d1c5"
            pool_addresses_provider: "0xe20fCBdBfFC4Dd138cE8b2E6FBb6CB49777ad64D"
            ui_pool_data_provider: "0x174446a6741300cD2E7C1b1A636Fee99c8F83502"
    storage:
      path: "data/test-users.json"
    notifications:
      telegram:
        enabled: true
        bot_token: "tok1"
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file


# ---------------------------------------------------------------------------
# Sample API data
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_obligation() -> dict:
    return {
        "obligationAddress": "ob1",
        "humanTag": "Multiply",
        "refreshedStats": {
            "loanToValue": "0.60",
            "liquidationLtv": "0.80",
            "userTotalBorrow": "100",
            "userTotalDeposit": "166.67",
            "netAccountValue": "66.67",
        },
    }


@pytest.fixture()
def sample_markets_payload() -> list[dict]:
    return [
        {"lendingMarket": "mkt1", "name": "Main Market"},
        {"lendingMarket": "mkt2", "name": "JLP Market"},
        {"lendingMarket": "mkt3", "name": "Altcoins Market"},
    ]
