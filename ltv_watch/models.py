"""Data models — all frozen (immutable)."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union


class LendingProtocol(str, Enum):
    KAMINO = "kamino"
    AAVE = "aave"


class RiskTier(str, Enum):
    SAFE = "safe"
    WARNING = "warning"
    DANGER = "danger"


@dataclass(frozen=True)
class Market:
    """A lending venue as listed by the protocol's market source."""

    id: str
    name: str
    protocol: LendingProtocol
    network: str = ""
    decimals: int | None = None


@dataclass(frozen=True)
class Position:
    """One borrow exposure of a wallet in one market.

    ``ltv`` and ``liquidation_ltv`` are percentages and ``health_factor`` a
    ratio, all rounded to 2 decimals.
    """

    market: str
    ltv: float
    liquidation_ltv: float
    health_factor: float
    protocol: LendingProtocol
    network: str = ""
    borrowed: float | None = None
    deposited: float | None = None
    net_value: float | None = None
    tag: str = ""

    @property
    def ltv_display(self) -> str:
        return f"{self.ltv:.2f}"

    @property
    def liquidation_ltv_display(self) -> str:
        return f"{self.liquidation_ltv:.2f}"

    @property
    def health_factor_display(self) -> str:
        return f"{self.health_factor:.2f}"


@dataclass(frozen=True)
class ThresholdSettings:
    """Resolved Health-Factor cutoffs for one protocol."""

    warning: float = 1.5
    danger: float = 1.3


@dataclass(frozen=True)
class ThresholdOverride:
    """User-set cutoffs; ``None`` means "use the protocol default"."""

    warning: float | None = None
    danger: float | None = None


@dataclass(frozen=True)
class KaminoWallet:
    """Solana wallet watched on Kamino, with the market names it is active in."""

    address: str
    markets: tuple[str, ...] = ()

    @property
    def protocol(self) -> LendingProtocol:
        return LendingProtocol.KAMINO


@dataclass(frozen=True)
class AaveWallet:
    """EVM wallet watched on Aave, with the networks that showed debt."""

    address: str
    networks: tuple[str, ...] = ()

    @property
    def protocol(self) -> LendingProtocol:
        return LendingProtocol.AAVE


WalletSubscription = Union[KaminoWallet, AaveWallet]


@dataclass(frozen=True)
class UserRecord:
    """Everything stored for one chat identity."""

    chat_id: str
    wallets: tuple[WalletSubscription, ...] = ()
    thresholds: dict[LendingProtocol, ThresholdOverride] = field(default_factory=dict)

    def find_wallet(self, address: str) -> WalletSubscription | None:
        for wallet in self.wallets:
            if wallet.address == address:
                return wallet
        return None
