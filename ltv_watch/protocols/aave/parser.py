"""Pure functions turning Aave V3 account data into positions: no I/O."""
from __future__ import annotations

import math
from typing import Sequence

from ...models import LendingProtocol, Market, Position
from .abi import AccountData, UserReserve

WAD = 10**18
# V3 markets quote base amounts in USD with 8 decimals
BASE_CURRENCY_UNIT = 10**8


def calc_ltv(total_debt_base: int, total_collateral_base: int) -> float:
    """Current LTV in percent, truncated to basis points."""
    if total_collateral_base <= 0:
        return 0.0
    return (total_debt_base * 10_000 // total_collateral_base) / 100


def calc_liquidation_ltv(current_liquidation_threshold: int) -> float:
    """The pool reports the liquidation threshold in basis points."""
    return current_liquidation_threshold / 100


def health_factor_from_wad(raw: int) -> float:
    return raw / WAD


def is_valid_health_factor(value: float) -> bool:
    return math.isfinite(value) and value > 0


def market_label(
    network_label: str, asset: str, markets_by_asset: dict[str, Market]
) -> str:
    """``"Aave V3 Base USDC"``, or the network label alone when the asset is unknown."""
    market = markets_by_asset.get(asset.lower())
    if market is None:
        return network_label
    return f"{network_label} {market.name}"


def build_positions(
    network_key: str,
    network_label: str,
    account: AccountData,
    user_reserves: Sequence[UserReserve],
    markets: Sequence[Market],
) -> list[Position]:
    """One position per reserve carrying variable debt.

    The network is skipped entirely when there is no debt or no collateral,
    and when the reported health factor is not a finite positive number.
    """
    if account.total_debt_base == 0 or account.total_collateral_base == 0:
        return []

    health_factor = health_factor_from_wad(account.health_factor)
    if not is_valid_health_factor(health_factor):
        return []

    ltv = calc_ltv(account.total_debt_base, account.total_collateral_base)
    liquidation_ltv = calc_liquidation_ltv(account.current_liquidation_threshold)
    if ltv <= 0 or liquidation_ltv <= 0:
        return []

    markets_by_asset = {market.id.lower(): market for market in markets}
    borrowed = account.total_debt_base / BASE_CURRENCY_UNIT
    deposited = account.total_collateral_base / BASE_CURRENCY_UNIT

    positions: list[Position] = []
    for reserve in user_reserves:
        if reserve.scaled_variable_debt <= 0:
            continue
        positions.append(
            Position(
                market=market_label(network_label, reserve.underlying_asset, markets_by_asset),
                ltv=round(ltv, 2),
                liquidation_ltv=round(liquidation_ltv, 2),
                health_factor=round(health_factor, 2),
                protocol=LendingProtocol.AAVE,
                network=network_key,
                borrowed=borrowed,
                deposited=deposited,
                net_value=deposited - borrowed,
            )
        )
    return positions
