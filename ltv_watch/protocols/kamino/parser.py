"""Pure parsing functions for Kamino API payloads — no I/O."""
from __future__ import annotations

import math
from typing import Any

from ...models import LendingProtocol, Market, Position


def to_float(value: Any) -> float:
    """Convert an API number (often a decimal string) to float; NaN if unparseable."""
    if value is None:
        return math.nan
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def parse_market(raw: dict[str, Any]) -> Market | None:
    """Parse one entry of the market listing; ``None`` when it has no address."""
    market_id = raw.get("lendingMarket") or raw.get("address") or ""
    if not market_id:
        return None
    name = raw.get("name") or market_id
    return Market(id=market_id, name=name, protocol=LendingProtocol.KAMINO)


def parse_markets(raw_markets: list[dict[str, Any]]) -> list[Market]:
    markets: list[Market] = []
    for raw in raw_markets:
        market = parse_market(raw)
        if market is not None:
            markets.append(market)
    return markets


def calc_health_factor(loan_to_value: float, liquidation_ltv: float) -> float:
    """Health factor = liquidation LTV / current LTV (higher is safer).

    Both inputs are fractions; returns NaN when the current LTV is not positive.
    """
    if loan_to_value <= 0:
        return math.nan
    return liquidation_ltv / loan_to_value


def parse_obligation(raw: dict[str, Any], market_name: str) -> Position | None:
    """Turn one obligation into a Position.

    Returns ``None`` for obligations without debt and for garbage values
    (non-finite or non-positive ratios) served while the indexer lags.
    """
    stats = raw.get("refreshedStats") or {}

    total_borrow = to_float(stats.get("userTotalBorrow"))
    if not math.isfinite(total_borrow) or total_borrow <= 0:
        return None

    loan_to_value = to_float(stats.get("loanToValue"))
    liquidation_ltv = to_float(stats.get("liquidationLtv"))
    if not (math.isfinite(loan_to_value) and math.isfinite(liquidation_ltv)):
        return None
    if loan_to_value <= 0 or liquidation_ltv <= 0:
        return None

    health_factor = calc_health_factor(loan_to_value, liquidation_ltv)
    if not math.isfinite(health_factor) or health_factor <= 0:
        return None

    # dust debt can round down to 0.00%
    ltv_pct = round(loan_to_value * 100, 2)
    if ltv_pct <= 0:
        return None

    deposited = to_float(stats.get("userTotalDeposit"))
    net_value = to_float(stats.get("netAccountValue"))

    return Position(
        market=market_name,
        ltv=ltv_pct,
        liquidation_ltv=round(liquidation_ltv * 100, 2),
        health_factor=round(health_factor, 2),
        protocol=LendingProtocol.KAMINO,
        borrowed=total_borrow,
        deposited=deposited if math.isfinite(deposited) else None,
        net_value=net_value if math.isfinite(net_value) else None,
        tag=str(raw.get("humanTag") or ""),
    )


def parse_obligations(raw_obligations: list[dict[str, Any]], market_name: str) -> list[Position]:
    positions: list[Position] = []
    for raw in raw_obligations:
        position = parse_obligation(raw, market_name)
        if position is not None:
            positions.append(position)
    return positions
