"""Risk tiers and status lines for positions."""
from __future__ import annotations

from ..config import ThresholdsConfig
from ..models import (
    LendingProtocol,
    Position,
    RiskTier,
    ThresholdOverride,
    ThresholdSettings,
    UserRecord,
)

TIER_MARKERS: dict[RiskTier, str] = {
    RiskTier.SAFE: "✅",
    RiskTier.WARNING: "⚠️",
    RiskTier.DANGER: "☠️",
}


def classify(health_factor: float, thresholds: ThresholdSettings) -> RiskTier:
    """Assign a tier; the danger cutoff is checked first and both are inclusive.

    Inverted settings (danger above warning) are applied as given, so every
    health factor at or below the danger cutoff is DANGER.
    """
    if health_factor <= thresholds.danger:
        return RiskTier.DANGER
    if health_factor <= thresholds.warning:
        return RiskTier.WARNING
    return RiskTier.SAFE


class RiskEvaluator:
    """Resolves per-user thresholds and renders positions with their tier."""

    def __init__(self, defaults: ThresholdsConfig) -> None:
        self._defaults = defaults

    def defaults(self, protocol: LendingProtocol) -> ThresholdSettings:
        return self._defaults.for_protocol(protocol)

    def resolve(
        self, user: UserRecord | None, protocol: LendingProtocol
    ) -> ThresholdSettings:
        """User override per side, else the protocol default."""
        default = self.defaults(protocol)
        override = (user.thresholds.get(protocol) if user else None) or ThresholdOverride()
        return ThresholdSettings(
            warning=override.warning if override.warning is not None else default.warning,
            danger=override.danger if override.danger is not None else default.danger,
        )

    @staticmethod
    def classify(position: Position, thresholds: ThresholdSettings) -> RiskTier:
        return classify(position.health_factor, thresholds)

    @staticmethod
    def render(position: Position, thresholds: ThresholdSettings) -> str:
        marker = TIER_MARKERS[classify(position.health_factor, thresholds)]
        return (
            f"{marker} {position.market}:\n"
            f"LTV: {position.ltv_display}%\n"
            f"Liquidation LTV: {position.liquidation_ltv_display}%\n"
            f"Health Factor: {position.health_factor_display}"
        )

    def render_all(
        self, positions: list[Position], thresholds: ThresholdSettings
    ) -> str:
        return "\n".join(self.render(p, thresholds) for p in positions)
