"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .models import LendingProtocol, ThresholdSettings

logger = logging.getLogger(__name__)

NOTIFY_EVERY_CYCLE = "every_cycle"
NOTIFY_COOLDOWN = "cooldown"
_NOTIFY_POLICIES = (NOTIFY_EVERY_CYCLE, NOTIFY_COOLDOWN)

_AAVE_CONTRACTS = ("pool", "pool_addresses_provider", "ui_pool_data_provider")
_USER_RESERVE_LAYOUTS = ("legacy", "v3.2")

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MonitorConfig:
    check_interval_minutes: int = 10
    market_refresh_interval_minutes: int = 10
    startup_delay_seconds: int = 5
    notify_policy: str = NOTIFY_EVERY_CYCLE
    notify_cooldown_minutes: int = 60


@dataclass(frozen=True)
class ThresholdsConfig:
    kamino: ThresholdSettings = field(default_factory=ThresholdSettings)
    aave: ThresholdSettings = field(default_factory=ThresholdSettings)

    def for_protocol(self, protocol: LendingProtocol) -> ThresholdSettings:
        if protocol is LendingProtocol.KAMINO:
            return self.kamino
        return self.aave


@dataclass(frozen=True)
class KaminoConfig:
    api_url: str = "https://api.kamino.finance"
    env: str = "mainnet-beta"
    request_timeout: int = 15
    max_concurrent_requests: int = 4


@dataclass(frozen=True)
class AaveNetworkConfig:
    label: str = ""
    rpc_endpoints: tuple[str, ...] = ()
    rpc_timeout: int = 20
    contracts: dict[str, str] = field(default_factory=dict)
    # struct layout returned by the configured ui_pool_data_provider
    user_reserve_layout: str = "legacy"


@dataclass(frozen=True)
class AaveConfig:
    networks: dict[str, AaveNetworkConfig] = field(default_factory=dict)


@dataclass(frozen=True)
class StorageConfig:
    path: str = "data/users.json"


@dataclass(frozen=True)
class TelegramConfig:
    enabled: bool = False
    bot_token: str = ""
    api_url: str = "https://api.telegram.org"


@dataclass(frozen=True)
class NotificationsConfig:
    telegram: TelegramConfig = field(default_factory=TelegramConfig)


@dataclass(frozen=True)
class AppConfig:
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    thresholds: ThresholdsConfig = field(default_factory=ThresholdsConfig)
    kamino: KaminoConfig = field(default_factory=KaminoConfig)
    aave: AaveConfig = field(default_factory=AaveConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_monitor(raw: dict[str, Any]) -> MonitorConfig:
    return MonitorConfig(
        check_interval_minutes=int(raw.get("check_interval_minutes", 10)),
        market_refresh_interval_minutes=int(
            raw.get("market_refresh_interval_minutes", 10)
        ),
        startup_delay_seconds=int(raw.get("startup_delay_seconds", 5)),
        notify_policy=str(raw.get("notify_policy", NOTIFY_EVERY_CYCLE)),
        notify_cooldown_minutes=int(raw.get("notify_cooldown_minutes", 60)),
    )


def _build_threshold_pair(raw: dict[str, Any]) -> ThresholdSettings:
    return ThresholdSettings(
        warning=float(raw.get("warning", 1.5)),
        danger=float(raw.get("danger", 1.3)),
    )


def _build_thresholds(raw: dict[str, Any]) -> ThresholdsConfig:
    return ThresholdsConfig(
        kamino=_build_threshold_pair(raw.get("kamino", {})),
        aave=_build_threshold_pair(raw.get("aave", {})),
    )


def _build_kamino(raw: dict[str, Any]) -> KaminoConfig:
    return KaminoConfig(
        api_url=str(raw.get("api_url", KaminoConfig.api_url)).rstrip("/"),
        env=raw.get("env", KaminoConfig.env),
        request_timeout=int(raw.get("request_timeout", 15)),
        max_concurrent_requests=int(raw.get("max_concurrent_requests", 4)),
    )


def _build_aave(raw: dict[str, Any]) -> AaveConfig:
    networks: dict[str, AaveNetworkConfig] = {}
    for key, cfg in raw.get("networks", {}).items():
        networks[key] = AaveNetworkConfig(
            label=cfg.get("label", "") or f"Aave V3 {key}",
            rpc_endpoints=tuple(cfg.get("rpc_endpoints", [])),
            rpc_timeout=int(cfg.get("rpc_timeout", 20)),
            contracts=dict(cfg.get("contracts", {})),
            user_reserve_layout=str(
                cfg.get("user_reserve_layout", AaveNetworkConfig.user_reserve_layout)
            ),
        )
    return AaveConfig(networks=networks)


def _build_storage(raw: dict[str, Any]) -> StorageConfig:
    return StorageConfig(path=raw.get("path", StorageConfig.path))


def _build_notifications(raw: dict[str, Any]) -> NotificationsConfig:
    tg = raw.get("telegram", {})
    return NotificationsConfig(
        telegram=TelegramConfig(
            enabled=bool(tg.get("enabled", False)),
            bot_token=tg.get("bot_token", ""),
            api_url=str(tg.get("api_url", TelegramConfig.api_url)).rstrip("/"),
        ),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (two levels up from this file).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        monitor=_build_monitor(raw.get("monitor", {})),
        thresholds=_build_thresholds(raw.get("thresholds", {})),
        kamino=_build_kamino(raw.get("kamino", {})),
        aave=_build_aave(raw.get("aave", {})),
        storage=_build_storage(raw.get("storage", {})),
        notifications=_build_notifications(raw.get("notifications", {})),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    monitor = cfg.monitor
    if monitor.check_interval_minutes <= 0:
        raise ValueError("monitor.check_interval_minutes must be positive")
    if monitor.market_refresh_interval_minutes <= 0:
        raise ValueError("monitor.market_refresh_interval_minutes must be positive")
    if monitor.notify_policy not in _NOTIFY_POLICIES:
        raise ValueError(
            f"Unknown notify_policy '{monitor.notify_policy}' "
            f"(expected one of {', '.join(_NOTIFY_POLICIES)})"
        )

    for protocol in LendingProtocol:
        pair = cfg.thresholds.for_protocol(protocol)
        if pair.warning <= 0 or pair.danger <= 0:
            raise ValueError(f"{protocol.value} thresholds must be positive")

    if cfg.kamino.max_concurrent_requests <= 0:
        raise ValueError("kamino.max_concurrent_requests must be positive")

    for key, network in cfg.aave.networks.items():
        if not network.rpc_endpoints:
            raise ValueError(f"Aave network '{key}' has no rpc_endpoints")
        for contract in _AAVE_CONTRACTS:
            if not network.contracts.get(contract):
                raise ValueError(
                    f"Aave network '{key}' is missing contract address '{contract}'"
                )
        if network.user_reserve_layout not in _USER_RESERVE_LAYOUTS:
            raise ValueError(
                f"Aave network '{key}' has unknown user_reserve_layout "
                f"'{network.user_reserve_layout}' "
                f"(expected one of {', '.join(_USER_RESERVE_LAYOUTS)})"
            )

    telegram = cfg.notifications.telegram
    if telegram.enabled and not telegram.bot_token:
        raise ValueError("Telegram is enabled but no bot_token is configured")
