"""Composition root: wires config into clients, scanners and services."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from .chains.evm import EvmClient
from .config import AppConfig
from .interfaces.notifier import Notifier
from .interfaces.protocol_adapter import ProtocolScanner
from .interfaces.user_store import UserStore
from .models import LendingProtocol
from .notifications import ConsoleNotifier, TelegramNotifier
from .protocols.aave import AaveAdapter
from .protocols.kamino import KaminoAdapter, KaminoApiClient
from .services import MarketCatalog, Monitor, RiskEvaluator, WalletService
from .storage import JsonUserStore

logger = logging.getLogger(__name__)


@dataclass
class App:
    config: AppConfig
    catalog: MarketCatalog
    scanners: dict[LendingProtocol, ProtocolScanner]
    store: UserStore
    notifier: Notifier
    evaluator: RiskEvaluator
    wallets: WalletService
    monitor: Monitor


def build_notifier(config: AppConfig) -> Notifier:
    telegram = config.notifications.telegram
    if telegram.enabled:
        return TelegramNotifier(telegram)
    logger.warning("Telegram is disabled; alerts will only be logged")
    return ConsoleNotifier()


def build_app(config: AppConfig) -> App:
    catalog = MarketCatalog()

    kamino = KaminoAdapter(
        KaminoApiClient(config.kamino),
        catalog,
        max_concurrent_requests=config.kamino.max_concurrent_requests,
    )
    evm_clients = {
        key: EvmClient(network.label, network.rpc_endpoints, network.rpc_timeout)
        for key, network in config.aave.networks.items()
    }
    aave = AaveAdapter(evm_clients, config.aave.networks, catalog)
    scanners: dict[LendingProtocol, ProtocolScanner] = {
        LendingProtocol.KAMINO: kamino,
        LendingProtocol.AAVE: aave,
    }

    store = JsonUserStore(config.storage.path)
    notifier = build_notifier(config)
    evaluator = RiskEvaluator(config.thresholds)

    return App(
        config=config,
        catalog=catalog,
        scanners=scanners,
        store=store,
        notifier=notifier,
        evaluator=evaluator,
        wallets=WalletService(store, scanners, catalog, evaluator),
        monitor=Monitor(config.monitor, store, scanners, catalog, evaluator, notifier),
    )
