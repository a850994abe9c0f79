"""Watch loop: periodic Health-Factor sweep over every stored wallet."""
from __future__ import annotations

import asyncio
import logging
import math
import time
from typing import Callable

from ..config import NOTIFY_COOLDOWN, MonitorConfig
from ..interfaces.notifier import Notifier
from ..interfaces.protocol_adapter import ProtocolScanner
from ..interfaces.user_store import UserStore
from ..models import KaminoWallet, LendingProtocol, UserRecord, WalletSubscription
from .catalog import MarketCatalog
from .messages import alert_message
from .risk import RiskEvaluator

logger = logging.getLogger(__name__)


class Monitor:
    """Sweeps every user's wallets and notifies when a Health Factor is low."""

    def __init__(
        self,
        config: MonitorConfig,
        store: UserStore,
        scanners: dict[LendingProtocol, ProtocolScanner],
        catalog: MarketCatalog,
        evaluator: RiskEvaluator,
        notifier: Notifier,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config
        self._store = store
        self._scanners = scanners
        self._catalog = catalog
        self._evaluator = evaluator
        self._notifier = notifier
        self._clock = clock
        # (chat_id, address) -> clock time of the last delivered alert
        self._last_alert: dict[tuple[str, str], float] = {}

    # ------------------------------------------------------------------
    # Notification policy
    # ------------------------------------------------------------------

    def _in_cooldown(self, key: tuple[str, str]) -> bool:
        if self._config.notify_policy != NOTIFY_COOLDOWN:
            return False
        last = self._last_alert.get(key)
        if last is None:
            return False
        return self._clock() - last < self._config.notify_cooldown_minutes * 60

    # ------------------------------------------------------------------
    # Sweep
    # ------------------------------------------------------------------

    async def check_wallet(self, user: UserRecord, wallet: WalletSubscription) -> bool:
        """Check one subscription; returns whether an alert was delivered."""
        if isinstance(wallet, KaminoWallet) and not wallet.markets:
            logger.debug("Skipping %s: no cached Kamino markets", wallet.address)
            return False

        protocol = wallet.protocol
        positions = await self._scanners[protocol].check(wallet)
        thresholds = self._evaluator.resolve(user, protocol)

        at_risk = [
            p for p in positions
            if math.isfinite(p.health_factor) and p.health_factor <= thresholds.warning
        ]
        if not at_risk:
            return False

        key = (user.chat_id, wallet.address)
        if self._in_cooldown(key):
            logger.info("Alert for %s suppressed (cooldown)", wallet.address)
            return False

        text = alert_message(
            protocol, wallet.address, self._evaluator.render_all(positions, thresholds)
        )
        sent = await self._notifier.send_message(user.chat_id, text)
        if sent:
            self._last_alert[key] = self._clock()
            logger.info(
                "Alert sent to %s for %s (%d of %d positions at risk)",
                user.chat_id, wallet.address, len(at_risk), len(positions),
            )
        return sent

    async def sweep(self) -> int:
        """Check every subscription of every user once.

        Failures are logged and never reported to users.

        Returns:
            Number of alerts delivered.
        """
        sent = 0
        chat_ids = await self._store.list_ids()
        logger.info("Sweeping wallets of %d users", len(chat_ids))
        watched: set[tuple[str, str]] = set()

        for chat_id in chat_ids:
            user = await self._store.get(chat_id)
            if user is None:
                continue
            for wallet in user.wallets:
                watched.add((chat_id, wallet.address))
                try:
                    if await self.check_wallet(user, wallet):
                        sent += 1
                except Exception as e:
                    logger.error(
                        "Sweep failed for %s (chat %s): %s", wallet.address, chat_id, e
                    )

        # removed wallets and forgotten users
        for key in set(self._last_alert) - watched:
            del self._last_alert[key]
        return sent

    async def refresh_markets(self) -> list[str]:
        return await self._catalog.refresh_all()

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    async def _sweep_loop(self, interval_minutes: int) -> None:
        await asyncio.sleep(self._config.startup_delay_seconds)
        if await self._store.list_ids():
            await self._guarded(self.sweep, "sweep")

        while True:
            await asyncio.sleep(interval_minutes * 60)
            await self._guarded(self.sweep, "sweep")

    async def _refresh_loop(self) -> None:
        interval = self._config.market_refresh_interval_minutes
        while True:
            await self._guarded(self.refresh_markets, "market refresh")
            await asyncio.sleep(interval * 60)

    @staticmethod
    async def _guarded(job: Callable, name: str) -> None:
        try:
            await job()
        except Exception as e:
            logger.error("Error in %s: %s", name, e)

    async def run_continuous(self, check_interval_minutes: int | None = None) -> None:
        """Run the sweep and market-refresh timers until cancelled."""
        interval = check_interval_minutes or self._config.check_interval_minutes
        logger.info(
            "Starting continuous monitoring (checking every %d minutes, "
            "refreshing markets every %d minutes)",
            interval,
            self._config.market_refresh_interval_minutes,
        )
        await asyncio.gather(self._refresh_loop(), self._sweep_loop(interval))
