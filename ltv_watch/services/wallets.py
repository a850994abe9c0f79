"""Explicit user commands: manage watched wallets and thresholds."""
from __future__ import annotations

import dataclasses
import logging
import math

from ..addresses import detect_protocol
from ..errors import InvalidThresholdError, LtvWatchError
from ..interfaces.protocol_adapter import ProgressCallback, ProtocolScanner
from ..interfaces.user_store import UserStore
from ..models import (
    KaminoWallet,
    LendingProtocol,
    ThresholdOverride,
    UserRecord,
    WalletSubscription,
)
from .catalog import MarketCatalog
from .messages import error_reply, thresholds_line, wallet_block, wallet_header
from .risk import RiskEvaluator

logger = logging.getLogger(__name__)

THRESHOLD_KINDS = ("warning", "danger")
THRESHOLD_USAGE = (
    "Usage: set-threshold CHAT {kamino,aave} {warning,danger} VALUE "
    "(VALUE is a positive number such as 1.4)"
)


def parse_threshold(raw_value: str) -> float:
    """Parse a user-typed threshold.

    Raises:
        InvalidThresholdError: not a finite number greater than zero.
    """
    try:
        value = float(str(raw_value).strip().replace(",", "."))
    except ValueError:
        raise InvalidThresholdError(
            f"'{raw_value}' is not a number. {THRESHOLD_USAGE}"
        ) from None
    if not math.isfinite(value) or value <= 0:
        raise InvalidThresholdError(
            f"Threshold must be a positive number, got '{raw_value}'. {THRESHOLD_USAGE}"
        )
    return value


def parse_protocol(raw: str | LendingProtocol) -> LendingProtocol:
    if isinstance(raw, LendingProtocol):
        return raw
    try:
        return LendingProtocol(str(raw).strip().lower())
    except ValueError:
        raise LtvWatchError(
            f"Unknown protocol '{raw}' (expected kamino or aave)"
        ) from None


def describe_subscription(wallet: WalletSubscription) -> str:
    if isinstance(wallet, KaminoWallet):
        names = ", ".join(wallet.markets) or "none"
        return f"Markets: {names}"
    networks = ", ".join(wallet.networks) or "none"
    return f"Networks with debt: {networks}"


class WalletService:
    """Command handlers; every method returns the reply text for the chat."""

    def __init__(
        self,
        store: UserStore,
        scanners: dict[LendingProtocol, ProtocolScanner],
        catalog: MarketCatalog,
        evaluator: RiskEvaluator,
    ) -> None:
        self._store = store
        self._scanners = scanners
        self._catalog = catalog
        self._evaluator = evaluator

    async def _get_or_create(self, chat_id: str) -> UserRecord:
        user = await self._store.get(chat_id)
        if user is None:
            logger.info("Creating user record for chat %s", chat_id)
            user = UserRecord(chat_id=chat_id)
        return user

    async def _put_wallet(self, chat_id: str, wallet: WalletSubscription) -> None:
        """Insert or replace one wallet, re-reading the record first."""
        user = await self._get_or_create(chat_id)
        wallets = [wallet if w.address == wallet.address else w for w in user.wallets]
        if user.find_wallet(wallet.address) is None:
            wallets.append(wallet)
        await self._store.set(dataclasses.replace(user, wallets=tuple(wallets)))

    async def _replace_wallet(self, chat_id: str, wallet: WalletSubscription) -> bool:
        """Replace a wallet that is still stored; returns False if it is gone.

        A wallet removed (or a user forgotten) while a scan was running
        stays removed.
        """
        user = await self._store.get(chat_id)
        if user is None or user.find_wallet(wallet.address) is None:
            return False
        wallets = tuple(wallet if w.address == wallet.address else w for w in user.wallets)
        await self._store.set(dataclasses.replace(user, wallets=wallets))
        return True

    # ------------------------------------------------------------------
    # Wallets
    # ------------------------------------------------------------------

    async def add_wallet(
        self,
        chat_id: str,
        address: str,
        progress: ProgressCallback | None = None,
    ) -> str:
        address = address.strip()
        try:
            protocol = detect_protocol(address)
        except LtvWatchError as e:
            return error_reply(e)

        scanner = self._scanners[protocol]
        try:
            positions = await scanner.full_scan(address, progress)
        except LtvWatchError as e:
            logger.warning("Scan for new wallet %s failed: %s", address, e)
            return error_reply(e)

        if not positions:
            return error_reply(f"No positions found for {address}")

        await self._put_wallet(chat_id, scanner.subscribe(address, positions))
        user = await self._get_or_create(chat_id)
        thresholds = self._evaluator.resolve(user, protocol)
        logger.info(
            "Chat %s now watches %s wallet %s (%d positions)",
            chat_id, protocol.value, address, len(positions),
        )
        return "Wallet added.\n\n" + wallet_block(
            protocol, address, self._evaluator.render_all(positions, thresholds)
        )

    async def remove_wallet(self, chat_id: str, address: str) -> str:
        address = address.strip()
        user = await self._store.get(chat_id)
        wallet = user.find_wallet(address) if user else None
        if user is None or wallet is None:
            return error_reply(f"Wallet {address} is not registered")

        wallets = tuple(w for w in user.wallets if w.address != address)
        if wallets:
            await self._store.set(dataclasses.replace(user, wallets=wallets))
        else:
            # last wallet gone: the user record goes with it
            await self._store.delete(chat_id)
        logger.info("Chat %s stopped watching %s", chat_id, address)
        return f"Wallet {wallet_header(wallet.protocol, address)} removed."

    async def list_wallets(self, chat_id: str) -> str:
        user = await self._store.get(chat_id)
        if user is None or not user.wallets:
            return "No wallets registered. Use add-wallet first."
        blocks = [
            wallet_block(wallet.protocol, wallet.address, describe_subscription(wallet))
            for wallet in user.wallets
        ]
        return "Your wallets:\n\n" + "\n\n".join(blocks)

    # ------------------------------------------------------------------
    # On-demand checks
    # ------------------------------------------------------------------

    async def _check_wallet(self, user: UserRecord, wallet: WalletSubscription) -> str:
        protocol = wallet.protocol
        if isinstance(wallet, KaminoWallet) and not wallet.markets:
            return wallet_block(
                protocol, wallet.address, "No cached markets yet. Run refresh first."
            )
        try:
            positions = await self._scanners[protocol].check(wallet)
        except LtvWatchError as e:
            logger.warning("Check of %s failed: %s", wallet.address, e)
            return wallet_block(protocol, wallet.address, f"Error: {e}")

        if not positions:
            return wallet_block(protocol, wallet.address, "No borrow positions found.")
        thresholds = self._evaluator.resolve(user, protocol)
        return wallet_block(
            protocol, wallet.address, self._evaluator.render_all(positions, thresholds)
        )

    async def check(
        self, chat_id: str, protocol: str | LendingProtocol | None = None
    ) -> str:
        try:
            wanted = parse_protocol(protocol) if protocol is not None else None
        except LtvWatchError as e:
            return error_reply(e)

        user = await self._store.get(chat_id)
        wallets = [
            w for w in (user.wallets if user else ())
            if wanted is None or w.protocol is wanted
        ]
        if user is None or not wallets:
            return "No wallets registered. Use add-wallet first."

        blocks = [await self._check_wallet(user, wallet) for wallet in wallets]
        return "\n\n".join(blocks)

    async def refresh(
        self,
        chat_id: str,
        protocol: str | LendingProtocol | None = None,
        progress: ProgressCallback | None = None,
    ) -> str:
        """Reload markets, then rediscover where each wallet is active."""
        try:
            wanted = parse_protocol(protocol) if protocol is not None else None
        except LtvWatchError as e:
            return error_reply(e)

        if wanted is None:
            await self._catalog.refresh_all()
        else:
            await self._catalog.refresh(wanted)

        user = await self._store.get(chat_id)
        wallets = [
            w for w in (user.wallets if user else ())
            if wanted is None or w.protocol is wanted
        ]
        if not wallets:
            return "Markets refreshed. No wallets registered."

        blocks: list[str] = []
        for wallet in wallets:
            scanner = self._scanners[wallet.protocol]
            try:
                positions = await scanner.full_scan(wallet.address, progress)
            except LtvWatchError as e:
                logger.warning("Refresh of %s failed, keeping cached list: %s", wallet.address, e)
                blocks.append(
                    wallet_block(wallet.protocol, wallet.address, f"Error: {e}")
                )
                continue

            updated = scanner.subscribe(wallet.address, positions)
            if not await self._replace_wallet(chat_id, updated):
                logger.info("Wallet %s was removed during refresh, not re-adding", wallet.address)
                continue
            if positions:
                thresholds = self._evaluator.resolve(user, wallet.protocol)
                body = self._evaluator.render_all(positions, thresholds)
            else:
                body = "No positions found."
            blocks.append(
                wallet_block(
                    wallet.protocol,
                    wallet.address,
                    f"{body}\n{describe_subscription(updated)}",
                )
            )
        if not blocks:
            return "Markets refreshed. No wallets registered."
        return "Markets refreshed.\n\n" + "\n\n".join(blocks)

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    async def set_threshold(
        self,
        chat_id: str,
        protocol: str | LendingProtocol,
        kind: str,
        raw_value: str,
    ) -> str:
        try:
            proto = parse_protocol(protocol)
            kind = kind.strip().lower()
            if kind not in THRESHOLD_KINDS:
                raise InvalidThresholdError(
                    f"Unknown threshold '{kind}'. {THRESHOLD_USAGE}"
                )
            value = parse_threshold(raw_value)
        except LtvWatchError as e:
            return error_reply(e)

        user = await self._get_or_create(chat_id)
        current = user.thresholds.get(proto, ThresholdOverride())
        thresholds = dict(user.thresholds)
        thresholds[proto] = dataclasses.replace(current, **{kind: value})
        await self._store.set(dataclasses.replace(user, thresholds=thresholds))

        logger.info("Chat %s set %s %s threshold to %s", chat_id, proto.value, kind, value)
        return f"{proto.value.capitalize()} {kind} threshold set to {value:g}."

    async def settings(self, chat_id: str) -> str:
        user = await self._store.get(chat_id)
        lines = ["Health Factor thresholds:"]
        for protocol in LendingProtocol:
            override = user.thresholds.get(protocol) if user else None
            lines.append(
                thresholds_line(protocol, self._evaluator.resolve(user, protocol), override)
            )
        return "\n".join(lines)

    async def forget(self, chat_id: str) -> str:
        await self._store.delete(chat_id)
        logger.info("Deleted all data for chat %s", chat_id)
        return "All your wallets and settings were deleted."
