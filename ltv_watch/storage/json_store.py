"""JSON-file user store."""
from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from ..models import (
    AaveWallet,
    KaminoWallet,
    LendingProtocol,
    ThresholdOverride,
    UserRecord,
    WalletSubscription,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Record <-> JSON
# ---------------------------------------------------------------------------


def wallet_to_dict(wallet: WalletSubscription) -> dict[str, Any]:
    if isinstance(wallet, KaminoWallet):
        return {
            "address": wallet.address,
            "protocol": LendingProtocol.KAMINO.value,
            "markets": list(wallet.markets),
        }
    return {
        "address": wallet.address,
        "protocol": LendingProtocol.AAVE.value,
        "networks": list(wallet.networks),
    }


def wallet_from_dict(raw: dict[str, Any]) -> WalletSubscription:
    protocol = LendingProtocol(raw["protocol"])
    if protocol is LendingProtocol.KAMINO:
        return KaminoWallet(address=raw["address"], markets=tuple(raw.get("markets", [])))
    return AaveWallet(address=raw["address"], networks=tuple(raw.get("networks", [])))


def record_to_dict(record: UserRecord) -> dict[str, Any]:
    return {
        "wallets": [wallet_to_dict(w) for w in record.wallets],
        "settings": {
            protocol.value: {"warning": o.warning, "danger": o.danger}
            for protocol, o in record.thresholds.items()
        },
    }


def record_from_dict(chat_id: str, raw: dict[str, Any]) -> UserRecord:
    thresholds: dict[LendingProtocol, ThresholdOverride] = {}
    for name, values in raw.get("settings", {}).items():
        thresholds[LendingProtocol(name)] = ThresholdOverride(
            warning=values.get("warning"),
            danger=values.get("danger"),
        )
    return UserRecord(
        chat_id=chat_id,
        wallets=tuple(wallet_from_dict(w) for w in raw.get("wallets", [])),
        thresholds=thresholds,
    )


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class JsonUserStore:
    """Keeps every user record in one JSON document, rewritten atomically."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = asyncio.Lock()
        self._users: dict[str, dict[str, Any]] | None = None

    def _load(self) -> dict[str, dict[str, Any]]:
        if self._users is not None:
            return self._users
        if not self._path.exists():
            self._users = {}
            return self._users
        with open(self._path) as f:
            data = json.load(f)
        self._users = dict(data.get("users", {}))
        logger.debug("Loaded %d users from %s", len(self._users), self._path)
        return self._users

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent, prefix=self._path.name, suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w") as f:
                json.dump({"users": self._users or {}}, f, indent=2, sort_keys=True)
            os.replace(tmp_name, self._path)
        except BaseException:
            os.unlink(tmp_name)
            raise

    async def get(self, chat_id: str) -> UserRecord | None:
        async with self._lock:
            raw = self._load().get(chat_id)
        return record_from_dict(chat_id, raw) if raw is not None else None

    async def set(self, record: UserRecord) -> None:
        async with self._lock:
            self._load()[record.chat_id] = record_to_dict(record)
            self._save()

    async def delete(self, chat_id: str) -> None:
        async with self._lock:
            if self._load().pop(chat_id, None) is not None:
                self._save()

    async def list_ids(self) -> list[str]:
        async with self._lock:
            return list(self._load())
