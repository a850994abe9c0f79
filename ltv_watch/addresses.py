"""Wallet address shape detection."""
from __future__ import annotations

import re

from .errors import InvalidAddressError
from .models import LendingProtocol

_EVM_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
# Base58 alphabet excludes 0, O, I and l.
_SOLANA_ADDRESS_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")


def detect_protocol(address: str) -> LendingProtocol:
    """Pick the protocol a wallet is watched on from its address format.

    ``0x`` + 40 hex characters is an EVM address (Aave); a 32–44 character
    base58 string is a Solana address (Kamino).

    Raises:
        InvalidAddressError: the address has neither shape.
    """
    if _EVM_ADDRESS_RE.match(address):
        return LendingProtocol.AAVE
    if _SOLANA_ADDRESS_RE.match(address):
        return LendingProtocol.KAMINO
    raise InvalidAddressError(
        f"Unrecognized wallet address: {address!r} "
        "(expected 0x + 40 hex characters or a base58 Solana address)"
    )


def shorten(address: str) -> str:
    """Shorten an address for display, e.g. ``0x1234...abcd``."""
    if len(address) <= 12:
        return address
    return f"{address[:6]}...{address[-4:]}"
