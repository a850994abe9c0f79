"""Exception hierarchy."""
from __future__ import annotations


class LtvWatchError(Exception):
    """Base class for all errors raised by ltv_watch."""


class ScanError(LtvWatchError):
    """A scan produced no usable result: no markets known or every query failed."""


class RpcError(LtvWatchError):
    """An EVM JSON-RPC call failed, or every fallback endpoint failed."""


class KaminoApiError(LtvWatchError):
    """The Kamino REST API answered with an unexpected status or payload."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class InvalidAddressError(LtvWatchError):
    """The wallet address matches neither the EVM nor the Solana format."""


class InvalidThresholdError(LtvWatchError):
    """A threshold value is not a finite positive number."""
