"""Kamino lending (Solana)."""
from .adapter import KaminoAdapter
from .api import KaminoApiClient

__all__ = ["KaminoAdapter", "KaminoApiClient"]
