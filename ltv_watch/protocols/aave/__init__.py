"""Aave V3 lending (EVM networks)."""
from .adapter import AaveAdapter

__all__ = ["AaveAdapter"]
