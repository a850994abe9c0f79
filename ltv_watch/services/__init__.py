"""Service modules"""
from .catalog import MarketCatalog
from .monitor import Monitor
from .risk import RiskEvaluator
from .wallets import WalletService

__all__ = ["MarketCatalog", "Monitor", "RiskEvaluator", "WalletService"]
