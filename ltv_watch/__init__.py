"""Health Factor monitor for Kamino and Aave V3 borrow positions."""
__version__ = "0.1.0"
