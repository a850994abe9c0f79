"""User record persistence."""
from .json_store import JsonUserStore

__all__ = ["JsonUserStore"]
