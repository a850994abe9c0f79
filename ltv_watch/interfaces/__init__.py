"""Protocol interfaces for the LTV watcher."""
from .chain import EvmCaller, EvmChainClient
from .notifier import Notifier
from .protocol_adapter import ProgressCallback, ProtocolScanner
from .user_store import UserStore

__all__ = [
    "EvmCaller",
    "EvmChainClient",
    "Notifier",
    "ProgressCallback",
    "ProtocolScanner",
    "UserStore",
]
