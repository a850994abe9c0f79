"""Protocol scanner — per-protocol position discovery."""
from typing import Awaitable, Callable, Protocol, Sequence, Union

from ..models import LendingProtocol, Position, WalletSubscription

# (current index, total); may return an awaitable
ProgressCallback = Callable[[int, int], Union[None, Awaitable[None]]]


class ProtocolScanner(Protocol):
    """Abstract interface for finding a wallet's borrow positions on one protocol."""

    @property
    def protocol(self) -> LendingProtocol: ...

    def catalog_keys(self) -> tuple[str, ...]: ...

    async def full_scan(
        self, wallet_address: str, progress: ProgressCallback | None = None
    ) -> list[Position]: ...

    async def targeted_scan(
        self, wallet_address: str, markets: Sequence[str]
    ) -> list[Position]: ...

    async def check(self, wallet: WalletSubscription) -> list[Position]: ...

    def subscribe(
        self, wallet_address: str, positions: Sequence[Position]
    ) -> WalletSubscription: ...
