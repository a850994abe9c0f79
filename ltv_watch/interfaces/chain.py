"""Chain client protocol — EVM RPC abstraction."""
from typing import Awaitable, Callable, Protocol, TypeVar

T = TypeVar("T")

# eth_call bound to one endpoint: (contract address, calldata) -> return data
EvmCaller = Callable[[str, bytes], Awaitable[bytes]]


class EvmChainClient(Protocol):
    """Abstract interface for read-only EVM contract calls with endpoint fallback."""

    @property
    def network(self) -> str: ...

    async def call_with_fallback(
        self, fn: Callable[[EvmCaller], Awaitable[T]]
    ) -> T: ...
