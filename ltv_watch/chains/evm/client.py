"""EVM JSON-RPC client with fallback support."""
from __future__ import annotations

import functools
import logging
import ssl
from typing import Any, Awaitable, Callable, TypeVar

import aiohttp
import certifi

from ...errors import RpcError
from ...interfaces.chain import EvmCaller

logger = logging.getLogger(__name__)

T = TypeVar("T")


def dedupe_endpoints(endpoints: tuple[str, ...] | list[str]) -> list[str]:
    """Drop blanks and duplicates while keeping priority order."""
    seen: set[str] = set()
    result: list[str] = []
    for url in endpoints:
        url = url.strip()
        if url and url not in seen:
            seen.add(url)
            result.append(url)
    return result


class EvmClient:
    """Read-only EVM RPC client with ordered endpoint fallback.

    A unit of work (e.g. every call needed to read one wallet's account data)
    runs against a single endpoint; if any call in it fails, the whole unit is
    retried on the next endpoint.
    """

    def __init__(
        self, network: str, rpc_endpoints: tuple[str, ...], timeout: int = 20
    ) -> None:
        self._network = network
        self.endpoints = dedupe_endpoints(rpc_endpoints)
        self.timeout = timeout
        self._request_id = 0

    @property
    def network(self) -> str:
        return self._network

    async def rpc_call(
        self,
        session: aiohttp.ClientSession,
        rpc_url: str,
        method: str,
        params: list[Any],
    ) -> Any:
        """Make a single JSON-RPC call against one endpoint."""
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params,
        }

        async with session.post(
            rpc_url,
            json=payload,
            timeout=aiohttp.ClientTimeout(total=self.timeout),
        ) as response:
            if response.status != 200:
                raise RpcError(f"HTTP {response.status} from {rpc_url}")
            result = await response.json(content_type=None)

        if "error" in result:
            raise RpcError(f"RPC Error: {result['error']}")
        return result.get("result")

    async def eth_call(
        self,
        session: aiohttp.ClientSession,
        rpc_url: str,
        to: str,
        data: bytes,
    ) -> bytes:
        """Run ``eth_call`` against the latest block and return raw bytes."""
        result = await self.rpc_call(
            session,
            rpc_url,
            "eth_call",
            [{"to": to, "data": "0x" + data.hex()}, "latest"],
        )
        if not isinstance(result, str) or not result.startswith("0x"):
            raise RpcError(f"Malformed eth_call result: {result!r}")
        raw = bytes.fromhex(result[2:])
        if not raw:
            raise RpcError(f"Empty eth_call result from {to}")
        return raw

    async def call_with_fallback(self, fn: Callable[[EvmCaller], Awaitable[T]]) -> T:
        """Run ``fn`` against each endpoint in order until one completes.

        Raises:
            RpcError: every endpoint failed; chained from the last error.
        """
        if not self.endpoints:
            raise RpcError(f"No RPC endpoints configured for {self._network}")

        ssl_context = ssl.create_default_context(cafile=certifi.where())

        last_error: Exception | None = None
        for attempt, rpc_url in enumerate(self.endpoints):
            try:
                connector = aiohttp.TCPConnector(ssl=ssl_context)
                async with aiohttp.ClientSession(connector=connector) as session:
                    caller = functools.partial(self.eth_call, session, rpc_url)
                    result = await fn(caller)
                if attempt > 0:
                    logger.info(
                        "%s: served by fallback RPC endpoint %s", self._network, rpc_url
                    )
                return result
            except Exception as e:
                last_error = e
                logger.warning(
                    "%s: RPC endpoint %s failed: %s", self._network, rpc_url, e
                )
                if attempt < len(self.endpoints) - 1:
                    logger.info("Trying next endpoint...")
                continue

        raise RpcError(
            f"All RPC endpoints failed for {self._network}. Last error: {last_error}"
        ) from last_error
