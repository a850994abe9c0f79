"""Kamino REST API client."""
from __future__ import annotations

import logging
import ssl
from typing import Any

import aiohttp
import certifi

from ...config import KaminoConfig
from ...errors import KaminoApiError

logger = logging.getLogger(__name__)


class KaminoApiClient:
    """Thin async client over the public Kamino lending API."""

    def __init__(self, config: KaminoConfig) -> None:
        self.api_url = config.api_url
        self.env = config.env
        self.timeout = config.request_timeout

    async def _get_json(
        self, path: str, params: dict[str, str] | None = None
    ) -> Any | None:
        """GET a JSON document; ``None`` on HTTP 404."""
        url = f"{self.api_url}{path}"
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        async with aiohttp.ClientSession(connector=connector) as session:
            async with session.get(
                url,
                params=params,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                if response.status == 404:
                    return None
                if response.status != 200:
                    raise KaminoApiError(
                        f"HTTP {response.status} from {url}", status=response.status
                    )
                return await response.json(content_type=None)

    async def fetch_markets(self) -> list[dict[str, Any]]:
        """Return the raw lending market listing."""
        data = await self._get_json("/v2/kamino-market")
        if data is None:
            raise KaminoApiError("Market listing not found", status=404)
        if not isinstance(data, list):
            raise KaminoApiError(f"Unexpected market listing payload: {type(data).__name__}")
        return data

    async def fetch_obligations(
        self, market_id: str, wallet_address: str
    ) -> list[dict[str, Any]]:
        """Return a wallet's raw obligations in one market (empty when none)."""
        data = await self._get_json(
            f"/kamino-market/{market_id}/users/{wallet_address}/obligations",
            params={"env": self.env},
        )
        if data is None:
            return []
        if not isinstance(data, list):
            raise KaminoApiError(f"Unexpected obligations payload: {type(data).__name__}")
        return data
