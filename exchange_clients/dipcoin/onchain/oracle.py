"""
Read-only chain and price-feed clients used for oracle freshness checks.

Both clients only read, so transient failures are retried with
``query_retry``.
"""

from __future__ import annotations

import itertools
from typing import Any, Dict, List, Optional

import httpx

from exchange_clients.base_models import query_retry
from networking.exceptions import TransportError
from networking.http import create_httpx_client

from ..common import SUI_CLOCK_OBJECT_ID


class SuiRpcClient:
    """Minimal Sui JSON-RPC reader: objects, the clock and wallet coin balances."""

    def __init__(self, rpc_url: str, *, timeout: float = 30.0, client: Optional[httpx.AsyncClient] = None):
        self.rpc_url = rpc_url
        self._client = client or create_httpx_client(timeout=httpx.Timeout(timeout))
        self._ids = itertools.count(1)

    async def call(self, method: str, params: List[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            response = await self._client.post(self.rpc_url, json=payload)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as exc:
            raise TransportError(f"Sui RPC {method} failed: {exc}") from exc
        except ValueError as exc:
            raise TransportError(f"Sui RPC {method} returned invalid JSON") from exc

        if not isinstance(body, dict):
            raise TransportError(f"Sui RPC {method} returned an unexpected payload", body=body)
        if body.get("error"):
            raise TransportError(f"Sui RPC {method} error: {body['error']}", body=body)
        return body.get("result")

    @query_retry(exception_type=(TransportError,), reraise=True)
    async def get_object(self, object_id: str) -> Dict[str, Any]:
        """Return the Move struct fields of ``object_id``."""
        result = await self.call("sui_getObject", [object_id, {"showContent": True}])
        try:
            return result["data"]["content"]["fields"]
        except (KeyError, TypeError) as exc:
            raise TransportError(f"Object {object_id} has no readable content", body=result) from exc

    async def get_clock_seconds(self) -> int:
        fields = await self.get_object(SUI_CLOCK_OBJECT_ID)
        return int(fields["timestamp_ms"]) // 1000

    async def get_price_arrival_time(self, price_info_object_id: str) -> int:
        """Arrival time (seconds) of the price stored in a Pyth PriceInfoObject."""
        fields = await self.get_object(price_info_object_id)
        price_info = fields["price_info"]
        if isinstance(price_info, dict) and "fields" in price_info:
            price_info = price_info["fields"]
        return int(price_info["arrival_time"])

    @query_retry(exception_type=(TransportError,), reraise=True)
    async def get_all_balances(self, owner: str) -> List[Dict[str, Any]]:
        """Coin balances held by ``owner``, one entry per coin type."""
        result = await self.call("suix_getAllBalances", [owner])
        if not isinstance(result, list):
            raise TransportError(f"Unexpected balances for {owner}", body=result)
        return result

    @query_retry(exception_type=(TransportError,), reraise=True)
    async def get_coin_metadata(self, coin_type: str) -> Optional[Dict[str, Any]]:
        """Symbol and decimals of ``coin_type``; ``None`` when the chain has no metadata."""
        result = await self.call("suix_getCoinMetadata", [coin_type])
        return result if isinstance(result, dict) else None

    async def aclose(self) -> None:
        await self._client.aclose()


class PythPriceService:
    """Pyth Hermes client returning hex-encoded price update blobs."""

    def __init__(self, base_url: str, *, timeout: float = 30.0, client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self._client = client or create_httpx_client(self.base_url, timeout=httpx.Timeout(timeout))

    @query_retry(exception_type=(TransportError,), reraise=True)
    async def get_price_update_data(self, feed_id: str) -> List[str]:
        try:
            response = await self._client.get(
                "/v2/updates/price/latest",
                params={"ids[]": feed_id, "encoding": "hex"},
            )
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as exc:
            raise TransportError(f"Price update fetch failed for {feed_id}: {exc}") from exc
        except ValueError as exc:
            raise TransportError("Price service returned invalid JSON") from exc

        binary = body.get("binary") if isinstance(body, dict) else None
        data = binary.get("data") if isinstance(binary, dict) else None
        if not isinstance(data, list) or not data:
            raise TransportError(f"No price update data for feed {feed_id}", body=body)
        return list(data)

    async def aclose(self) -> None:
        await self._client.aclose()
