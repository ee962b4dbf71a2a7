from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from .exceptions import TransportError

PERP_TRADE_API_PREFIX = "/api/perp-trade-api"


def create_httpx_client(
    base_url: str = "",
    *,
    timeout: Optional[httpx.Timeout] = None,
    **kwargs: Any,
) -> httpx.AsyncClient:
    """
    Return an AsyncClient configured for JSON APIs.

    Args:
        base_url: Base URL prepended to every relative request path.
        timeout: Optional explicit timeout. If omitted, httpx defaults are used.
        **kwargs: Additional parameters forwarded to ``httpx.AsyncClient``.
    """
    client_kwargs: Dict[str, Any] = dict(kwargs)

    if timeout is not None:
        client_kwargs["timeout"] = timeout

    client_kwargs.setdefault("headers", {"Content-Type": "application/json"})
    return httpx.AsyncClient(base_url=base_url, **client_kwargs)


@dataclass
class ApiResponse:
    """Envelope returned by every DipCoin REST endpoint."""

    code: int
    data: Any = None
    message: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "ApiResponse":
        if not isinstance(payload, dict):
            raise TransportError(f"Unexpected response payload: {str(payload)[:200]}")
        try:
            code = int(payload.get("code", 0))
        except (TypeError, ValueError):
            code = 0
        return cls(code=code, data=payload.get("data"), message=payload.get("message"))

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "data": self.data, "message": self.message}


class DipCoinHttpClient:
    """
    Thin async JSON client for the DipCoin REST API.

    Requests against the perp trade API carry a wallet address and, outside
    ``/public/`` routes, a bearer token. The client-wide values belong to the
    main identity; a request for another identity passes its own
    ``wallet_address`` and ``auth_token`` instead of changing them.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = client or create_httpx_client(
            self.base_url, timeout=httpx.Timeout(timeout)
        )
        self._wallet_address: Optional[str] = None
        self._auth_token: Optional[str] = None

    @property
    def wallet_address(self) -> Optional[str]:
        return self._wallet_address

    @property
    def auth_token(self) -> Optional[str]:
        return self._auth_token

    def set_wallet_address(self, address: Optional[str]) -> None:
        self._wallet_address = address

    def set_auth_token(self, token: Optional[str]) -> None:
        self._auth_token = token or None

    @staticmethod
    def _is_perp_trade_api(path: str) -> bool:
        return path.startswith(PERP_TRADE_API_PREFIX)

    @staticmethod
    def _is_public_endpoint(path: str) -> bool:
        return "/public/" in path

    def build_headers(
        self,
        path: str,
        wallet_address: Optional[str] = None,
        auth_token: Optional[str] = None,
    ) -> Dict[str, str]:
        if wallet_address is None:
            wallet_address, auth_token = self._wallet_address, self._auth_token
        headers = {"Content-Type": "application/json"}
        if self._is_perp_trade_api(path):
            if wallet_address:
                headers["X-Wallet-Address"] = wallet_address
            if auth_token and not self._is_public_endpoint(path):
                headers["Authorization"] = f"Bearer {auth_token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        body: Any = None,
        wallet_address: Optional[str] = None,
        auth_token: Optional[str] = None,
    ) -> ApiResponse:
        query = {k: v for k, v in (params or {}).items() if v is not None}
        try:
            response = await self._client.request(
                method,
                path,
                params=query or None,
                json=body,
                headers=self.build_headers(path, wallet_address, auth_token),
            )
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {path} failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise TransportError(
                f"Invalid JSON response: {response.text[:200]}",
                status_code=response.status_code,
                body=response.text,
            ) from exc

        return ApiResponse.from_payload(payload)

    async def get(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        *,
        wallet_address: Optional[str] = None,
        auth_token: Optional[str] = None,
    ) -> ApiResponse:
        return await self._request(
            "GET", path, params=params, wallet_address=wallet_address, auth_token=auth_token
        )

    async def post(
        self,
        path: str,
        body: Any = None,
        *,
        wallet_address: Optional[str] = None,
        auth_token: Optional[str] = None,
    ) -> ApiResponse:
        return await self._request(
            "POST", path, body=body, wallet_address=wallet_address, auth_token=auth_token
        )

    async def aclose(self) -> None:
        await self._client.aclose()
