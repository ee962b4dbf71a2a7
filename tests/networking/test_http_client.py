import json

import httpx
import pytest

from networking.exceptions import TransportError
from networking.http import ApiResponse, DipCoinHttpClient, create_httpx_client

BASE_URL = "https://api.dipcoin.test"
WALLET = "0x" + "aa" * 32


def build_client(handler) -> DipCoinHttpClient:
    client = create_httpx_client(BASE_URL, transport=httpx.MockTransport(handler))
    return DipCoinHttpClient(BASE_URL, client=client)


def recording_handler(requests, payload=None):
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=payload if payload is not None else {"code": 200, "data": None})

    return handler


@pytest.mark.asyncio
async def test_trade_api_requests_carry_wallet_and_bearer():
    requests = []
    http = build_client(recording_handler(requests, {"code": 200, "data": {"ok": True}, "message": "success"}))
    http.set_wallet_address(WALLET)
    http.set_auth_token("jwt-token")

    response = await http.post("/api/perp-trade-api/trade/placeorder", {"symbol": "BTC-PERP"})

    assert response == ApiResponse(code=200, data={"ok": True}, message="success")
    request = requests[0]
    assert request.method == "POST"
    assert request.headers["X-Wallet-Address"] == WALLET
    assert request.headers["Authorization"] == "Bearer jwt-token"
    assert json.loads(request.content) == {"symbol": "BTC-PERP"}


@pytest.mark.asyncio
async def test_public_routes_skip_bearer():
    requests = []
    http = build_client(recording_handler(requests))
    http.set_wallet_address(WALLET)
    http.set_auth_token("jwt-token")

    await http.get("/api/perp-trade-api/public/ticker")

    assert requests[0].headers["X-Wallet-Address"] == WALLET
    assert "Authorization" not in requests[0].headers


@pytest.mark.asyncio
async def test_authorize_route_has_no_identity_headers():
    requests = []
    http = build_client(recording_handler(requests))
    http.set_wallet_address(WALLET)
    http.set_auth_token("jwt-token")

    await http.post("/api/authorize", {"userAddress": WALLET})

    assert "X-Wallet-Address" not in requests[0].headers
    assert "Authorization" not in requests[0].headers


@pytest.mark.asyncio
async def test_cleared_token_is_not_sent():
    requests = []
    http = build_client(recording_handler(requests))
    http.set_wallet_address(WALLET)
    http.set_auth_token("")

    await http.get("/api/perp-trade-api/curr-info/account")

    assert http.auth_token is None
    assert "Authorization" not in requests[0].headers


@pytest.mark.asyncio
async def test_none_query_params_are_dropped():
    requests = []
    http = build_client(recording_handler(requests))

    await http.get("/api/perp-trade-api/history/orders", {"symbol": "BTC-PERP", "page": 1, "pageSize": None})

    assert dict(requests[0].url.params) == {"symbol": "BTC-PERP", "page": "1"}


@pytest.mark.asyncio
async def test_invalid_json_raises_transport_error():
    http = build_client(lambda request: httpx.Response(502, text="<html>Bad Gateway</html>"))

    with pytest.raises(TransportError) as exc_info:
        await http.get("/api/perp-trade-api/curr-info/account")

    assert exc_info.value.status_code == 502
    assert "Bad Gateway" in exc_info.value.body


@pytest.mark.asyncio
async def test_connection_error_raises_transport_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    http = build_client(handler)

    with pytest.raises(TransportError, match="connection refused"):
        await http.post("/api/authorize", {})


@pytest.mark.asyncio
async def test_non_object_payload_raises_transport_error():
    http = build_client(lambda request: httpx.Response(200, json=[1, 2, 3]))

    with pytest.raises(TransportError):
        await http.get("/api/perp-market-api/list")


def test_api_response_from_payload():
    response = ApiResponse.from_payload({"code": "1000", "message": "token expired"})

    assert response.code == 1000
    assert response.data is None
    assert response.to_dict() == {"code": 1000, "data": None, "message": "token expired"}
    assert ApiResponse.from_payload({"data": []}).code == 0


@pytest.mark.asyncio
async def test_per_request_identity_overrides_defaults():
    requests = []
    http = build_client(recording_handler(requests))
    http.set_wallet_address(WALLET)
    http.set_auth_token("main-token")
    sub_wallet = "0x" + "bb" * 32

    await http.post("/api/perp-trade-api/trade/placeorder", {}, wallet_address=sub_wallet, auth_token="sub-token")
    await http.get("/api/perp-trade-api/curr-info/account")

    assert requests[0].headers["X-Wallet-Address"] == sub_wallet
    assert requests[0].headers["Authorization"] == "Bearer sub-token"
    assert requests[1].headers["X-Wallet-Address"] == WALLET
    assert requests[1].headers["Authorization"] == "Bearer main-token"
    assert http.wallet_address == WALLET
    assert http.auth_token == "main-token"


@pytest.mark.asyncio
async def test_override_without_token_does_not_borrow_default():
    requests = []
    http = build_client(recording_handler(requests))
    http.set_wallet_address(WALLET)
    http.set_auth_token("main-token")

    await http.get("/api/perp-trade-api/curr-info/account", wallet_address="0x" + "bb" * 32)

    assert "Authorization" not in requests[0].headers
