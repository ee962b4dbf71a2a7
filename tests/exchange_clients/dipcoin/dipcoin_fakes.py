"""In-memory collaborators for DipCoin tests."""

import asyncio
from collections import defaultdict, deque
from types import SimpleNamespace
from typing import Any, Deque, Dict, List, Optional

from exchange_clients.dipcoin.common import API_ENDPOINTS
from exchange_clients.dipcoin.client.managers.session_manager import SessionManager
from exchange_clients.dipcoin.client.utils.signing import MessageSigner
from exchange_clients.dipcoin.config import DeploymentConfig
from exchange_clients.dipcoin.onchain.executor import ChainResult, OnChainExecutor
from networking.http import ApiResponse

MAIN_KEY = "0x" + "11" * 32
SUB_KEY = "0x" + "22" * 32
PERP_ID = "0x" + "ab" * 32
PRICE_INFO_OBJECT_ID = "0x" + "cd" * 32
PRICE_FEED_ID = "0x" + "ef" * 32
WORMHOLE_PACKAGE = "0x" + "08" * 32
# magic, v1.0, no trailing header, update type 0, 4-byte VAA, one trailing byte
ACCUMULATOR_UPDATE = "504e4155" "01" "00" "00" "00" "0004" "deadbeef" "01"
VAA = bytes.fromhex("deadbeef")

AUTHORIZE = API_ENDPOINTS["AUTHORIZE"]


class FakeTransport:
    """Records every request together with the header state at send time."""

    def __init__(self):
        self.wallet_address: Optional[str] = None
        self.auth_token: Optional[str] = None
        self.calls: List[SimpleNamespace] = []
        self.responses: Dict[str, Deque[Any]] = defaultdict(deque)
        self.auth_responses: Deque[ApiResponse] = deque()
        self.auth_delay = 0.0
        self.delays: Dict[str, float] = {}
        self._token_counter = 0
        self.closed = False

    def set_wallet_address(self, address):
        self.wallet_address = address

    def set_auth_token(self, token):
        self.auth_token = token or None

    def queue(self, path: str, *responses: Any) -> None:
        self.responses[path].extend(responses)

    def calls_to(self, path: str) -> List[SimpleNamespace]:
        return [call for call in self.calls if call.path == path]

    async def _handle(self, method, path, params=None, body=None, wallet_address=None, auth_token=None):
        if wallet_address is None:
            wallet_address, auth_token = self.wallet_address, self.auth_token
        self.calls.append(
            SimpleNamespace(
                method=method,
                path=path,
                params=params,
                body=body,
                wallet=wallet_address,
                token=auth_token,
            )
        )
        if path in self.delays:
            await asyncio.sleep(self.delays[path])
        if path == AUTHORIZE:
            if self.auth_delay:
                await asyncio.sleep(self.auth_delay)
            if self.auth_responses:
                return self.auth_responses.popleft()
            self._token_counter += 1
            return ApiResponse(code=200, data={"token": f"jwt-{self._token_counter}"})

        if self.responses[path]:
            response = self.responses[path].popleft()
            if isinstance(response, Exception):
                raise response
            return response
        return ApiResponse(code=200, data=None)

    async def get(self, path, params=None, wallet_address=None, auth_token=None):
        return await self._handle("GET", path, params, None, wallet_address, auth_token)

    async def post(self, path, body=None, wallet_address=None, auth_token=None):
        return await self._handle("POST", path, None, body, wallet_address, auth_token)

    async def aclose(self):
        self.closed = True


class FakeExecutor(OnChainExecutor):
    """Records executed transactions and direct calls."""

    def __init__(self, supports_composition: bool = True, execute_error: Optional[Exception] = None):
        self.supports_composition = supports_composition
        self.execute_error = execute_error
        self.executed: List[Any] = []
        self.direct_calls: List[SimpleNamespace] = []

    async def execute(self, transaction, identity):
        self.executed.append(SimpleNamespace(transaction=transaction, identity=identity))
        if self.execute_error is not None:
            raise self.execute_error
        return ChainResult(digest="0xdigest", status="success")

    async def _direct(self, name, identity, *args):
        self.direct_calls.append(SimpleNamespace(name=name, identity=identity, args=args))
        return ChainResult(digest=f"0x{name}", status="success")

    async def add_margin(self, identity, perp_id, amount, account=None, gas_budget=None):
        return await self._direct("add_margin", identity, perp_id, amount, account, gas_budget)

    async def remove_margin(self, identity, perp_id, amount, account=None, gas_budget=None):
        return await self._direct("remove_margin", identity, perp_id, amount, account, gas_budget)

    async def deposit_to_bank(self, identity, amount, account, gas_budget=None):
        return await self._direct("deposit_to_bank", identity, amount, account, gas_budget)

    async def withdraw_from_bank(self, identity, amount, account, gas_budget=None):
        return await self._direct("withdraw_from_bank", identity, amount, account, gas_budget)

    async def set_sub_account(self, identity, sub_address, status=True, gas_budget=None):
        return await self._direct("set_sub_account", identity, sub_address, status, gas_budget)


class FakeRpc:
    def __init__(
        self,
        arrival_time: int = 100,
        clock_seconds: int = 103,
        error: Optional[Exception] = None,
        balances: Optional[List[Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        self.arrival_time = arrival_time
        self.clock_seconds = clock_seconds
        self.error = error
        self.balances = balances or []
        self.metadata = metadata or {}
        self.calls: List[str] = []

    async def get_price_arrival_time(self, price_info_object_id):
        self.calls.append(price_info_object_id)
        if self.error is not None:
            raise self.error
        return self.arrival_time

    async def get_clock_seconds(self):
        self.calls.append("clock")
        return self.clock_seconds

    async def get_all_balances(self, owner):
        self.calls.append(owner)
        if self.error is not None:
            raise self.error
        return self.balances

    async def get_coin_metadata(self, coin_type):
        self.calls.append(coin_type)
        return self.metadata.get(coin_type)


class FakePriceService:
    def __init__(self, data: Optional[List[str]] = None, error: Optional[Exception] = None):
        self.data = data if data is not None else [ACCUMULATOR_UPDATE]
        self.error = error
        self.calls: List[str] = []

    async def get_price_update_data(self, feed_id):
        self.calls.append(feed_id)
        if self.error is not None:
            raise self.error
        return self.data


def deployment_dict() -> Dict[str, Any]:
    return {
        "packages": ["0x" + "01" * 32],
        "objects": {
            "ProtocolConfig": {"id": "0x" + "02" * 32},
            "Bank": {"id": "0x" + "03" * 32},
            "SubAccounts": {"id": "0x" + "04" * 32},
            "PythState": {"id": "0x" + "05" * 32},
            "WormholeState": {"id": "0x" + "06" * 32},
        },
        "pythPackage": "0x" + "07" * 32,
        "wormholePackage": WORMHOLE_PACKAGE,
        "perpetuals": {
            "BTC-PERP": {
                "id": PERP_ID,
                "priceInfoObjectId": PRICE_INFO_OBJECT_ID,
                "priceFeedId": PRICE_FEED_ID,
            }
        },
    }


def build_deployment() -> DeploymentConfig:
    return DeploymentConfig.from_dict(deployment_dict())


def build_sessions(transport, key_manager, logger, auth_wait_timeout=10.0):
    return SessionManager(
        transport=transport,
        key_manager=key_manager,
        signer=MessageSigner(),
        logger=logger,
        auth_wait_timeout=auth_wait_timeout,
    )
