"""
Configuration for the DipCoin client.

Values come from explicit arguments first, then the environment (``.env`` is
loaded through python-dotenv), then per-network defaults.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

from dotenv import load_dotenv

from exchange_clients.base_models import validate_credentials

from .common import (
    NETWORK_DEFAULTS,
    PRICE_STALE_SECONDS,
    TRADING_PAIRS_TTL_SECONDS,
)
from .exceptions import DeploymentConfigError

SUPPORTED_NETWORKS = ("mainnet", "testnet")


@dataclass
class PerpetualDeployment:
    """On-chain objects backing one perpetual market."""

    perp_id: str
    symbol: Optional[str] = None
    price_info_object_id: Optional[str] = None
    price_feed_id: Optional[str] = None


@dataclass
class DeploymentConfig:
    """
    Package and shared-object ids of a protocol deployment.

    Mirrors the deployment JSON published per network::

        {
          "packages": ["0x..."],
          "objects": {
            "ProtocolConfig": {"id": "0x..."},
            "Bank": {"id": "0x..."},
            "SubAccounts": {"id": "0x..."},
            "PythState": {"id": "0x..."},
            "WormholeState": {"id": "0x..."}
          },
          "pythPackage": "0x...",
          "wormholePackage": "0x...",
          "pythUpdateFee": 1,
          "perpetuals": {
            "BTC-PERP": {"id": "0x...", "priceInfoObjectId": "0x...", "priceFeedId": "0x..."}
          }
        }
    """

    package_id: str
    protocol_config_id: str
    bank_id: Optional[str] = None
    sub_accounts_id: Optional[str] = None
    pyth_package_id: Optional[str] = None
    pyth_state_id: Optional[str] = None
    wormhole_state_id: Optional[str] = None
    wormhole_package_id: Optional[str] = None
    # MIST paid per feed update
    pyth_update_fee: int = 1
    perpetuals: Dict[str, PerpetualDeployment] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeploymentConfig":
        packages = data.get("packages") or []
        if not packages:
            raise DeploymentConfigError("Deployment config has no packages")
        objects = data.get("objects") or {}

        def object_id(name: str) -> Optional[str]:
            entry = objects.get(name)
            if isinstance(entry, dict):
                return entry.get("id")
            return entry

        protocol_config_id = object_id("ProtocolConfig") or data.get("protocolConfig")
        if not protocol_config_id:
            raise DeploymentConfigError("Deployment config has no ProtocolConfig object")

        perpetuals: Dict[str, PerpetualDeployment] = {}
        for symbol, entry in (data.get("perpetuals") or {}).items():
            perp = PerpetualDeployment(
                perp_id=entry["id"],
                symbol=symbol,
                price_info_object_id=entry.get("priceInfoObjectId"),
                price_feed_id=entry.get("priceFeedId"),
            )
            perpetuals[perp.perp_id] = perp

        return cls(
            package_id=packages[0],
            protocol_config_id=protocol_config_id,
            bank_id=object_id("Bank"),
            sub_accounts_id=object_id("SubAccounts"),
            pyth_package_id=data.get("pythPackage"),
            pyth_state_id=object_id("PythState"),
            wormhole_state_id=object_id("WormholeState"),
            wormhole_package_id=data.get("wormholePackage"),
            pyth_update_fee=int(data.get("pythUpdateFee", 1)),
            perpetuals=perpetuals,
        )

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "DeploymentConfig":
        file_path = Path(path)
        if not file_path.exists():
            raise DeploymentConfigError(f"Deployment config not found at {file_path}")
        with open(file_path, "r", encoding="utf-8") as f:
            return cls.from_dict(json.load(f))

    def perpetual(self, perp_id: str) -> PerpetualDeployment:
        try:
            return self.perpetuals[perp_id]
        except KeyError:
            raise DeploymentConfigError(f"Perpetual {perp_id} is not in the deployment config") from None

    def require(self, attr: str) -> str:
        value = getattr(self, attr)
        if not value:
            raise DeploymentConfigError(f"Deployment config is missing {attr}")
        return value


@dataclass
class DipCoinConfig:
    """Runtime settings for ``DipCoinClient``."""

    api_base_url: str
    network: str = "testnet"
    rpc_url: Optional[str] = None
    price_service_url: Optional[str] = None
    request_timeout: float = 30.0
    auth_wait_timeout: float = 10.0
    trading_pairs_ttl: float = TRADING_PAIRS_TTL_SECONDS
    price_stale_seconds: int = PRICE_STALE_SECONDS
    gas_budget: Optional[int] = None
    deployment: Optional[DeploymentConfig] = None

    def __post_init__(self) -> None:
        self.network = self.network.lower()
        if self.network not in SUPPORTED_NETWORKS:
            raise ValueError(
                f"Unsupported network: {self.network}. Available networks: {', '.join(SUPPORTED_NETWORKS)}"
            )
        defaults = NETWORK_DEFAULTS[self.network]
        self.rpc_url = self.rpc_url or defaults["rpc_url"]
        self.price_service_url = self.price_service_url or defaults["price_service_url"]

    @property
    def uses_pyth(self) -> bool:
        """Mainnet refreshes Pyth feeds; testnet pushes prices directly."""
        return self.network == "mainnet"


def load_config_from_env(env_file: Optional[str] = None, **overrides: Any) -> DipCoinConfig:
    """
    Build a ``DipCoinConfig`` from environment variables.

    Reads DIPCOIN_API_URL, DIPCOIN_NETWORK, DIPCOIN_RPC_URL,
    DIPCOIN_PRICE_SERVICE_URL, DIPCOIN_GAS_BUDGET and DIPCOIN_DEPLOYMENT_FILE.
    Keyword overrides win over the environment.
    """
    load_dotenv(env_file)

    api_base_url = overrides.pop("api_base_url", None) or os.getenv("DIPCOIN_API_URL")
    validate_credentials("DIPCOIN_API_URL", api_base_url)

    deployment = overrides.pop("deployment", None)
    deployment_file = os.getenv("DIPCOIN_DEPLOYMENT_FILE")
    if deployment is None and deployment_file:
        deployment = DeploymentConfig.from_file(deployment_file)

    gas_budget = os.getenv("DIPCOIN_GAS_BUDGET")

    settings: Dict[str, Any] = {
        "api_base_url": api_base_url,
        "network": os.getenv("DIPCOIN_NETWORK", "testnet"),
        "rpc_url": os.getenv("DIPCOIN_RPC_URL") or None,
        "price_service_url": os.getenv("DIPCOIN_PRICE_SERVICE_URL") or None,
        "gas_budget": int(gas_budget) if gas_budget else None,
        "deployment": deployment,
    }
    settings.update(overrides)
    return DipCoinConfig(**settings)


def load_credentials_from_env(env_file: Optional[str] = None) -> Dict[str, Optional[str]]:
    """Return the main private key (required) and sub-account key (optional)."""
    load_dotenv(env_file)
    private_key = os.getenv("DIPCOIN_PRIVATE_KEY")
    validate_credentials("DIPCOIN_PRIVATE_KEY", private_key)
    return {
        "private_key": private_key,
        "sub_account_key": os.getenv("DIPCOIN_SUB_ACCOUNT_KEY") or None,
    }
