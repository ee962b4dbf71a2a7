"""Shared fixtures for DipCoin client tests."""

from unittest.mock import MagicMock

import pytest

from exchange_clients.dipcoin.client.managers.key_manager import KeyManager
from exchange_clients.dipcoin.client.managers.submission import SubmissionPipeline
from exchange_clients.dipcoin.client.utils.signing import MessageSigner
from dipcoin_fakes import MAIN_KEY, SUB_KEY, FakeTransport, build_sessions

DIPCOIN_ENV_VARS = (
    "DIPCOIN_PRIVATE_KEY",
    "DIPCOIN_SUB_ACCOUNT_KEY",
    "DIPCOIN_API_URL",
    "DIPCOIN_NETWORK",
    "DIPCOIN_RPC_URL",
    "DIPCOIN_PRICE_SERVICE_URL",
    "DIPCOIN_GAS_BUDGET",
    "DIPCOIN_DEPLOYMENT_FILE",
)


@pytest.fixture(autouse=True)
def clear_dipcoin_env(monkeypatch):
    for name in DIPCOIN_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def logger():
    return MagicMock()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def keys():
    return KeyManager(MAIN_KEY)


@pytest.fixture
def sub_keys():
    return KeyManager(MAIN_KEY, SUB_KEY)


@pytest.fixture
def signer():
    return MessageSigner()


@pytest.fixture
def sessions(transport, keys, logger):
    return build_sessions(transport, keys, logger)


@pytest.fixture
def sub_sessions(transport, sub_keys, logger):
    return build_sessions(transport, sub_keys, logger)


@pytest.fixture
def pipeline(transport, sessions, logger):
    return SubmissionPipeline(transport, sessions, logger)


@pytest.fixture
def sub_pipeline(transport, sub_sessions, logger):
    return SubmissionPipeline(transport, sub_sessions, logger)
