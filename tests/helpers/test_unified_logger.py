import pytest
from loguru import logger as loguru_logger

from helpers.unified_logger import get_exchange_logger, get_logger, short_id


@pytest.fixture
def captured():
    records = []
    sink_id = loguru_logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records
    loguru_logger.remove(sink_id)


def test_component_id_includes_context():
    log = get_exchange_logger("dipcoin", network="testnet")

    assert log.component_id == "EXCHANGE:DIPCOIN:network=testnet"


def test_messages_carry_component_id(captured):
    log = get_logger("core", "http")

    log.info("request sent")
    log.log("odd level", level="verbose")

    assert [r["message"] for r in captured] == ["request sent", "odd level"]
    assert captured[0]["extra"]["component_id"] == "CORE:HTTP"
    assert captured[1]["level"].name == "INFO"


def test_with_context_extends_component_id():
    log = get_exchange_logger("dipcoin").with_context(account="0x12ab")

    assert log.component_id == "EXCHANGE:DIPCOIN:account=0x12ab"


def test_short_id():
    address = "0x" + "ab" * 32

    assert short_id(address) == "0xababab...ababab"
    assert short_id("0x1234") == "0x1234"
    assert short_id(None) == "-"
