"""Tests for margin transaction composition and oracle price refresh."""

import pytest

from exchange_clients.base_models import SDKResponse
from exchange_clients.dipcoin.client.managers.margin_manager import (
    DirectOraclePriceStrategy,
    MarginTxBuilder,
    PriceFreshnessCheck,
    PythPriceUpdateStrategy,
    ResolvedMarket,
)
from exchange_clients.dipcoin.exceptions import (
    ComposedTransactionUnavailable,
    InvalidAddressError,
    InvalidAmountError,
    MarketNotResolvedError,
)
from exchange_clients.dipcoin.models import MarginAdjustment, MarginDirection
from exchange_clients.dipcoin.onchain.executor import GasCoinSplit, MoveResult, MoveTransaction
from exchange_clients.dipcoin.onchain.transactions import DipCoinTransactions
from networking.exceptions import TransportError

from dipcoin_fakes import (
    ACCUMULATOR_UPDATE,
    PERP_ID,
    PRICE_FEED_ID,
    PRICE_INFO_OBJECT_ID,
    VAA,
    WORMHOLE_PACKAGE,
    FakeExecutor,
    FakePriceService,
    FakeRpc,
    build_deployment,
)

PKG = "0x" + "01" * 32
PYTH = "0x" + "07" * 32
ADD_MARGIN = f"{PKG}::exchange::add_margin"
REMOVE_MARGIN = f"{PKG}::exchange::remove_margin"
SET_ORACLE_PRICE = f"{PKG}::perpetual::set_oracle_price"
PYTH_TARGETS = [
    f"{WORMHOLE_PACKAGE}::vaa::parse_and_verify",
    f"{PYTH}::pyth::create_authenticated_price_infos_using_accumulator",
    f"{PYTH}::pyth::update_single_price_feed",
    f"{PYTH}::hot_potato_vector::destroy",
]


@pytest.fixture
def transactions():
    return DipCoinTransactions(build_deployment())


@pytest.fixture
def resolver():
    calls = []

    async def resolve(symbol):
        calls.append(symbol)
        return PERP_ID if symbol == "BTC-PERP" else None

    resolve.calls = calls
    return resolve


def make_builder(keys, logger, executor, transactions, strategy, resolver):
    return MarginTxBuilder(
        key_manager=keys,
        executor=executor,
        transactions=transactions,
        price_strategy=strategy,
        resolve_perp_id=resolver,
        logger=logger,
    )


def pyth_strategy(transactions, rpc=None, price_service=None):
    return PythPriceUpdateStrategy(rpc or FakeRpc(), price_service or FakePriceService(), transactions)


def test_price_freshness_threshold():
    assert PriceFreshnessCheck(arrival_time=100, clock_time=110).is_stale is True
    assert PriceFreshnessCheck(arrival_time=100, clock_time=103).is_stale is False
    assert PriceFreshnessCheck(arrival_time=100, clock_time=105).is_stale is False
    assert PriceFreshnessCheck(arrival_time=100, clock_time=106).age == 6


@pytest.mark.asyncio
async def test_stale_price_prepends_pyth_update(keys, logger, transactions, resolver):
    executor = FakeExecutor()
    price_service = FakePriceService(data=[ACCUMULATOR_UPDATE])
    strategy = pyth_strategy(transactions, FakeRpc(arrival_time=100, clock_seconds=110), price_service)
    builder = make_builder(keys, logger, executor, transactions, strategy, resolver)

    result = await builder.add_margin("1.5", perp_id=PERP_ID)

    assert result.succeeded
    tx = executor.executed[0].transaction
    assert tx.targets == PYTH_TARGETS + [ADD_MARGIN]
    assert price_service.calls == [PRICE_FEED_ID]
    assert tx.calls[0].arguments[1] == VAA
    assert tx.calls[1].arguments[1] == bytes.fromhex(ACCUMULATOR_UPDATE)
    assert tx.calls[2].arguments[2] == PRICE_INFO_OBJECT_ID
    assert executor.executed[0].identity is keys.main_identity


@pytest.mark.asyncio
async def test_pyth_calls_chain_results_and_fee(keys, logger, transactions, resolver):
    executor = FakeExecutor()
    strategy = pyth_strategy(transactions, FakeRpc(arrival_time=100, clock_seconds=110))
    builder = make_builder(keys, logger, executor, transactions, strategy, resolver)

    await builder.add_margin("1", perp_id=PERP_ID)

    tx = executor.executed[0].transaction
    verify, price_infos, updated, destroy, _ = tx.calls
    assert price_infos.arguments[2] == MoveResult(verify)
    assert updated.arguments[1] == MoveResult(price_infos)
    assert updated.arguments[3] == GasCoinSplit(1)
    assert destroy.arguments == [MoveResult(updated)]
    assert tx.result_index(destroy.arguments[0]) == 2
    assert tx.dependencies_ordered()


def test_pyth_update_fee_override(transactions):
    calls = transactions.pyth_update_calls(PERP_ID, [ACCUMULATOR_UPDATE], fee=50)

    assert calls[2].arguments[3] == GasCoinSplit(50)


def test_pyth_update_rejects_non_accumulator_data(transactions):
    with pytest.raises(ValueError):
        transactions.pyth_update_calls(PERP_ID, ["deadbeef"])

    with pytest.raises(ValueError):
        transactions.pyth_update_calls(PERP_ID, [])


@pytest.mark.asyncio
async def test_fresh_price_skips_update(keys, logger, transactions, resolver):
    executor = FakeExecutor()
    price_service = FakePriceService()
    strategy = pyth_strategy(transactions, FakeRpc(arrival_time=100, clock_seconds=103), price_service)
    builder = make_builder(keys, logger, executor, transactions, strategy, resolver)

    await builder.add_margin("1", perp_id=PERP_ID)

    assert executor.executed[0].transaction.targets == [ADD_MARGIN]
    assert price_service.calls == []


@pytest.mark.asyncio
async def test_refresh_failure_is_not_fatal(keys, logger, transactions, resolver):
    executor = FakeExecutor()
    strategy = pyth_strategy(transactions, FakeRpc(error=TransportError("rpc unavailable")))
    builder = make_builder(keys, logger, executor, transactions, strategy, resolver)

    result = await builder.remove_margin("2", perp_id=PERP_ID)

    assert result.succeeded
    assert executor.executed[0].transaction.targets == [REMOVE_MARGIN]
    warnings = " ".join(str(call.args[0]) for call in logger.warning.call_args_list)
    assert "rpc unavailable" in warnings


@pytest.mark.asyncio
async def test_unexpected_refresh_error_is_not_fatal(keys, logger, transactions, resolver):
    executor = FakeExecutor()
    price_service = FakePriceService(error=AttributeError("'list' object has no attribute 'get'"))
    strategy = pyth_strategy(transactions, FakeRpc(arrival_time=100, clock_seconds=110), price_service)
    builder = make_builder(keys, logger, executor, transactions, strategy, resolver)

    result = await builder.add_margin("1", perp_id=PERP_ID)

    assert result.succeeded
    assert executor.executed[0].transaction.targets == [ADD_MARGIN]


@pytest.mark.asyncio
async def test_malformed_price_update_is_not_fatal(keys, logger, transactions, resolver):
    executor = FakeExecutor()
    strategy = pyth_strategy(
        transactions, FakeRpc(arrival_time=100, clock_seconds=110), FakePriceService(data=["00"])
    )
    builder = make_builder(keys, logger, executor, transactions, strategy, resolver)

    await builder.add_margin("1", perp_id=PERP_ID)

    assert executor.executed[0].transaction.targets == [ADD_MARGIN]


@pytest.mark.asyncio
async def test_price_service_failure_is_reported(transactions):
    strategy = pyth_strategy(
        transactions,
        FakeRpc(arrival_time=100, clock_seconds=200),
        FakePriceService(error=TransportError("hermes down")),
    )
    tx = MoveTransaction()

    outcome = await strategy.apply(tx, ResolvedMarket(perp_id=PERP_ID))

    assert outcome.applied is False
    assert outcome.check.is_stale is True
    assert "hermes down" in outcome.error
    assert tx.calls == []


@pytest.mark.asyncio
async def test_unknown_perpetual_is_reported(transactions):
    outcome = await pyth_strategy(transactions).apply(MoveTransaction(), ResolvedMarket(perp_id="0xunknown"))

    assert outcome.applied is False
    assert outcome.error


@pytest.mark.asyncio
async def test_direct_oracle_price_on_testnet(keys, logger, transactions, resolver):
    executor = FakeExecutor()
    oracle_calls = []

    async def get_oracle_price(symbol):
        oracle_calls.append(symbol)
        return SDKResponse.ok("50000000000")

    strategy = DirectOraclePriceStrategy(get_oracle_price, transactions)
    builder = make_builder(keys, logger, executor, transactions, strategy, resolver)

    await builder.add_margin("1", symbol="BTC-PERP")

    tx = executor.executed[0].transaction
    assert tx.targets == [SET_ORACLE_PRICE, ADD_MARGIN]
    assert tx.calls[0].arguments[1:] == [PERP_ID, "50000000000"]
    assert oracle_calls == ["BTC-PERP"]
    assert resolver.calls == ["BTC-PERP"]


@pytest.mark.asyncio
async def test_direct_oracle_uses_deployment_symbol(transactions):
    oracle_calls = []

    async def get_oracle_price(symbol):
        oracle_calls.append(symbol)
        return SDKResponse.ok("42")

    tx = MoveTransaction()
    outcome = await DirectOraclePriceStrategy(get_oracle_price, transactions).apply(
        tx, ResolvedMarket(perp_id=PERP_ID)
    )

    assert outcome.applied is True
    assert oracle_calls == ["BTC-PERP"]


@pytest.mark.asyncio
async def test_direct_oracle_failure_is_not_fatal(keys, logger, transactions, resolver):
    executor = FakeExecutor()

    async def get_oracle_price(symbol):
        return SDKResponse.fail("Failed to get oracle price")

    strategy = DirectOraclePriceStrategy(get_oracle_price, transactions)
    builder = make_builder(keys, logger, executor, transactions, strategy, resolver)

    await builder.add_margin("1", perp_id=PERP_ID)

    assert executor.executed[0].transaction.targets == [ADD_MARGIN]


@pytest.mark.asyncio
async def test_margin_call_arguments(keys, logger, transactions, resolver):
    executor = FakeExecutor()
    builder = make_builder(keys, logger, executor, transactions, None, resolver)

    await builder.add_margin("1.5", perp_id=PERP_ID)

    call = executor.executed[0].transaction.calls[-1]
    assert call.arguments[0] == "0x6"
    assert call.arguments[2] == PERP_ID
    assert call.arguments[5] == keys.address
    assert call.arguments[6] == "1500000000000000000"


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [0, "0", "-1", "abc", "", None, "0.0000000000000000001"])
async def test_invalid_amount_makes_no_calls(keys, logger, transactions, resolver, amount):
    executor = FakeExecutor()
    rpc = FakeRpc()
    builder = make_builder(keys, logger, executor, transactions, pyth_strategy(transactions, rpc), resolver)

    with pytest.raises(InvalidAmountError):
        await builder.add_margin(amount, symbol="BTC-PERP")

    assert executor.executed == []
    assert executor.direct_calls == []
    assert rpc.calls == []
    assert resolver.calls == []


@pytest.mark.asyncio
async def test_unresolvable_symbol(keys, logger, transactions, resolver):
    builder = make_builder(keys, logger, FakeExecutor(), transactions, None, resolver)

    with pytest.raises(MarketNotResolvedError):
        await builder.add_margin("1", symbol="DOGE-PERP")

    with pytest.raises(MarketNotResolvedError):
        await builder.add_margin("1")


@pytest.mark.asyncio
async def test_direct_call_without_composition(keys, logger, transactions, resolver):
    executor = FakeExecutor(supports_composition=False)
    rpc = FakeRpc(arrival_time=100, clock_seconds=500)
    builder = make_builder(keys, logger, executor, transactions, pyth_strategy(transactions, rpc), resolver)

    result = await builder.remove_margin("3", perp_id=PERP_ID, account="0xsub")

    assert result.digest == "0xremove_margin"
    assert executor.executed == []
    assert rpc.calls == []
    call = executor.direct_calls[0]
    assert call.identity is keys.main_identity
    assert call.args[:3] == (PERP_ID, "3000000000000000000", "0xsub")


@pytest.mark.asyncio
async def test_composed_transaction_unavailable_falls_back(keys, logger, transactions, resolver):
    executor = FakeExecutor(execute_error=ComposedTransactionUnavailable("no programmable transactions"))
    builder = make_builder(keys, logger, executor, transactions, None, resolver)

    result = await builder.adjust(MarginAdjustment(amount="1", direction=MarginDirection.ADD, perp_id=PERP_ID))

    assert result.digest == "0xadd_margin"
    assert len(executor.executed) == 1
    assert [call.name for call in executor.direct_calls] == ["add_margin"]


@pytest.mark.asyncio
async def test_chain_error_propagates_without_retry(keys, logger, transactions, resolver):
    executor = FakeExecutor(execute_error=RuntimeError("MoveAbort: insufficient margin"))
    builder = make_builder(keys, logger, executor, transactions, None, resolver)

    with pytest.raises(RuntimeError, match="insufficient margin"):
        await builder.remove_margin("1", perp_id=PERP_ID)

    assert len(executor.executed) == 1
    assert executor.direct_calls == []


@pytest.mark.asyncio
async def test_bank_transfers_use_usdc_decimals(keys, logger, transactions, resolver):
    executor = FakeExecutor()
    builder = make_builder(keys, logger, executor, transactions, None, resolver)

    await builder.deposit_to_bank(100)
    await builder.withdraw_from_bank("2.5")

    deposit, withdraw = executor.direct_calls
    assert deposit.name == "deposit_to_bank"
    assert deposit.args[:2] == ("100000000", keys.address)
    assert withdraw.args[:2] == ("2500000", keys.address)


@pytest.mark.asyncio
async def test_bank_rejects_invalid_amount(keys, logger, transactions, resolver):
    executor = FakeExecutor()
    builder = make_builder(keys, logger, executor, transactions, None, resolver)

    with pytest.raises(InvalidAmountError):
        await builder.deposit_to_bank("0.0000001")

    assert executor.direct_calls == []


@pytest.mark.asyncio
async def test_set_sub_account_composed(keys, logger, transactions, resolver):
    executor = FakeExecutor()
    builder = make_builder(keys, logger, executor, transactions, None, resolver)
    sub_address = "0x" + "99" * 32

    result = await builder.set_sub_account(sub_address)

    assert result.succeeded
    call = executor.executed[0].transaction.calls[0]
    assert call.target == f"{PKG}::roles::set_sub_account"
    assert call.arguments == ["0x" + "04" * 32, sub_address, True]
    assert executor.executed[0].identity is keys.main_identity


@pytest.mark.asyncio
async def test_set_sub_account_direct(keys, logger, transactions, resolver):
    executor = FakeExecutor(supports_composition=False)
    builder = make_builder(keys, logger, executor, transactions, None, resolver)

    await builder.set_sub_account("0xsub", status=False)

    call = executor.direct_calls[0]
    assert call.name == "set_sub_account"
    assert call.args[:2] == ("0xsub", False)


@pytest.mark.asyncio
async def test_set_sub_account_requires_address(keys, logger, transactions, resolver):
    executor = FakeExecutor()
    builder = make_builder(keys, logger, executor, transactions, None, resolver)

    with pytest.raises(InvalidAddressError):
        await builder.set_sub_account("")

    assert executor.executed == []
