"""
Move call builders for the DipCoin protocol and the Pyth oracle.

Targets are resolved against the deployment config of the active network.
"""

from typing import List, Optional

from ..common import SUI_CLOCK_OBJECT_ID
from ..config import DeploymentConfig
from ..exceptions import DeploymentConfigError
from .executor import GasCoinSplit, MoveCall, MoveResult

ACCUMULATOR_MAGIC = bytes.fromhex("504e4155")  # "PNAU"


def extract_vaa(update: bytes) -> bytes:
    """
    Return the Wormhole VAA embedded in a Pyth accumulator update.

    Layout: magic(4) major(1) minor(1) trailing_size(1) trailing(n)
    update_type(1) vaa_size(u16 BE) vaa(vaa_size) ...
    """
    if update[:4] != ACCUMULATOR_MAGIC:
        raise ValueError("Price update is not an accumulator message")
    size_offset = 7 + update[6] + 1
    if len(update) < size_offset + 2:
        raise ValueError("Accumulator message is truncated")
    vaa_size = int.from_bytes(update[size_offset:size_offset + 2], "big")
    vaa = update[size_offset + 2:size_offset + 2 + vaa_size]
    if len(vaa) != vaa_size:
        raise ValueError("Accumulator message is truncated")
    return vaa


class DipCoinTransactions:
    """Factory for the Move calls that make up margin transactions."""

    def __init__(self, deployment: DeploymentConfig):
        self.deployment = deployment

    def _target(self, module: str, function: str) -> str:
        return f"{self.deployment.package_id}::{module}::{function}"

    def _price_info_object(self, perp_id: str) -> str:
        perp = self.deployment.perpetual(perp_id)
        if not perp.price_info_object_id:
            raise DeploymentConfigError(f"Perpetual {perp_id} has no price info object")
        return perp.price_info_object_id

    def margin_call(self, direction: str, perp_id: str, account: str, amount: str) -> MoveCall:
        function = "add_margin" if direction == "add" else "remove_margin"
        return MoveCall(
            target=self._target("exchange", function),
            arguments=[
                SUI_CLOCK_OBJECT_ID,
                self.deployment.protocol_config_id,
                perp_id,
                self.deployment.require("bank_id"),
                self.deployment.require("sub_accounts_id"),
                account,
                amount,
            ],
        )

    def set_sub_account_call(self, sub_address: str, status: bool = True) -> MoveCall:
        return MoveCall(
            target=self._target("roles", "set_sub_account"),
            arguments=[self.deployment.require("sub_accounts_id"), sub_address, status],
        )

    def set_oracle_price_call(self, perp_id: str, price: str) -> MoveCall:
        return MoveCall(
            target=self._target("perpetual", "set_oracle_price"),
            arguments=[self.deployment.protocol_config_id, perp_id, price],
        )

    def pyth_update_calls(self, perp_id: str, update_data: List[str], fee: Optional[int] = None) -> List[MoveCall]:
        """
        Verify a Hermes update through Wormhole and apply it to the
        perpetual's price info object.

        Each call consumes the previous one's result: the verified VAA feeds
        the authenticated price infos, which feed the single-feed update,
        whose returned vector is destroyed at the end.
        """
        if not update_data:
            raise ValueError("No price update data")
        pyth_package = self.deployment.require("pyth_package_id")
        pyth_state = self.deployment.require("pyth_state_id")
        price_info_object = self._price_info_object(perp_id)
        update = bytes.fromhex(update_data[0].removeprefix("0x"))

        verify = MoveCall(
            target=f"{self.deployment.require('wormhole_package_id')}::vaa::parse_and_verify",
            arguments=[self.deployment.require("wormhole_state_id"), extract_vaa(update), SUI_CLOCK_OBJECT_ID],
        )
        price_infos = MoveCall(
            target=f"{pyth_package}::pyth::create_authenticated_price_infos_using_accumulator",
            arguments=[pyth_state, update, MoveResult(verify), SUI_CLOCK_OBJECT_ID],
        )
        updated = MoveCall(
            target=f"{pyth_package}::pyth::update_single_price_feed",
            arguments=[
                pyth_state,
                MoveResult(price_infos),
                price_info_object,
                GasCoinSplit(fee if fee is not None else self.deployment.pyth_update_fee),
                SUI_CLOCK_OBJECT_ID,
            ],
        )
        destroy = MoveCall(
            target=f"{pyth_package}::hot_potato_vector::destroy",
            arguments=[MoveResult(updated)],
            type_arguments=[f"{pyth_package}::price_info::PriceInfo"],
        )
        return [verify, price_infos, updated, destroy]
