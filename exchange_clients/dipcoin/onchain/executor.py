"""
On-chain execution interface for DipCoin.

Transactions are described as ordered Move calls; an ``OnChainExecutor``
signs and submits them. The executor is supplied by the caller (wallet,
relayer or a Sui SDK binding), so only the contract lives here.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, List, Optional, Union

if TYPE_CHECKING:
    from ..client.utils.signing import SuiIdentity


@dataclass
class MoveCall:
    """A single ``package::module::function`` call."""

    target: str
    arguments: List["MoveArgument"] = field(default_factory=list)
    type_arguments: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class MoveResult:
    """
    Output of an earlier call in the same transaction.

    Refers to the call object, so the reference survives calls being
    prepended ahead of it.
    """

    call: MoveCall


@dataclass(frozen=True)
class GasCoinSplit:
    """A coin of ``amount`` MIST split off the gas coin (Pyth update fee)."""

    amount: int


MoveArgument = Union[MoveResult, GasCoinSplit, Any]


@dataclass
class MoveTransaction:
    """Programmable transaction assembled from Move calls in order."""

    calls: List[MoveCall] = field(default_factory=list)
    gas_budget: Optional[int] = None
    sender: Optional[str] = None

    def add(self, call: MoveCall) -> "MoveTransaction":
        self.calls.append(call)
        return self

    def prepend(self, call: MoveCall) -> "MoveTransaction":
        self.calls.insert(0, call)
        return self

    def result_index(self, ref: MoveResult) -> int:
        """Position of the call ``ref`` points at; it must come earlier than any user."""
        for index, call in enumerate(self.calls):
            if call is ref.call:
                return index
        raise ValueError(f"{ref.call.target} is not part of this transaction")

    def dependencies_ordered(self) -> bool:
        """True when every result reference points at an earlier call."""
        for index, call in enumerate(self.calls):
            for argument in call.arguments:
                if isinstance(argument, MoveResult):
                    if not any(earlier is argument.call for earlier in self.calls[:index]):
                        return False
        return True

    @property
    def targets(self) -> List[str]:
        return [call.target for call in self.calls]


@dataclass
class ChainResult:
    digest: Optional[str]
    status: str
    error: Optional[str] = None
    raw: Any = None

    @property
    def succeeded(self) -> bool:
        return self.status == "success"


class OnChainExecutor(ABC):
    """
    Signs and submits DipCoin transactions.

    Call arguments are plain values (object ids, addresses, amounts, byte
    vectors) or the ``MoveResult`` and ``GasCoinSplit`` markers, which the
    executor maps to earlier call results and coins split off gas.

    Implementations that can only issue the fixed protocol calls set
    ``supports_composition = False`` (or raise
    ``ComposedTransactionUnavailable`` from ``execute``); callers then use the
    direct methods.
    """

    supports_composition: bool = True

    @abstractmethod
    async def execute(self, transaction: MoveTransaction, identity: SuiIdentity) -> ChainResult:
        """Sign ``transaction`` with ``identity`` and submit it."""

    @abstractmethod
    async def add_margin(
        self,
        identity: SuiIdentity,
        perp_id: str,
        amount: str,
        account: Optional[str] = None,
        gas_budget: Optional[int] = None,
    ) -> ChainResult:
        """Single-call margin deposit into an isolated position (amount in wei)."""

    @abstractmethod
    async def remove_margin(
        self,
        identity: SuiIdentity,
        perp_id: str,
        amount: str,
        account: Optional[str] = None,
        gas_budget: Optional[int] = None,
    ) -> ChainResult:
        """Single-call margin withdrawal from an isolated position (amount in wei)."""

    @abstractmethod
    async def deposit_to_bank(
        self,
        identity: SuiIdentity,
        amount: str,
        account: str,
        gas_budget: Optional[int] = None,
    ) -> ChainResult:
        """Move USDC (base units) from the wallet into the exchange bank."""

    @abstractmethod
    async def withdraw_from_bank(
        self,
        identity: SuiIdentity,
        amount: str,
        account: str,
        gas_budget: Optional[int] = None,
    ) -> ChainResult:
        """Move USDC (base units) from the exchange bank back to the wallet."""

    @abstractmethod
    async def set_sub_account(
        self,
        identity: SuiIdentity,
        sub_address: str,
        status: bool = True,
        gas_budget: Optional[int] = None,
    ) -> ChainResult:
        """Authorize (or revoke) ``sub_address`` to trade for the signer's account."""
