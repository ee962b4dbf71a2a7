"""
Key manager module for DipCoin client.

Holds the main (funding) identity and the optional sub (trading) identity.
"""

from typing import Any, Optional, Union

from helpers.unified_logger import short_id

from ..utils.signing import SuiIdentity

KeyInput = Union[str, SuiIdentity]


class KeyManager:
    """
    Resolves private keys into signing identities.

    Orders and cancels are signed by the sub identity when one is configured;
    authentication of the main session, on-chain margin and bank transfers
    always use the main identity.
    """

    def __init__(
        self,
        private_key: KeyInput,
        sub_account_key: Optional[KeyInput] = None,
        *,
        legacy_support: bool = False,
        logger: Any = None,
    ):
        self.logger = logger
        self.legacy_support = legacy_support
        self.main_identity = self._load(private_key)
        self.sub_identity = self._load(sub_account_key) if sub_account_key else None

        if self.logger:
            message = f"[DIPCOIN] Loaded {self.main_identity.scheme} identity {short_id(self.address)}"
            if self.sub_identity is not None:
                message += f" with sub account {short_id(self.sub_address)}"
            self.logger.info(message)

    def _load(self, key: KeyInput) -> SuiIdentity:
        if isinstance(key, SuiIdentity):
            return key
        return SuiIdentity.from_private_key(key, legacy_support=self.legacy_support)

    @property
    def address(self) -> str:
        return self.main_identity.address

    @property
    def sub_address(self) -> Optional[str]:
        return self.sub_identity.address if self.sub_identity is not None else None

    @property
    def has_sub_account(self) -> bool:
        return self.sub_identity is not None

    def signing_identity(self) -> SuiIdentity:
        """Identity used for trading: the sub account if configured, else main."""
        return self.sub_identity if self.sub_identity is not None else self.main_identity

    def identity_for(self, trading_scoped: bool) -> SuiIdentity:
        return self.signing_identity() if trading_scoped else self.main_identity
