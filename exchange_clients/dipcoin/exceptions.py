"""
Exceptions raised by the DipCoin client.

Validation and programmer errors are raised before any network call;
server-side failures come back as ``SDKResponse`` envelopes instead.
"""


class DipCoinClientError(Exception):
    """Base class for DipCoin client errors."""


class InvalidKeyFormatError(DipCoinClientError):
    """The private key could not be decoded under any supported scheme."""


class UnsupportedSchemeError(DipCoinClientError):
    """The key or signature uses a scheme the protocol does not accept."""


class MissingOrderFieldError(DipCoinClientError, ValueError):
    """A mandatory order field is missing or invalid."""

    def __init__(self, field_name: str, message: str = None):
        self.field_name = field_name
        super().__init__(message or f"Missing required order parameter: {field_name}")


class MissingMarketIdError(DipCoinClientError, ValueError):
    """The order does not carry a perpetual id."""

    def __init__(self, message: str = None):
        super().__init__(
            message
            or "Market (PerpetualID) is required. Provide the PerpetualID for the trading pair."
        )


class InvalidAmountError(DipCoinClientError, ValueError):
    """A collateral amount is missing, non-numeric or not strictly positive."""


class InvalidAddressError(DipCoinClientError, ValueError):
    """A Sui address argument is empty."""


class MarketNotResolvedError(DipCoinClientError):
    """Neither a perpetual id nor a resolvable symbol was supplied."""


class DeploymentConfigError(DipCoinClientError):
    """The on-chain deployment configuration is missing a required entry."""


class ComposedTransactionUnavailable(DipCoinClientError):
    """The on-chain executor cannot build composed transactions."""
