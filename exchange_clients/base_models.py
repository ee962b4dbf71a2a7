"""
Shared data structures, exceptions, and utilities for exchange clients.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, List, Optional, Tuple, Type, TypeVar, Union

from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from helpers.unified_logger import get_core_logger

T = TypeVar("T")

_retry_logger = get_core_logger("retry")


class MissingCredentialsError(Exception):
    """Raised when exchange credentials are missing or invalid (placeholders)."""
    pass


def validate_credentials(
    credential_name: str,
    credential_value: Optional[str],
    placeholder_values: Optional[List[str]] = None,
) -> None:
    """
    Validate exchange credentials to ensure they're not missing or placeholders.

    Args:
        credential_name: Name of the credential (e.g., 'DIPCOIN_PRIVATE_KEY')
        credential_value: Value of the credential from environment
        placeholder_values: List of placeholder values to reject

    Raises:
        MissingCredentialsError: If credential is missing or is a placeholder
    """
    if placeholder_values is None:
        placeholder_values = [
            "your_private_key_here",
            "YOUR_PRIVATE_KEY_HERE",
            "your_sub_account_key_here",
            "YOUR_SUB_ACCOUNT_KEY_HERE",
            "PLACEHOLDER",
            "placeholder",
            "",
        ]

    if not credential_value:
        raise MissingCredentialsError(f"Missing {credential_name} environment variable")

    if credential_value in placeholder_values:
        raise MissingCredentialsError(f"{credential_name} is not configured (placeholder or empty)")


def query_retry(
    default_return: Any = None,
    exception_type: Union[Type[Exception], Tuple[Type[Exception], ...]] = (Exception,),
    max_attempts: int = 3,
    min_wait: float = 0.5,
    max_wait: float = 4,
    reraise: bool = False,
):
    """
    Retry decorator for idempotent read operations with exponential backoff.

    Never apply this to order submission or on-chain execution: resubmitting
    those can duplicate effects.

    Args:
        default_return: Value to return if all retries fail (ignored when reraise=True)
        exception_type: Exception types to retry on
        max_attempts: Maximum number of attempts
        min_wait: Minimum wait time between retries
        max_wait: Maximum wait time between retries
        reraise: Whether to reraise the last exception after retries
    """

    def retry_error_callback(retry_state: RetryCallState):
        _retry_logger.warning(
            f"Operation: [{retry_state.fn.__name__}] failed after {retry_state.attempt_number} attempts, "
            f"exception: {retry_state.outcome.exception()}"
        )
        if reraise:
            raise retry_state.outcome.exception()
        return default_return

    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=min_wait, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(exception_type),
        retry_error_callback=retry_error_callback,
    )


@dataclass
class SDKResponse(Generic[T]):
    """
    Uniform success/failure envelope returned by public client operations.

    ``data`` carries the normalized payload on success and, on failure, the
    raw server response when one was received.
    """

    status: bool
    data: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None) -> "SDKResponse":
        return cls(status=True, data=data)

    @classmethod
    def fail(cls, error: str, data: Any = None) -> "SDKResponse":
        return cls(status=False, data=data, error=error)


def format_error(error: BaseException | str | Any) -> str:
    """Render an exception or arbitrary value as an error message."""
    if isinstance(error, BaseException):
        return str(error) or error.__class__.__name__
    return str(error)
