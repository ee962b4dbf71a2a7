"""
Session manager module for DipCoin client.

Keeps one bearer-token session per identity, deduplicates concurrent
authentication and supplies the wallet and token each request is sent
with.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from exchange_clients.base_models import SDKResponse, format_error
from helpers.unified_logger import short_id
from networking.exceptions import TransportError

from ...common import API_ENDPOINTS, ONBOARDING_MESSAGE, SUCCESS_CODE
from ..utils.signing import MessageSigner, SuiIdentity
from .key_manager import KeyManager


class Session:
    """Token state for one identity: NoToken -> Authenticating -> Authenticated."""

    NO_TOKEN = "NoToken"
    AUTHENTICATING = "Authenticating"
    AUTHENTICATED = "Authenticated"

    def __init__(self, identity: SuiIdentity):
        self.identity = identity
        self.token: Optional[str] = None
        # Resolved with the SDKResponse of the running authentication.
        self.in_flight: Optional[asyncio.Future] = None

    @property
    def state(self) -> str:
        if self.token:
            return self.AUTHENTICATED
        if self.in_flight is not None:
            return self.AUTHENTICATING
        return self.NO_TOKEN

    def clear(self) -> None:
        self.token = None


class SessionManager:
    """
    Session manager for DipCoin.

    Handles:
    - Onboarding-signature authentication per identity
    - Single in-flight authentication with bounded waiting for other callers
    - Per-request identity headers, with the transport defaults kept on main
    """

    def __init__(
        self,
        transport: Any,
        key_manager: KeyManager,
        signer: MessageSigner,
        logger: Any,
        auth_wait_timeout: float = 10.0,
    ):
        self.transport = transport
        self.keys = key_manager
        self.signer = signer
        self.logger = logger
        self.auth_wait_timeout = auth_wait_timeout
        self._sessions: Dict[str, Session] = {}

        self.transport.set_wallet_address(self.keys.address)

    # ========================================================================
    # SESSION STATE
    # ========================================================================

    def session_for(self, identity: Optional[SuiIdentity] = None) -> Session:
        identity = identity or self.keys.main_identity
        session = self._sessions.get(identity.address)
        if session is None:
            session = Session(identity)
            self._sessions[identity.address] = session
        return session

    def token_for(self, identity: Optional[SuiIdentity] = None) -> Optional[str]:
        return self.session_for(identity).token

    def state(self, identity: Optional[SuiIdentity] = None) -> str:
        return self.session_for(identity).state

    def clear(self, identity: Optional[SuiIdentity] = None) -> None:
        session = self.session_for(identity)
        session.clear()
        if self.transport.wallet_address == session.identity.address:
            self.transport.set_auth_token(None)

    def clear_all(self) -> None:
        for session in self._sessions.values():
            session.clear()
        self.transport.set_auth_token(None)

    # ========================================================================
    # AUTHENTICATION
    # ========================================================================

    async def authenticate(self, identity: Optional[SuiIdentity] = None) -> SDKResponse:
        """
        Return a bearer token for ``identity`` (main by default).

        A cached token returns without network. If another caller is already
        authenticating the same identity, this waits up to
        ``auth_wait_timeout`` for that result instead of signing again.
        """
        session = self.session_for(identity)
        if session.token:
            return SDKResponse.ok(session.token)

        if session.in_flight is not None:
            return await self._wait_for(session)

        future = asyncio.get_running_loop().create_future()
        session.in_flight = future
        result = SDKResponse.fail("Authentication was interrupted")
        try:
            result = await self._request_token(session.identity)
            if result.status:
                session.token = result.data
                if self.transport.wallet_address == session.identity.address:
                    self.transport.set_auth_token(session.token)
        finally:
            session.in_flight = None
            if not future.done():
                future.set_result(result)
        return result

    async def _wait_for(self, session: Session) -> SDKResponse:
        try:
            return await asyncio.wait_for(asyncio.shield(session.in_flight), self.auth_wait_timeout)
        except asyncio.TimeoutError:
            self.logger.warning(
                f"[DIPCOIN] Timed out after {self.auth_wait_timeout}s waiting for authentication "
                f"of {short_id(session.identity.address)}"
            )
            return SDKResponse.fail("Timed out waiting for authentication")

    async def _request_token(self, identity: SuiIdentity) -> SDKResponse:
        signature = self.signer.sign_text(identity, ONBOARDING_MESSAGE)
        body = {
            "userAddress": identity.address,
            "isTermAccepted": True,
            "signature": signature,
        }
        try:
            response = await self.transport.post(API_ENDPOINTS["AUTHORIZE"], body)
        except TransportError as exc:
            self.logger.error(f"[DIPCOIN] Authentication request failed: {exc}")
            return SDKResponse.fail(format_error(exc))

        token = response.data.get("token") if isinstance(response.data, dict) else None
        if response.code == SUCCESS_CODE and token:
            self.logger.info(f"[DIPCOIN] Authenticated {short_id(identity.address)}")
            return SDKResponse.ok(token)

        error = response.message or "Authentication failed"
        self.logger.warning(f"[DIPCOIN] Authentication failed for {short_id(identity.address)}: {error}")
        return SDKResponse.fail(error, data=response.to_dict())

    async def get_token(self, force_refresh: bool = False, identity: Optional[SuiIdentity] = None) -> SDKResponse:
        if force_refresh:
            self.clear(identity)
        return await self.authenticate(identity)

    # ========================================================================
    # IDENTITY SCOPING
    # ========================================================================

    def request_identity(self, identity: SuiIdentity) -> Dict[str, Optional[str]]:
        """Wallet and bearer token to send with a request made as ``identity``."""
        return {"wallet_address": identity.address, "auth_token": self.session_for(identity).token}

    def restore_main_context(self) -> None:
        main = self.keys.main_identity
        self.transport.set_wallet_address(main.address)
        self.transport.set_auth_token(self.session_for(main).token)

    @asynccontextmanager
    async def identity_scope(self, identity: SuiIdentity) -> AsyncIterator[Dict[str, Optional[str]]]:
        """
        Request headers for ``identity`` for the duration of the block.

        The shared transport is never pointed at another identity, so
        concurrent calls need no lock and cannot see each other's wallet.
        The main context is re-applied on exit.
        """
        try:
            yield self.request_identity(identity)
        finally:
            self.restore_main_context()
