"""
Submission pipeline for DipCoin authenticated requests.

Every authenticated call goes through ``SubmissionPipeline.submit`` so the
retry-on-expiry behaviour lives in one place.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from exchange_clients.base_models import SDKResponse, format_error
from networking.exceptions import TransportError
from networking.http import ApiResponse

from ...common import SESSION_EXPIRED_CODE, SUCCESS_CODE
from ..utils.signing import SuiIdentity
from .session_manager import SessionManager

REFRESH_FAILED_MESSAGE = "Authentication expired and refresh failed"


@dataclass
class AuthenticatedRequest:
    """One request to an authenticated endpoint."""

    method: str
    path: str
    params: Optional[Dict[str, Any]] = None
    body: Any = None
    # Sent as the trading (sub) identity rather than main.
    trading_scoped: bool = False


class SubmissionPipeline:
    """
    Authenticate, send, and on session expiry re-authenticate and resend once.

    A second expiry, or any failure on the resend, is terminal.
    """

    def __init__(self, transport: Any, sessions: SessionManager, logger: Any):
        self.transport = transport
        self.sessions = sessions
        self.logger = logger

    async def _send(self, request: AuthenticatedRequest, identity: SuiIdentity) -> ApiResponse:
        async with self.sessions.identity_scope(identity) as headers:
            if request.method.upper() == "GET":
                return await self.transport.get(request.path, request.params, **headers)
            return await self.transport.post(request.path, request.body, **headers)

    def _normalize(
        self,
        request: AuthenticatedRequest,
        response: ApiResponse,
        normalize: Optional[Callable[[Any], Any]],
    ) -> SDKResponse:
        if normalize is None:
            return SDKResponse.ok(response.data)
        try:
            return SDKResponse.ok(normalize(response.data))
        except Exception as exc:
            self.logger.error(f"[DIPCOIN] Unexpected response shape from {request.path}: {exc}")
            return SDKResponse.fail(format_error(exc), data=response.to_dict())

    async def submit(
        self,
        request: AuthenticatedRequest,
        normalize: Optional[Callable[[Any], Any]] = None,
        default_error: str = "Request failed",
    ) -> SDKResponse:
        identity = self.sessions.keys.identity_for(request.trading_scoped)
        try:
            auth = await self.sessions.authenticate(identity)
            if not auth.status:
                return SDKResponse.fail(auth.error or "Authentication failed")

            response = await self._send(request, identity)

            if response.code == SESSION_EXPIRED_CODE:
                self.logger.warning(f"[DIPCOIN] Session expired on {request.path}, re-authenticating")
                self.sessions.clear(identity)
                auth = await self.sessions.authenticate(identity)
                if not auth.status:
                    return SDKResponse.fail(REFRESH_FAILED_MESSAGE)
                response = await self._send(request, identity)
                if response.code != SUCCESS_CODE:
                    return SDKResponse.fail(REFRESH_FAILED_MESSAGE, data=response.to_dict())

            if response.code == SUCCESS_CODE:
                return self._normalize(request, response, normalize)

            error = response.message or default_error
            self.logger.warning(f"[DIPCOIN] {request.method} {request.path} failed: {error}")
            return SDKResponse.fail(error, data=response.to_dict())
        except TransportError as exc:
            self.logger.error(f"[DIPCOIN] {request.method} {request.path} transport error: {exc}")
            return SDKResponse.fail(format_error(exc))
