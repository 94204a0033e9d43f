"""
Authentication service for the journal API

Login, registration and logout calls run through the resilient request
executor. The session token lives in the shared key-value store.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..clock import Clock, system_clock
from ..config import ClientConfig
from ..error_recovery.errors import ErrorKind, RequestError
from ..network.request_executor import RequestExecutor
from ..storage import KeyValueStore, StorageKeys

logger = logging.getLogger(__name__)

# Failures after which the server-side session state is unknown
CLEAR_ON_LOGOUT_FAILURE = frozenset({
    ErrorKind.NETWORK,
    ErrorKind.SERVER,
    ErrorKind.TIMEOUT,
    ErrorKind.AUTHENTICATION,
    ErrorKind.SERVICE_UNAVAILABLE,
})


class AuthService:
    """Session management on top of the request executor"""

    def __init__(self, executor: RequestExecutor, config: ClientConfig, store: KeyValueStore, clock: Clock = None):
        self.executor = executor
        self.config = config
        self.store = store
        self.clock = clock or system_clock

    def _request_context(self, name: str, method: str = "POST") -> Dict[str, Any]:
        return {
            "endpoint": self.config.endpoints["auth"][name],
            "method": method,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    def _wrap(self, error: RequestError, prefix: str, request_context: Dict[str, Any]) -> RequestError:
        context = dict(error.context)
        context.update(request_context)
        context["original_message"] = error.message
        context["circuit_state"] = self.executor.circuit_breaker.state.value
        return RequestError(error.kind, f"{prefix}: {error.message}", context)

    async def _store_token(self, data: Any) -> bool:
        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            return False
        await self.store.set(StorageKeys.AUTH_TOKEN, token)
        await self.store.set(StorageKeys.AUTH_TIMESTAMP, str(int(self.clock.time() * 1000)))
        return True

    async def register(self, name: str, email: str, password: str) -> Any:
        """Register a user; stores the token when the server logs the user in"""
        request_context = self._request_context("register")
        try:
            data = await self.executor.execute(
                self.config.url_for("auth", "register"),
                {"method": "POST", "json": {"name": name, "email": email, "password": password}},
            )
        except RequestError as e:
            logger.error(f"Registration error: {e.kind.value}: {e.message}")
            raise self._wrap(e, "Registration failed", request_context) from e

        await self._store_token(data)
        return data

    async def login(self, email: str, password: str) -> Any:
        """Log in and store the session token"""
        request_context = self._request_context("login")
        try:
            data = await self.executor.execute(
                self.config.url_for("auth", "login"),
                {"method": "POST", "json": {"email": email, "password": password}},
            )
        except RequestError as e:
            logger.error(f"Login error: {e.kind.value}: {e.message}")
            raise self._wrap(e, "Login failed", request_context) from e

        if not await self._store_token(data):
            raise RequestError(ErrorKind.AUTHENTICATION, "No authentication token received", request_context)

        logger.info(f"Logged in as {email}")
        return data

    async def logout(self) -> None:
        """Log out on the server and clear the local session"""
        request_context = self._request_context("logout")
        token = await self.get_token()
        if not token:
            raise RequestError(ErrorKind.AUTHENTICATION, "No active session found", request_context)

        try:
            await self.executor.execute(
                self.config.url_for("auth", "logout"),
                {"method": "POST", "headers": {"Authorization": f"Bearer {token}"}},
            )
        except RequestError as e:
            if e.kind in CLEAR_ON_LOGOUT_FAILURE:
                await self.clear_auth_data()
            logger.error(f"Logout error: {e.kind.value}: {e.message}")
            raise self._wrap(e, "Logout failed", request_context) from e

        await self.clear_auth_data()
        logger.info("Logged out")

    async def clear_auth_data(self) -> None:
        await self.store.delete(StorageKeys.AUTH_TOKEN, StorageKeys.AUTH_TIMESTAMP)

    async def get_token(self) -> Optional[str]:
        return await self.store.get(StorageKeys.AUTH_TOKEN)

    async def is_authenticated(self) -> bool:
        return bool(await self.get_token())

    async def auth_headers(self) -> Dict[str, str]:
        """Authorization header for authenticated endpoints, empty without a session"""
        token = await self.get_token()
        return {"Authorization": f"Bearer {token}"} if token else {}
