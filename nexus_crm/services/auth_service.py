"""
Session management.

Two providers share one interface: SupabaseAuthClient talks to Supabase Auth
(GoTrue) over REST, LocalAuthProvider simulates sign-in for the local-only
mode. Both persist the current session in local storage, restore it on
startup and notify listeners whenever the session changes.
"""

import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from nexus_crm.config import settings
from nexus_crm.infrastructure.observability.logging import get_logger
from nexus_crm.models.domain.contact_domain import Session
from nexus_crm.services.local_storage import SESSION_KEY, LocalStorage, LocalStorageError
from nexus_crm.services.store.seed import DEFAULT_USER_ID

logger = get_logger(__name__)

SessionListener = Callable[[Session | None], Awaitable[None]]

ADMIN_EMAIL = "admin@nexus.com"


class AuthError(Exception):
    """Raised when sign-in, sign-up or sign-out fails."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class AuthProvider(ABC):
    def __init__(self, storage: LocalStorage | None = None):
        self._storage = storage
        self._session: Session | None = None
        self._listeners: list[SessionListener] = []

    @property
    def current_session(self) -> Session | None:
        return self._session

    def on_session_change(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    async def restore(self) -> Session | None:
        """Read the persisted session once at startup."""
        if self._storage is None:
            return None
        try:
            raw = await self._storage.get_json(SESSION_KEY)
        except LocalStorageError as e:
            logger.warning("Could not restore session", error=str(e))
            return None
        if raw:
            self._session = Session.model_validate(raw)
            logger.info("Session restored", user_id=self._session.user_id)
        return self._session

    async def _set_session(self, session: Session | None) -> None:
        self._session = session
        if self._storage is not None:
            if session is None:
                await self._storage.delete(SESSION_KEY)
            else:
                await self._storage.set_json(SESSION_KEY, session.model_dump())
        for listener in self._listeners:
            await listener(session)

    async def sign_in(self, email: str, password: str) -> Session:
        session = await self._authenticate(email, password, sign_up=False)
        await self._set_session(session)
        logger.info("User signed in", user_id=session.user_id)
        return session

    async def sign_up(self, email: str, password: str) -> Session:
        session = await self._authenticate(email, password, sign_up=True)
        await self._set_session(session)
        logger.info("User signed up", user_id=session.user_id)
        return session

    async def sign_out(self) -> None:
        session = self._session
        if session is not None:
            try:
                await self._revoke(session)
            except AuthError as e:
                # The local session is dropped regardless
                logger.warning("Remote sign-out failed", error=str(e))
        await self._set_session(None)
        logger.info("User signed out")

    async def close(self) -> None:
        pass

    @abstractmethod
    async def _authenticate(self, email: str, password: str, *, sign_up: bool) -> Session: ...

    @abstractmethod
    async def _revoke(self, session: Session) -> None: ...


class LocalAuthProvider(AuthProvider):
    """Offline sign-in: the admin address maps to the seeded user, anyone else gets a fresh id."""

    async def _authenticate(self, email: str, password: str, *, sign_up: bool) -> Session:
        if not email:
            raise AuthError("Email is required")
        user_id = DEFAULT_USER_ID if email == ADMIN_EMAIL else f"user_{int(time.time() * 1000)}"
        return Session(user_id=user_id, email=email)

    async def _revoke(self, session: Session) -> None:
        return None


class SupabaseAuthClient(AuthProvider):
    """Supabase Auth (GoTrue) over REST."""

    def __init__(
        self,
        storage: LocalStorage | None = None,
        base_url: str | None = None,
        anon_key: str | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(storage)
        self._anon_key = anon_key or settings.SUPABASE_ANON_KEY or ""
        base = (base_url or settings.SUPABASE_URL or "").rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=f"{base}/auth/v1",
            timeout=httpx.Timeout(settings.HTTP_TIMEOUT_SECONDS),
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    def _headers(self, access_token: str | None = None) -> dict[str, str]:
        return {
            "apikey": self._anon_key,
            "Authorization": f"Bearer {access_token or self._anon_key}",
            "Content-Type": "application/json",
        }

    async def _post(self, path: str, operation: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.post(path, **kwargs)
        except httpx.RequestError as e:
            logger.error("Auth request failed", operation=operation, error=str(e))
            raise AuthError(f"Network error during {operation}: {e}") from e

        if not response.is_success:
            try:
                data = response.json() if response.text else {}
            except ValueError:
                data = {}
            message = (
                data.get("error_description")
                or data.get("msg")
                or data.get("message")
                or "Authentication failed"
            )
            logger.warning("Auth request rejected", operation=operation, status_code=response.status_code)
            raise AuthError(message, status_code=response.status_code)
        return response

    @staticmethod
    def _session_from_payload(data: dict[str, Any]) -> Session:
        user = data.get("user") or data
        if not data.get("access_token"):
            # Sign-up with e-mail confirmation enabled returns a user but no session
            raise AuthError("Account created; confirm your e-mail before signing in")
        return Session(
            user_id=str(user["id"]),
            email=user.get("email", ""),
            access_token=data.get("access_token"),
            refresh_token=data.get("refresh_token"),
        )

    async def _authenticate(self, email: str, password: str, *, sign_up: bool) -> Session:
        body = {"email": email, "password": password}
        if sign_up:
            response = await self._post("/signup", "sign_up", json=body, headers=self._headers())
        else:
            response = await self._post(
                "/token",
                "sign_in",
                params={"grant_type": "password"},
                json=body,
                headers=self._headers(),
            )
        return self._session_from_payload(response.json())

    async def _revoke(self, session: Session) -> None:
        if session.access_token:
            await self._post("/logout", "sign_out", headers=self._headers(session.access_token))
