"""
Supabase PostgREST client for CRM tables.
Handles the nested contact fetch and single-row insert/update/delete calls.
Row ownership is enforced by the database's row-level security policies,
so every request carries the signed-in user's access token.
"""

from typing import Any

import httpx

from nexus_crm.config import settings
from nexus_crm.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

CONTACTS_SELECT = "*,interactions(*),financials(*),alerts(*),internal_notes(*)"


class SupabaseError(Exception):
    """Raised when a PostgREST call fails (network, access control or constraint)."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error_code: str | None = None,
        operation: str = "unknown",
    ):
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.operation = operation


class SupabaseRestClient:
    """
    Low-level client for the Supabase REST endpoint (/rest/v1).

    No retries: a failed call is reported once and abandoned.
    """

    def __init__(
        self,
        base_url: str | None = None,
        anon_key: str | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = (base_url or settings.SUPABASE_URL or "").rstrip("/")
        self._anon_key = anon_key or settings.SUPABASE_ANON_KEY or ""
        self._access_token: str | None = None
        self._client = httpx.AsyncClient(
            base_url=f"{self._base_url}/rest/v1",
            timeout=httpx.Timeout(settings.HTTP_TIMEOUT_SECONDS),
            transport=transport,
        )

    def set_access_token(self, token: str | None) -> None:
        self._access_token = token

    async def close(self) -> None:
        await self._client.aclose()

    def _headers(self, prefer: str | None = None) -> dict[str, str]:
        headers = {
            "apikey": self._anon_key,
            "Authorization": f"Bearer {self._access_token or self._anon_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _request(self, method: str, path: str, operation: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            logger.error("Supabase request failed", operation=operation, error=str(e))
            raise SupabaseError(f"Network error during {operation}: {e}", operation=operation) from e

        if response.is_success:
            return response

        try:
            error_data = response.json() if response.text else {}
        except ValueError:
            error_data = {}

        error_code = error_data.get("code")
        message = error_data.get("message") or response.text or "Unknown Supabase error"
        logger.error(
            "Supabase request rejected",
            operation=operation,
            status_code=response.status_code,
            error_code=error_code,
            error_message=message,
        )
        raise SupabaseError(
            message, status_code=response.status_code, error_code=error_code, operation=operation
        )

    async def select_contacts(self) -> list[dict[str, Any]]:
        """Fetch all visible contacts with every child collection embedded."""
        response = await self._request(
            "GET",
            "/contacts",
            "select_contacts",
            params={"select": CONTACTS_SELECT, "order": "created_at.desc"},
            headers=self._headers(),
        )
        rows = response.json()
        logger.debug("Contacts fetched", count=len(rows))
        return rows

    async def insert(self, table: str, values: dict[str, Any]) -> dict[str, Any]:
        """Insert one row and return it with its generated id."""
        response = await self._request(
            "POST",
            f"/{table}",
            f"insert_{table}",
            json=[values],
            headers=self._headers(prefer="return=representation"),
        )
        return self._single_row(response, f"insert_{table}")

    async def update(self, table: str, record_id: str, values: dict[str, Any]) -> dict[str, Any]:
        response = await self._request(
            "PATCH",
            f"/{table}",
            f"update_{table}",
            params={"id": f"eq.{record_id}"},
            json=values,
            headers=self._headers(prefer="return=representation"),
        )
        return self._single_row(response, f"update_{table}")

    async def delete(self, table: str, record_id: str) -> None:
        await self._request(
            "DELETE",
            f"/{table}",
            f"delete_{table}",
            params={"id": f"eq.{record_id}"},
            headers=self._headers(),
        )

    def _single_row(self, response: httpx.Response, operation: str) -> dict[str, Any]:
        rows = response.json() if response.text else []
        if isinstance(rows, dict):
            return rows
        if not rows:
            # RLS hides rows the caller may not touch; PostgREST answers with an empty list
            raise SupabaseError(
                "No row affected", status_code=response.status_code, operation=operation
            )
        return rows[0]
