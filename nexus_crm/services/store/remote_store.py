"""
Remote-synchronized contact store.

Supabase is the source of truth. A mutation is one REST call; on success the
snapshot is replaced by a full re-fetch rather than patched locally. Change
notifications on any CRM table schedule a debounced full re-fetch, so bursts
of row events collapse into one refresh. Whichever refresh lands last wins.
"""

from typing import Any

from pydantic import ValidationError

from nexus_crm.infrastructure.observability.logging import get_logger
from nexus_crm.models.domain.contact_domain import ContactWithDetails
from nexus_crm.services.store.base import ContactStore, StoreError, Table
from nexus_crm.services.store.refresh_scheduler import RefreshScheduler
from nexus_crm.services.supabase.realtime_client import ChangeEvent, ChangeFeed
from nexus_crm.services.supabase.rest_client import SupabaseError, SupabaseRestClient

logger = get_logger(__name__)

WATCHED_TABLES = [t.value for t in Table]


class RemoteContactStore(ContactStore):
    mode = "remote"

    def __init__(
        self,
        rest: SupabaseRestClient,
        change_feed: ChangeFeed | None = None,
        *,
        debounce_seconds: float = 1.0,
    ):
        super().__init__()
        self._rest = rest
        self._feed = change_feed
        self._scheduler = RefreshScheduler(self._fetch_snapshot, debounce_seconds)
        self._subscribed = False
        # bumped on reset so refreshes started for an old session are discarded
        self._generation = 0

    @property
    def scheduler(self) -> RefreshScheduler:
        return self._scheduler

    async def load(self) -> None:
        self.require_session()
        try:
            await self._scheduler.refresh_now()
        except SupabaseError as e:
            raise StoreError(f"Failed to load contacts: {e}", operation="load") from e

        if self._feed is not None and not self._subscribed:
            try:
                await self._feed.subscribe(WATCHED_TABLES, self._on_change)
                self._subscribed = True
            except Exception as e:
                # Push updates are optional; direct re-fetches still keep the view current
                logger.warning("Change feed subscription failed", error=str(e))

    async def _fetch_snapshot(self) -> None:
        generation = self._generation
        rows = await self._rest.select_contacts()
        try:
            contacts = [ContactWithDetails.model_validate(row) for row in rows]
        except ValidationError as e:
            raise SupabaseError(f"Malformed contact rows: {e}", operation="select_contacts") from e
        if generation != self._generation:
            logger.info("Discarding refresh for a reset session")
            return
        self._contacts = contacts
        logger.debug("Snapshot refreshed", contacts=len(contacts))

    def _on_change(self, event: ChangeEvent) -> None:
        logger.debug("Change notification", table=event.table, event_type=event.event_type)
        self._scheduler.trigger()

    async def _reconcile(self, operation: str) -> None:
        """Re-fetch after a successful mutation; fall back to a debounced refresh."""
        try:
            await self._scheduler.refresh_now()
        except SupabaseError as e:
            logger.warning("Re-fetch after mutation failed", operation=operation, error=str(e))
            self._scheduler.trigger()

    async def create(self, table: Table, values: dict[str, Any]) -> dict[str, Any]:
        session = self.require_session()
        values = self.enforce_derived_fields(table, values)
        if table == Table.CONTACTS:
            values = {**values, "user_id": session.user_id}

        try:
            row = await self._rest.insert(table.value, values)
        except SupabaseError as e:
            raise StoreError(f"Failed to create {table.value} record: {e}", operation="create") from e

        logger.info("Record created", table=table.value, record_id=row.get("id"), mode=self.mode)
        await self._reconcile("create")
        return row

    async def update(self, table: Table, record_id: str, values: dict[str, Any]) -> dict[str, Any]:
        self.require_session()
        values = self.enforce_derived_fields(table, values, record_id)

        try:
            row = await self._rest.update(table.value, record_id, values)
        except SupabaseError as e:
            raise StoreError(f"Failed to update {table.value} record: {e}", operation="update") from e

        logger.info("Record updated", table=table.value, record_id=record_id, mode=self.mode)
        await self._reconcile("update")
        return row

    async def delete(self, table: Table, record_id: str, *, confirmed: bool = False) -> None:
        self.require_confirmation(table, record_id, confirmed)
        self.require_session()

        try:
            await self._rest.delete(table.value, record_id)
        except SupabaseError as e:
            raise StoreError(f"Failed to delete {table.value} record: {e}", operation="delete") from e

        logger.info("Record deleted", table=table.value, record_id=record_id, mode=self.mode)
        await self._reconcile("delete")

    async def reset(self) -> None:
        """Cancel pending refreshes, leave the change feed and clear the snapshot."""
        self._generation += 1
        self._scheduler.cancel()
        if self._feed is not None and self._subscribed:
            try:
                await self._feed.unsubscribe()
            except Exception as e:
                logger.warning("Change feed unsubscribe failed", error=str(e))
            self._subscribed = False
        self._contacts = []
        self._session = None
