"""
Local-only contact store.

The whole collection (every user's contacts) lives in memory and is written
verbatim to local storage on each mutation; it is read back once on load.
There is no conflict detection: the last writer wins. Ownership is enforced
here by filtering on the session's user id.
"""

import uuid
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ValidationError

from nexus_crm.infrastructure.observability.logging import get_logger
from nexus_crm.models.domain.contact_domain import ContactWithDetails
from nexus_crm.services.local_storage import CONTACTS_KEY, LocalStorage, LocalStorageError
from nexus_crm.services.store.base import (
    CHILD_TABLES,
    ContactStore,
    RecordNotFoundError,
    StoreError,
    Table,
)
from nexus_crm.services.store.seed import initial_contacts

logger = get_logger(__name__)

CHILD_ATTRS = {attr for attr, _, _ in CHILD_TABLES.values()}


def _new_id() -> str:
    return uuid.uuid4().hex


class LocalContactStore(ContactStore):
    mode = "local"

    def __init__(
        self,
        storage: LocalStorage,
        *,
        seed: Callable[[], list[dict]] | None = initial_contacts,
        id_factory: Callable[[], str] = _new_id,
    ):
        super().__init__()
        self._storage = storage
        self._seed = seed
        self._new_id = id_factory
        self._all: list[ContactWithDetails] = []
        self._loaded = False

    def list_contacts(self) -> list[ContactWithDetails]:
        if self._session is None:
            return []
        return [c for c in self._all if c.user_id == self._session.user_id]

    async def load(self) -> None:
        if self._loaded:
            return

        try:
            raw = await self._storage.get_json(CONTACTS_KEY)
        except LocalStorageError as e:
            raise StoreError(f"Failed to load contacts: {e}", operation="load") from e

        if raw is None:
            raw = self._seed() if self._seed else []
            logger.info("Local store empty, using seed data", contacts=len(raw))

        try:
            self._all = [ContactWithDetails.model_validate(item) for item in raw]
        except ValidationError as e:
            raise StoreError(f"Stored contacts are invalid: {e}", operation="load") from e

        self._loaded = True
        logger.info("Local store loaded", contacts=len(self._all))

    async def _commit(self, contacts: list[ContactWithDetails], operation: str) -> None:
        """Persist first, then swap the snapshot, so a failed write changes nothing."""
        try:
            await self._storage.set_json(CONTACTS_KEY, [c.model_dump(mode="json") for c in contacts])
        except LocalStorageError as e:
            raise StoreError(f"Failed to persist contacts: {e}", operation=operation) from e
        self._all = contacts

    async def create(self, table: Table, values: dict[str, Any]) -> dict[str, Any]:
        session = self.require_session()
        values = self.enforce_derived_fields(table, values)

        try:
            if table == Table.CONTACTS:
                scalar = {k: v for k, v in values.items() if k not in CHILD_ATTRS}
                row: BaseModel = ContactWithDetails.model_validate(
                    {**scalar, "id": self._new_id(), "user_id": session.user_id}
                )
                contacts = [*self._all, row]
            else:
                owner = self.get_contact(str(values.get("contact_id")))
                attr, model_cls, prepend = CHILD_TABLES[table]
                row = model_cls.model_validate({**values, "id": self._new_id()})
                children = getattr(owner, attr)
                children = [row, *children] if prepend else [*children, row]
                contacts = self._replace_contact(owner.model_copy(update={attr: children}))
        except ValidationError as e:
            raise StoreError(f"Invalid {table.value} record: {e}", operation="create") from e

        await self._commit(contacts, "create")
        logger.info("Record created", table=table.value, record_id=row.id, mode=self.mode)
        return row.model_dump(mode="json")

    async def update(self, table: Table, record_id: str, values: dict[str, Any]) -> dict[str, Any]:
        self.require_session()
        values = self.enforce_derived_fields(table, values, record_id)

        try:
            if table == Table.CONTACTS:
                current = self.get_contact(record_id)
                scalar = {k: v for k, v in values.items() if k not in CHILD_ATTRS}
                row: BaseModel = ContactWithDetails.model_validate(
                    {**current.model_dump(), **scalar, "id": current.id, "user_id": current.user_id}
                )
                contacts = self._replace_contact(row)
            else:
                owner, current_row = self.find_child(table, record_id)
                attr, model_cls, _ = CHILD_TABLES[table]
                row = model_cls.model_validate(
                    {**current_row.model_dump(), **values, "id": record_id, "contact_id": owner.id}
                )
                children = [row if r.id == record_id else r for r in getattr(owner, attr)]
                contacts = self._replace_contact(owner.model_copy(update={attr: children}))
        except ValidationError as e:
            raise StoreError(f"Invalid {table.value} record: {e}", operation="update") from e

        await self._commit(contacts, "update")
        logger.info("Record updated", table=table.value, record_id=record_id, mode=self.mode)
        return row.model_dump(mode="json")

    async def delete(self, table: Table, record_id: str, *, confirmed: bool = False) -> None:
        self.require_confirmation(table, record_id, confirmed)
        self.require_session()

        if table == Table.CONTACTS:
            self.get_contact(record_id)
            contacts = [c for c in self._all if c.id != record_id]
        else:
            owner, _ = self.find_child(table, record_id)
            attr, _, _ = CHILD_TABLES[table]
            children = [r for r in getattr(owner, attr) if r.id != record_id]
            contacts = self._replace_contact(owner.model_copy(update={attr: children}))

        await self._commit(contacts, "delete")
        logger.info("Record deleted", table=table.value, record_id=record_id, mode=self.mode)

    def _replace_contact(self, contact: ContactWithDetails) -> list[ContactWithDetails]:
        if not any(c.id == contact.id for c in self._all):
            raise RecordNotFoundError(Table.CONTACTS, contact.id)
        return [contact if c.id == contact.id else c for c in self._all]

    async def reset(self) -> None:
        # The persisted collection outlives the session; only the view is cleared
        self._session = None
