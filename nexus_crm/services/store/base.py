"""
Contact store interface shared by the local-only and remote-synchronized
disciplines.

The store owns a single snapshot of contacts-with-details. Every mutation
replaces that snapshot wholesale; callers only ever receive copies of the
list, never a handle they could mutate in place.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from pydantic import BaseModel

from nexus_crm.infrastructure.observability.logging import get_logger
from nexus_crm.models.domain.contact_domain import (
    BillingAlert,
    ContactWithDetails,
    FinancialRecord,
    Interaction,
    InternalNote,
    Session,
)
from nexus_crm.services.core.financials import derive_status

logger = get_logger(__name__)


class Table(str, Enum):
    CONTACTS = "contacts"
    INTERACTIONS = "interactions"
    FINANCIALS = "financials"
    ALERTS = "alerts"
    INTERNAL_NOTES = "internal_notes"


# attribute on ContactWithDetails, row model, and whether new rows go first
CHILD_TABLES: dict[Table, tuple[str, type[BaseModel], bool]] = {
    Table.INTERACTIONS: ("interactions", Interaction, True),
    Table.FINANCIALS: ("financials", FinancialRecord, True),
    Table.ALERTS: ("alerts", BillingAlert, False),
    Table.INTERNAL_NOTES: ("internal_notes", InternalNote, True),
}


class StoreError(Exception):
    """Raised when a store operation fails; the snapshot is left unchanged."""

    def __init__(self, message: str, operation: str = "unknown", recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


class RecordNotFoundError(StoreError):
    def __init__(self, table: Table, record_id: str):
        super().__init__(f"{table.value} record {record_id} not found", operation="lookup")
        self.table = table
        self.record_id = record_id


class ConfirmationRequiredError(StoreError):
    """Raised when a delete is attempted without explicit confirmation."""

    def __init__(self, table: Table, record_id: str):
        super().__init__(
            f"Deleting {table.value} record {record_id} requires confirmation",
            operation="delete",
        )
        self.table = table
        self.record_id = record_id


class NotAuthenticatedError(StoreError):
    def __init__(self):
        super().__init__("No active session", operation="session", recoverable=False)


class ContactStore(ABC):
    """list / create / update / delete over contacts and their child tables."""

    mode: str = "abstract"

    def __init__(self):
        self._contacts: list[ContactWithDetails] = []
        self._session: Session | None = None

    @property
    def session(self) -> Session | None:
        return self._session

    def set_session(self, session: Session | None) -> None:
        self._session = session

    def require_session(self) -> Session:
        if self._session is None:
            raise NotAuthenticatedError()
        return self._session

    def list_contacts(self) -> list[ContactWithDetails]:
        return list(self._contacts)

    def get_contact(self, contact_id: str) -> ContactWithDetails:
        for contact in self.list_contacts():
            if contact.id == contact_id:
                return contact
        raise RecordNotFoundError(Table.CONTACTS, contact_id)

    def find_child(self, table: Table, record_id: str) -> tuple[ContactWithDetails, BaseModel]:
        """Locate a child row and its owning contact in the visible snapshot."""
        attr, _, _ = CHILD_TABLES[table]
        for contact in self.list_contacts():
            for row in getattr(contact, attr):
                if row.id == record_id:
                    return contact, row
        raise RecordNotFoundError(table, record_id)

    def enforce_derived_fields(
        self, table: Table, values: dict[str, Any], record_id: str | None = None
    ) -> dict[str, Any]:
        """
        Re-derive computed columns at the mutation boundary.

        Financial status is recomputed from the merged paid/charged values; a
        caller-supplied status is discarded.
        """
        if table != Table.FINANCIALS:
            return values

        values = {k: v for k, v in values.items() if k != "status"}
        current: dict[str, Any] = {}
        if record_id is not None:
            try:
                _, row = self.find_child(table, record_id)
                current = row.model_dump()
            except RecordNotFoundError:
                current = {}

        charged = values.get("value_charged", current.get("value_charged"))
        paid = values.get("value_paid", current.get("value_paid", 0.0))
        if charged is not None:
            values["status"] = derive_status(float(charged), float(paid or 0.0)).value
        return values

    def require_confirmation(self, table: Table, record_id: str, confirmed: bool) -> None:
        if not confirmed:
            logger.info("Delete rejected without confirmation", table=table.value, record_id=record_id)
            raise ConfirmationRequiredError(table, record_id)

    @abstractmethod
    async def load(self) -> None:
        """Populate the snapshot for the current session."""

    @abstractmethod
    async def create(self, table: Table, values: dict[str, Any]) -> dict[str, Any]:
        """Insert a row; the store assigns its id. Returns the stored row."""

    @abstractmethod
    async def update(self, table: Table, record_id: str, values: dict[str, Any]) -> dict[str, Any]:
        """Apply a partial update to one row. Returns the stored row."""

    @abstractmethod
    async def delete(self, table: Table, record_id: str, *, confirmed: bool = False) -> None:
        """Delete one row; refuses to act unless confirmed."""

    async def reset(self) -> None:
        """Drop all session-bound state."""
        self._contacts = []

    async def close(self) -> None:
        await self.reset()
