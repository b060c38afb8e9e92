"""
Contact detail editor operations.

Validates input before any store call is issued, applies derived fields
(financial status and payment date, alert recurrence) and routes each change
through the store as a single-record mutation. Long-running calls are
guarded so the same submission cannot be issued twice while in flight.
"""

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import date
from typing import Any

from nexus_crm.infrastructure.observability.logging import get_logger
from nexus_crm.models.domain.contact_domain import (
    BillingAlert,
    ContactWithDetails,
    FinancialRecord,
    InteractionType,
    Recurrence,
)
from nexus_crm.services.advisor_service import AdvisorService
from nexus_crm.services.core.financials import financial_values
from nexus_crm.services.core.recurrence import settle_alert
from nexus_crm.services.store.base import ContactStore, RecordNotFoundError, Table

logger = get_logger(__name__)

CONTACT_FIELDS = ("name", "company", "website", "email", "phone", "status", "commercial_area")


class ContactValidationError(Exception):
    """Raised when required fields are missing; nothing is sent to the store."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class OperationInFlightError(Exception):
    """Raised when the same operation is submitted again before the first one settled."""

    def __init__(self, key: str):
        super().__init__(f"Operation already in progress: {key}")
        self.key = key


def _require_text(value: str | None, field: str) -> str:
    if value is None or not value.strip():
        raise ContactValidationError(f"{field} is required", field=field)
    return value


class ContactService:
    def __init__(
        self,
        store: ContactStore,
        advisor: AdvisorService | None = None,
        *,
        today: Callable[[], date] = date.today,
    ):
        self.store = store
        self.advisor = advisor or AdvisorService()
        self._today = today
        self._in_flight: set[str] = set()

    @property
    def in_flight(self) -> frozenset[str]:
        return frozenset(self._in_flight)

    @asynccontextmanager
    async def _guard(self, key: str) -> AsyncIterator[None]:
        if key in self._in_flight:
            logger.info("Duplicate submission rejected", operation=key)
            raise OperationInFlightError(key)
        self._in_flight.add(key)
        try:
            yield
        finally:
            self._in_flight.discard(key)

    def _owned_child(self, table: Table, contact_id: str, record_id: str):
        owner, row = self.store.find_child(table, record_id)
        if owner.id != contact_id:
            raise RecordNotFoundError(table, record_id)
        return row

    # Contacts

    def get_contact(self, contact_id: str) -> ContactWithDetails:
        return self.store.get_contact(contact_id)

    async def add_contact(self, values: dict[str, Any]) -> dict[str, Any]:
        _require_text(values.get("name"), "name")
        _require_text(values.get("company"), "company")
        fields = {k: v for k, v in values.items() if k in CONTACT_FIELDS}
        async with self._guard("contacts:new"):
            return await self.store.create(Table.CONTACTS, fields)

    async def update_contact(self, contact_id: str, values: dict[str, Any]) -> dict[str, Any]:
        for required in ("name", "company"):
            if required in values:
                _require_text(values[required], required)
        if "status" in values and values["status"] is None:
            raise ContactValidationError("status is required", field="status")
        # Clearing an optional text field stores an empty string, never NULL
        fields = {
            k: ("" if v is None else v) for k, v in values.items() if k in CONTACT_FIELDS
        }
        self.store.get_contact(contact_id)
        async with self._guard(f"contacts:{contact_id}"):
            return await self.store.update(Table.CONTACTS, contact_id, fields)

    async def update_commercial_area(self, contact_id: str, commercial_area: str) -> dict[str, Any]:
        return await self.update_contact(contact_id, {"commercial_area": commercial_area})

    async def delete_contact(self, contact_id: str, *, confirmed: bool = False) -> None:
        self.store.get_contact(contact_id)
        async with self._guard(f"contacts:{contact_id}"):
            await self.store.delete(Table.CONTACTS, contact_id, confirmed=confirmed)

    # Internal notes

    async def save_note(self, contact_id: str, content: str, note_id: str | None = None) -> dict[str, Any]:
        _require_text(content, "content")
        self.store.get_contact(contact_id)
        async with self._guard(f"internal_notes:{note_id or contact_id}"):
            if note_id:
                self._owned_child(Table.INTERNAL_NOTES, contact_id, note_id)
                return await self.store.update(Table.INTERNAL_NOTES, note_id, {"content": content})
            return await self.store.create(
                Table.INTERNAL_NOTES,
                {"contact_id": contact_id, "content": content, "date": self._today().isoformat()},
            )

    async def delete_note(self, contact_id: str, note_id: str, *, confirmed: bool = False) -> None:
        await self._delete_child(Table.INTERNAL_NOTES, contact_id, note_id, confirmed)

    # Interactions

    async def save_interaction(
        self,
        contact_id: str,
        content: str,
        interaction_type: InteractionType = InteractionType.COMMENT,
        interaction_id: str | None = None,
    ) -> dict[str, Any]:
        _require_text(content, "content")
        self.store.get_contact(contact_id)
        kind = InteractionType(interaction_type).value
        async with self._guard(f"interactions:{interaction_id or contact_id}"):
            if interaction_id:
                self._owned_child(Table.INTERACTIONS, contact_id, interaction_id)
                return await self.store.update(
                    Table.INTERACTIONS, interaction_id, {"content": content, "type": kind}
                )
            return await self.store.create(
                Table.INTERACTIONS,
                {
                    "contact_id": contact_id,
                    "type": kind,
                    "content": content,
                    "date": self._today().isoformat(),
                },
            )

    async def delete_interaction(self, contact_id: str, interaction_id: str, *, confirmed: bool = False) -> None:
        await self._delete_child(Table.INTERACTIONS, contact_id, interaction_id, confirmed)

    # Financial records

    async def save_financial(
        self,
        contact_id: str,
        service_name: str,
        value_charged: float | None,
        value_paid: float | None = None,
        record_id: str | None = None,
    ) -> dict[str, Any]:
        _require_text(service_name, "service_name")
        if not value_charged:
            raise ContactValidationError("value_charged is required", field="value_charged")
        paid = value_paid or 0.0
        self.store.get_contact(contact_id)

        async with self._guard(f"financials:{record_id or contact_id}"):
            if record_id:
                current: FinancialRecord = self._owned_child(Table.FINANCIALS, contact_id, record_id)
                values = financial_values(
                    service_name, value_charged, paid, self._today(), current.payment_date
                )
                return await self.store.update(Table.FINANCIALS, record_id, values)

            values = financial_values(service_name, value_charged, paid, self._today())
            return await self.store.create(Table.FINANCIALS, {"contact_id": contact_id, **values})

    async def delete_financial(self, contact_id: str, record_id: str, *, confirmed: bool = False) -> None:
        await self._delete_child(Table.FINANCIALS, contact_id, record_id, confirmed)

    # Billing alerts

    async def save_alert(
        self,
        contact_id: str,
        reason: str,
        value: float | None,
        charge_date: date | None,
        recurrence: Recurrence = Recurrence.ONCE,
        alert_id: str | None = None,
    ) -> dict[str, Any]:
        _require_text(reason, "reason")
        if not value:
            raise ContactValidationError("value is required", field="value")
        if charge_date is None:
            raise ContactValidationError("charge_date is required", field="charge_date")
        self.store.get_contact(contact_id)

        values = {
            "reason": reason,
            "value": value,
            "charge_date": charge_date.isoformat(),
            "recurrence": Recurrence(recurrence).value,
        }
        async with self._guard(f"alerts:{alert_id or contact_id}"):
            if alert_id:
                self._owned_child(Table.ALERTS, contact_id, alert_id)
                return await self.store.update(Table.ALERTS, alert_id, values)
            return await self.store.create(Table.ALERTS, {"contact_id": contact_id, **values})

    async def delete_alert(self, contact_id: str, alert_id: str, *, confirmed: bool = False) -> None:
        await self._delete_child(Table.ALERTS, contact_id, alert_id, confirmed)

    async def settle_alert(self, contact_id: str, alert_id: str) -> BillingAlert | None:
        """
        Mark an alert as paid. One-off alerts are removed; recurring ones move
        one period forward from their current charge date. Returns the
        advanced alert, or None when it was consumed.
        """
        contact = self.store.get_contact(contact_id)
        if not any(a.id == alert_id for a in contact.alerts):
            raise RecordNotFoundError(Table.ALERTS, alert_id)

        settled = settle_alert(contact.alerts, alert_id)
        advanced = next((a for a in settled if a.id == alert_id), None)

        async with self._guard(f"alerts:{alert_id}"):
            if advanced is None:
                # Settlement consumes the alert; this is not a user-initiated delete
                await self.store.delete(Table.ALERTS, alert_id, confirmed=True)
            else:
                await self.store.update(
                    Table.ALERTS, alert_id, {"charge_date": advanced.charge_date.isoformat()}
                )

        logger.info(
            "Alert settled",
            contact_id=contact_id,
            alert_id=alert_id,
            consumed=advanced is None,
            next_charge_date=advanced.charge_date.isoformat() if advanced else None,
        )
        return advanced

    # Advisory

    async def suggest_strategies(self, contact_id: str) -> str:
        contact = self.store.get_contact(contact_id)
        async with self._guard(f"suggestion:{contact_id}"):
            return await self.advisor.suggest(contact)

    async def _delete_child(self, table: Table, contact_id: str, record_id: str, confirmed: bool) -> None:
        self._owned_child(table, contact_id, record_id)
        async with self._guard(f"{table.value}:{record_id}"):
            await self.store.delete(table, record_id, confirmed=confirmed)
