import asyncio
from datetime import date
from unittest.mock import AsyncMock

import pytest

from nexus_crm.models.domain.contact_domain import InteractionType, Recurrence
from nexus_crm.services.contact_service import (
    ContactService,
    ContactValidationError,
    OperationInFlightError,
)
from nexus_crm.services.store.base import ConfirmationRequiredError, RecordNotFoundError, Table

TODAY = date(2024, 1, 1)


@pytest.fixture
def service(loaded_local_store, offline_advisor):
    return ContactService(loaded_local_store, offline_advisor, today=lambda: TODAY)


@pytest.mark.asyncio
async def test_add_contact_requires_name_and_company(service):
    with pytest.raises(ContactValidationError) as exc:
        await service.add_contact({"name": "  ", "company": "Acme"})
    assert exc.value.field == "name"

    with pytest.raises(ContactValidationError) as exc:
        await service.add_contact({"name": "Ana"})
    assert exc.value.field == "company"

    assert len(service.store.list_contacts()) == 2


@pytest.mark.asyncio
async def test_add_contact_drops_unknown_fields(service):
    row = await service.add_contact({"name": "Ana", "company": "Ana Co", "user_id": "someone-else"})

    assert row["user_id"] == "default-user"
    assert service.get_contact(row["id"]).name == "Ana"


@pytest.mark.asyncio
async def test_update_commercial_area(service):
    await service.update_commercial_area("2", "Healthcare")

    assert service.get_contact("2").commercial_area == "Healthcare"


@pytest.mark.asyncio
async def test_save_note_and_interaction_stamp_today(service):
    note = await service.save_note("2", "Prefers e-mail")
    interaction = await service.save_interaction("2", "Intro call", InteractionType.CALL)

    assert note["date"] == "2024-01-01"
    assert interaction["type"] == "Call"
    contact = service.get_contact("2")
    assert contact.internal_notes[0].content == "Prefers e-mail"

    await service.save_note("2", "Prefers phone", note_id=note["id"])
    assert service.get_contact("2").internal_notes[0].content == "Prefers phone"


@pytest.mark.asyncio
async def test_save_financial_derives_fields(service):
    created = await service.save_financial("2", "Setup", 2000, 500)

    assert created["status"] == "Pending"
    assert created["payment_date"] == "2024-01-01"

    updated = await service.save_financial("2", "Setup", 2000, 2000, record_id=created["id"])
    assert updated["status"] == "Paid"
    assert updated["payment_date"] == "2024-01-01"

    cleared = await service.save_financial("2", "Setup", 2000, 0, record_id=created["id"])
    assert cleared["status"] == "Pending"
    assert cleared["payment_date"] == "-"


@pytest.mark.asyncio
async def test_save_financial_keeps_existing_payment_date(service):
    updated = await service.save_financial("1", "Monthly Consulting", 6000, 5500, record_id="f1")

    assert updated["payment_date"] == "2023-11-05"
    assert updated["status"] == "Pending"


@pytest.mark.asyncio
async def test_save_financial_requires_charged_value(service):
    with pytest.raises(ContactValidationError) as exc:
        await service.save_financial("1", "Audit", 0)
    assert exc.value.field == "value_charged"


@pytest.mark.asyncio
async def test_save_alert_validation(service):
    with pytest.raises(ContactValidationError):
        await service.save_alert("1", "", 100, date(2024, 1, 5))
    with pytest.raises(ContactValidationError):
        await service.save_alert("1", "Retainer", None, date(2024, 1, 5))
    with pytest.raises(ContactValidationError):
        await service.save_alert("1", "Retainer", 100, None)


@pytest.mark.asyncio
async def test_settle_recurring_alert_advances(service):
    alert = await service.save_alert("1", "Retainer", 1000, date(2024, 1, 1), Recurrence.MONTHLY)

    advanced = await service.settle_alert("1", alert["id"])

    assert advanced.charge_date == date(2024, 2, 1)
    assert service.get_contact("1").alerts[0].charge_date == date(2024, 2, 1)


@pytest.mark.asyncio
async def test_settle_one_off_alert_removes_it(service):
    alert = await service.save_alert("1", "Setup fee", 300, date(2024, 1, 3))

    assert await service.settle_alert("1", alert["id"]) is None
    assert service.get_contact("1").alerts == []


@pytest.mark.asyncio
async def test_settle_unknown_alert(service):
    with pytest.raises(RecordNotFoundError):
        await service.settle_alert("1", "missing")


@pytest.mark.asyncio
async def test_child_must_belong_to_contact(service):
    with pytest.raises(RecordNotFoundError):
        await service.delete_note("2", "n1", confirmed=True)


@pytest.mark.asyncio
async def test_delete_requires_confirmation(service):
    with pytest.raises(ConfirmationRequiredError):
        await service.delete_contact("2")

    await service.delete_interaction("1", "i1", confirmed=True)
    assert [i.id for i in service.get_contact("1").interactions] == ["i2"]


@pytest.mark.asyncio
async def test_duplicate_submission_rejected(loaded_local_store, offline_advisor):
    release = asyncio.Event()
    original_create = loaded_local_store.create

    async def slow_create(table, values):
        await release.wait()
        return await original_create(table, values)

    loaded_local_store.create = slow_create
    service = ContactService(loaded_local_store, offline_advisor, today=lambda: TODAY)

    first = asyncio.create_task(service.save_note("1", "First"))
    await asyncio.sleep(0)
    assert "internal_notes:1" in service.in_flight

    with pytest.raises(OperationInFlightError):
        await service.save_note("1", "Second")

    release.set()
    await first
    assert service.in_flight == frozenset()
    assert [n.content for n in service.get_contact("1").internal_notes] == ["First", "Strategic client focused on expansion."]


@pytest.mark.asyncio
async def test_suggest_strategies_uses_advisor(loaded_local_store):
    advisor = AsyncMock()
    advisor.suggest.return_value = "1. Upsell"
    service = ContactService(loaded_local_store, advisor)

    assert await service.suggest_strategies("1") == "1. Upsell"
    advisor.suggest.assert_awaited_once()
    assert advisor.suggest.await_args.args[0].id == "1"


@pytest.mark.asyncio
async def test_store_table_routing(service):
    row = await service.save_alert("2", "Renewal", 900, date(2024, 6, 1), Recurrence.YEARLY)

    owner, alert = service.store.find_child(Table.ALERTS, row["id"])
    assert owner.id == "2"
    assert alert.recurrence == Recurrence.YEARLY


@pytest.mark.asyncio
async def test_update_contact_rejects_null_required_fields(service):
    for field in ("name", "company", "status"):
        with pytest.raises(ContactValidationError) as exc:
            await service.update_contact("1", {field: None})
        assert exc.value.field == field

    assert service.get_contact("1").status.value == "Active"
