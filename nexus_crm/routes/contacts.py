"""
Contact API Routes
List/search, contact CRUD, detail view and the child collections edited from
the detail view (notes, interactions, financial records, billing alerts).

Deletes require `?confirm=true`; without it the store refuses to act.
Store, validation and session errors are mapped to HTTP responses by the
handlers registered in nexus_crm.routes.errors.
"""

from fastapi import APIRouter, Depends, Query, status

from nexus_crm.auth.verify import context_dependency, session_dependency
from nexus_crm.context import AppContext
from nexus_crm.models.api.contact_request import (
    AlertRequest,
    ContactCreateRequest,
    ContactUpdateRequest,
    FinancialRequest,
    InteractionRequest,
    NoteRequest,
)
from nexus_crm.models.api.contact_response import (
    ContactListResponse,
    SettleAlertResponse,
    SuggestionResponse,
)
from nexus_crm.models.domain.contact_domain import ContactWithDetails
from nexus_crm.services.contact_filter import ALL_STATUSES, filter_contacts
from nexus_crm.services.contact_service import ContactService

router = APIRouter(prefix="/contacts", tags=["contacts"], dependencies=[Depends(session_dependency)])


def contact_service(context: AppContext = Depends(context_dependency)) -> ContactService:
    return context.contacts


@router.get("", response_model=ContactListResponse)
async def list_contacts(
    search: str = Query(default="", max_length=200, description="Name or company substring"),
    status_filter: str = Query(
        default=ALL_STATUSES, alias="status", pattern="^(All|Active|Prospect|Inactive)$"
    ),
    context: AppContext = Depends(context_dependency),
):
    contacts = context.store.list_contacts()
    filtered = filter_contacts(contacts, search, status_filter)
    return ContactListResponse(contacts=filtered, total=len(contacts), filtered=len(filtered))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_contact(body: ContactCreateRequest, service: ContactService = Depends(contact_service)):
    return await service.add_contact(body.model_dump(mode="json"))


@router.get("/{contact_id}", response_model=ContactWithDetails)
async def get_contact(contact_id: str, service: ContactService = Depends(contact_service)):
    return service.get_contact(contact_id)


@router.patch("/{contact_id}")
async def update_contact(
    contact_id: str, body: ContactUpdateRequest, service: ContactService = Depends(contact_service)
):
    return await service.update_contact(contact_id, body.model_dump(mode="json", exclude_unset=True))


@router.delete("/{contact_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_contact(
    contact_id: str,
    confirm: bool = Query(default=False),
    service: ContactService = Depends(contact_service),
):
    await service.delete_contact(contact_id, confirmed=confirm)


# Internal notes


@router.post("/{contact_id}/notes", status_code=status.HTTP_201_CREATED)
async def create_note(contact_id: str, body: NoteRequest, service: ContactService = Depends(contact_service)):
    return await service.save_note(contact_id, body.content)


@router.patch("/{contact_id}/notes/{note_id}")
async def update_note(
    contact_id: str, note_id: str, body: NoteRequest, service: ContactService = Depends(contact_service)
):
    return await service.save_note(contact_id, body.content, note_id=note_id)


@router.delete("/{contact_id}/notes/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_note(
    contact_id: str,
    note_id: str,
    confirm: bool = Query(default=False),
    service: ContactService = Depends(contact_service),
):
    await service.delete_note(contact_id, note_id, confirmed=confirm)


# Interactions


@router.post("/{contact_id}/interactions", status_code=status.HTTP_201_CREATED)
async def create_interaction(
    contact_id: str, body: InteractionRequest, service: ContactService = Depends(contact_service)
):
    return await service.save_interaction(contact_id, body.content, body.type)


@router.patch("/{contact_id}/interactions/{interaction_id}")
async def update_interaction(
    contact_id: str,
    interaction_id: str,
    body: InteractionRequest,
    service: ContactService = Depends(contact_service),
):
    return await service.save_interaction(contact_id, body.content, body.type, interaction_id=interaction_id)


@router.delete("/{contact_id}/interactions/{interaction_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_interaction(
    contact_id: str,
    interaction_id: str,
    confirm: bool = Query(default=False),
    service: ContactService = Depends(contact_service),
):
    await service.delete_interaction(contact_id, interaction_id, confirmed=confirm)


# Financial records


@router.post("/{contact_id}/financials", status_code=status.HTTP_201_CREATED)
async def create_financial(
    contact_id: str, body: FinancialRequest, service: ContactService = Depends(contact_service)
):
    return await service.save_financial(contact_id, body.service_name, body.value_charged, body.value_paid)


@router.patch("/{contact_id}/financials/{record_id}")
async def update_financial(
    contact_id: str,
    record_id: str,
    body: FinancialRequest,
    service: ContactService = Depends(contact_service),
):
    return await service.save_financial(
        contact_id, body.service_name, body.value_charged, body.value_paid, record_id=record_id
    )


@router.delete("/{contact_id}/financials/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_financial(
    contact_id: str,
    record_id: str,
    confirm: bool = Query(default=False),
    service: ContactService = Depends(contact_service),
):
    await service.delete_financial(contact_id, record_id, confirmed=confirm)


# Billing alerts


@router.post("/{contact_id}/alerts", status_code=status.HTTP_201_CREATED)
async def create_alert(contact_id: str, body: AlertRequest, service: ContactService = Depends(contact_service)):
    return await service.save_alert(contact_id, body.reason, body.value, body.charge_date, body.recurrence)


@router.patch("/{contact_id}/alerts/{alert_id}")
async def update_alert(
    contact_id: str, alert_id: str, body: AlertRequest, service: ContactService = Depends(contact_service)
):
    return await service.save_alert(
        contact_id, body.reason, body.value, body.charge_date, body.recurrence, alert_id=alert_id
    )


@router.delete("/{contact_id}/alerts/{alert_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_alert(
    contact_id: str,
    alert_id: str,
    confirm: bool = Query(default=False),
    service: ContactService = Depends(contact_service),
):
    await service.delete_alert(contact_id, alert_id, confirmed=confirm)


@router.post("/{contact_id}/alerts/{alert_id}/settle", response_model=SettleAlertResponse)
async def settle_alert(contact_id: str, alert_id: str, service: ContactService = Depends(contact_service)):
    """Mark an alert as paid: one-off alerts disappear, recurring ones advance one period."""
    advanced = await service.settle_alert(contact_id, alert_id)
    return SettleAlertResponse(
        alert_id=alert_id,
        consumed=advanced is None,
        next_charge_date=advanced.charge_date.isoformat() if advanced else None,
    )


@router.post("/{contact_id}/suggestion", response_model=SuggestionResponse)
async def suggest_strategies(contact_id: str, service: ContactService = Depends(contact_service)):
    suggestion = await service.suggest_strategies(contact_id)
    return SuggestionResponse(contact_id=contact_id, suggestion=suggestion)
