from datetime import date

from pydantic import BaseModel, Field

from nexus_crm.models.domain.contact_domain import Recurrence


class UpcomingAlert(BaseModel):
    """Billing alert due soon, annotated with its owning contact."""

    id: str = Field(..., description="Alert id")
    contact_id: str = Field(..., description="Owning contact id")
    contact_name: str = Field(..., description="Owning contact display name")
    company_name: str = Field(..., description="Owning contact company")
    reason: str
    value: float
    charge_date: date
    recurrence: Recurrence


class ClientBilling(BaseModel):
    company: str
    value: float


class StatusBreakdown(BaseModel):
    name: str
    value: int


class DashboardSummary(BaseModel):
    total_contacts: int
    active_count: int
    prospect_count: int
    inactive_count: int
    total_received: float
    total_received_display: str = Field(..., description="Total received formatted as BRL")
    top_billing: list[ClientBilling]
    status_breakdown: list[StatusBreakdown]
    upcoming_alerts: list[UpcomingAlert]
