"""
Dashboard aggregation over the current contact snapshot.

Everything here is recomputed from scratch per call; the contact list is
small enough that no index or cache is kept.
"""

from datetime import date, timedelta

from nexus_crm.config import settings
from nexus_crm.models.api.dashboard_response import (
    ClientBilling,
    DashboardSummary,
    StatusBreakdown,
    UpcomingAlert,
)
from nexus_crm.models.domain.contact_domain import ContactStatus, ContactWithDetails

TOP_BILLING_LIMIT = 5


def upcoming_alerts(
    contacts: list[ContactWithDetails], today: date, window_days: int | None = None
) -> list[UpcomingAlert]:
    """
    Alerts whose charge date falls within [today, today + window] inclusive,
    sorted ascending by charge date.
    """
    window = settings.UPCOMING_ALERT_WINDOW_DAYS if window_days is None else window_days
    horizon = today + timedelta(days=window)

    upcoming = [
        UpcomingAlert(
            id=alert.id,
            contact_id=contact.id,
            contact_name=contact.name,
            company_name=contact.company,
            reason=alert.reason,
            value=alert.value,
            charge_date=alert.charge_date,
            recurrence=alert.recurrence,
        )
        for contact in contacts
        for alert in contact.alerts
        if today <= alert.charge_date <= horizon
    ]
    return sorted(upcoming, key=lambda a: a.charge_date)


def total_received(contacts: list[ContactWithDetails]) -> float:
    return sum(f.value_paid for c in contacts for f in c.financials)


def top_billing(contacts: list[ContactWithDetails], limit: int = TOP_BILLING_LIMIT) -> list[ClientBilling]:
    billing = [
        ClientBilling(company=c.company, value=sum(f.value_paid for f in c.financials))
        for c in contacts
    ]
    return sorted(billing, key=lambda b: b.value, reverse=True)[:limit]


def format_brl(value: float) -> str:
    """Format a value as Brazilian reais, e.g. 1234.5 -> 'R$ 1.234,50'."""
    formatted = f"{value:,.2f}"
    return "R$ " + formatted.replace(",", "_").replace(".", ",").replace("_", ".")


def build_dashboard(contacts: list[ContactWithDetails], today: date) -> DashboardSummary:
    active = sum(1 for c in contacts if c.status == ContactStatus.ACTIVE)
    prospect = sum(1 for c in contacts if c.status == ContactStatus.PROSPECT)
    inactive = len(contacts) - active - prospect
    received = total_received(contacts)

    return DashboardSummary(
        total_contacts=len(contacts),
        active_count=active,
        prospect_count=prospect,
        inactive_count=inactive,
        total_received=received,
        total_received_display=format_brl(received),
        top_billing=top_billing(contacts),
        status_breakdown=[
            StatusBreakdown(name=ContactStatus.ACTIVE.value, value=active),
            StatusBreakdown(name=ContactStatus.PROSPECT.value, value=prospect),
            StatusBreakdown(name=ContactStatus.INACTIVE.value, value=inactive),
        ],
        upcoming_alerts=upcoming_alerts(contacts, today),
    )
