"""
Billing alert recurrence.

Settling an alert either consumes it (one-off) or moves its charge date one
period forward from the current charge date. Overdue alerts are not caught
up: each settlement advances exactly one period.
"""

from datetime import date, timedelta

from dateutil.relativedelta import relativedelta

from nexus_crm.models.domain.contact_domain import BillingAlert, Recurrence


def next_charge_date(charge_date: date, recurrence: Recurrence) -> date | None:
    """Next occurrence after charge_date, or None for one-off alerts."""
    if recurrence == Recurrence.ONCE:
        return None
    elif recurrence == Recurrence.WEEKLY:
        return charge_date + timedelta(weeks=1)
    elif recurrence == Recurrence.MONTHLY:
        # relativedelta clamps to the last day of shorter months (Jan 31 -> Feb 28/29)
        return charge_date + relativedelta(months=1)
    elif recurrence == Recurrence.YEARLY:
        return charge_date + relativedelta(years=1)
    raise ValueError(f"Unknown recurrence: {recurrence}")


def advance_alert(alert: BillingAlert) -> BillingAlert | None:
    """Return the alert moved to its next cycle, or None when settlement consumes it."""
    next_date = next_charge_date(alert.charge_date, alert.recurrence)
    if next_date is None:
        return None
    return alert.model_copy(update={"charge_date": next_date})


def settle_alert(alerts: list[BillingAlert], alert_id: str) -> list[BillingAlert]:
    """
    Settle one alert within its collection.

    Returns a new list; the input is left untouched. An unknown alert_id
    yields an unchanged copy of the collection.
    """
    settled: list[BillingAlert] = []
    for alert in alerts:
        if alert.id != alert_id:
            settled.append(alert)
            continue
        advanced = advance_alert(alert)
        if advanced is not None:
            settled.append(advanced)
    return settled
