from datetime import date

import pytest

from nexus_crm.models.domain.contact_domain import BillingAlert, Recurrence
from nexus_crm.services.core.recurrence import advance_alert, next_charge_date, settle_alert


def _alert(alert_id: str, charge_date: date, recurrence: Recurrence) -> BillingAlert:
    return BillingAlert(
        id=alert_id,
        contact_id="1",
        reason="Retainer",
        value=1000,
        charge_date=charge_date,
        recurrence=recurrence,
    )


@pytest.mark.parametrize(
    ("start", "recurrence", "expected"),
    [
        (date(2024, 1, 1), Recurrence.WEEKLY, date(2024, 1, 8)),
        (date(2024, 1, 1), Recurrence.MONTHLY, date(2024, 2, 1)),
        (date(2024, 1, 1), Recurrence.YEARLY, date(2025, 1, 1)),
        (date(2024, 12, 28), Recurrence.WEEKLY, date(2025, 1, 4)),
    ],
)
def test_next_charge_date(start, recurrence, expected):
    assert next_charge_date(start, recurrence) == expected


def test_next_charge_date_once_is_none():
    assert next_charge_date(date(2024, 1, 1), Recurrence.ONCE) is None


def test_monthly_clamps_to_end_of_shorter_month():
    assert next_charge_date(date(2024, 1, 31), Recurrence.MONTHLY) == date(2024, 2, 29)
    assert next_charge_date(date(2023, 1, 31), Recurrence.MONTHLY) == date(2023, 2, 28)


def test_yearly_from_leap_day():
    assert next_charge_date(date(2024, 2, 29), Recurrence.YEARLY) == date(2025, 2, 28)


def test_settle_monthly_retainer_advances_one_month():
    alerts = [_alert("a1", date(2024, 1, 1), Recurrence.MONTHLY)]

    settled = settle_alert(alerts, "a1")

    assert len(settled) == 1
    assert settled[0].id == "a1"
    assert settled[0].charge_date == date(2024, 2, 1)
    assert settled[0].reason == "Retainer"
    # input untouched
    assert alerts[0].charge_date == date(2024, 1, 1)


def test_settle_one_off_removes_alert():
    alerts = [
        _alert("a1", date(2024, 1, 1), Recurrence.ONCE),
        _alert("a2", date(2024, 1, 5), Recurrence.WEEKLY),
    ]

    settled = settle_alert(alerts, "a1")

    assert [a.id for a in settled] == ["a2"]
    assert settled[0].charge_date == date(2024, 1, 5)


def test_settle_overdue_alert_advances_single_period():
    alerts = [_alert("a1", date(2023, 6, 15), Recurrence.MONTHLY)]

    settled = settle_alert(alerts, "a1")

    assert settled[0].charge_date == date(2023, 7, 15)


def test_settle_unknown_id_returns_unchanged_copy():
    alerts = [_alert("a1", date(2024, 1, 1), Recurrence.MONTHLY)]

    settled = settle_alert(alerts, "missing")

    assert settled == alerts
    assert settled is not alerts


def test_advance_alert_keeps_other_fields():
    alert = _alert("a1", date(2024, 3, 10), Recurrence.YEARLY)

    advanced = advance_alert(alert)

    assert advanced.charge_date == date(2025, 3, 10)
    assert advanced.model_dump(exclude={"charge_date"}) == alert.model_dump(exclude={"charge_date"})
    assert advance_alert(_alert("a2", date(2024, 3, 10), Recurrence.ONCE)) is None
