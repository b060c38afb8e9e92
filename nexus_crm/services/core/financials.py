"""Derived fields of financial records."""

from datetime import date

from nexus_crm.models.domain.contact_domain import UNSET_PAYMENT_DATE, FinancialStatus


def derive_status(value_charged: float, value_paid: float) -> FinancialStatus:
    return FinancialStatus.PAID if value_paid >= value_charged else FinancialStatus.PENDING


def derive_payment_date(value_paid: float, current: str | None, today: date) -> str:
    """
    Keep an existing payment date while something is paid, stamp today on the
    first payment, and fall back to the unset sentinel when nothing is paid.
    """
    if value_paid > 0:
        if current and current != UNSET_PAYMENT_DATE:
            return current
        return today.isoformat()
    return UNSET_PAYMENT_DATE


def financial_values(
    service_name: str,
    value_charged: float,
    value_paid: float,
    today: date,
    current_payment_date: str | None = None,
) -> dict:
    """Column values for a financial record insert/update with derived fields applied."""
    return {
        "service_name": service_name,
        "value_charged": value_charged,
        "value_paid": value_paid,
        "payment_date": derive_payment_date(value_paid, current_payment_date, today),
        "status": derive_status(value_charged, value_paid).value,
    }
