"""
Domain models for CRM records.

A contact owns four child collections (interactions, financial records,
billing alerts and internal notes) linked by contact_id. The shapes match
the Supabase tables one to one so rows can be validated straight from the
REST payloads and serialized back verbatim to local storage.
"""

from datetime import UTC, date, datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

UNSET_PAYMENT_DATE = "-"


class ContactStatus(str, Enum):
    ACTIVE = "Active"
    PROSPECT = "Prospect"
    INACTIVE = "Inactive"


class InteractionType(str, Enum):
    COMMENT = "Comment"
    STRATEGY = "Strategy"
    MEETING = "Meeting"
    CALL = "Call"


class Recurrence(str, Enum):
    ONCE = "Once"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"
    YEARLY = "Yearly"


class FinancialStatus(str, Enum):
    PENDING = "Pending"
    PAID = "Paid"


StatusFilter = ContactStatus | Literal["All"]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Contact(BaseModel):
    """Contact/company profile."""

    model_config = ConfigDict(extra="ignore")

    id: str
    user_id: str
    name: str
    company: str
    website: str = ""
    email: str = ""
    phone: str = ""
    status: ContactStatus = ContactStatus.PROSPECT
    commercial_area: str = ""
    created_at: datetime = Field(default_factory=_utcnow)

    @field_validator("website", "email", "phone", "commercial_area", mode="before")
    @classmethod
    def _null_to_empty(cls, value):
        # Optional text columns are nullable in the database
        return "" if value is None else value


class Interaction(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    contact_id: str
    type: InteractionType = InteractionType.COMMENT
    content: str
    date: date


class FinancialRecord(BaseModel):
    """
    Charged/paid record for a service.

    `status` is never trusted from input: it is re-derived from the paid and
    charged values every time the model is built.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    contact_id: str
    service_name: str
    value_charged: float
    value_paid: float = 0.0
    payment_date: str = UNSET_PAYMENT_DATE
    status: FinancialStatus = FinancialStatus.PENDING
    created_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def _derive_status(self) -> "FinancialRecord":
        derived = (
            FinancialStatus.PAID if self.value_paid >= self.value_charged else FinancialStatus.PENDING
        )
        # object.__setattr__ avoids re-running validation on assignment
        object.__setattr__(self, "status", derived)
        return self


class BillingAlert(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    contact_id: str
    reason: str
    value: float
    charge_date: date
    recurrence: Recurrence = Recurrence.ONCE
    created_at: datetime = Field(default_factory=_utcnow)


class InternalNote(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    contact_id: str
    content: str
    date: date


class ContactWithDetails(Contact):
    """Contact joined with all of its child rows."""

    interactions: list[Interaction] = Field(default_factory=list)
    financials: list[FinancialRecord] = Field(default_factory=list)
    alerts: list[BillingAlert] = Field(default_factory=list)
    internal_notes: list[InternalNote] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _nulls_to_empty(cls, data):
        # PostgREST returns null for embedded resources with no rows on some setups
        if isinstance(data, dict):
            for key in ("interactions", "financials", "alerts", "internal_notes"):
                if key in data and data[key] is None:
                    data = {**data, key: []}
        return data


class Session(BaseModel):
    """Authenticated user session."""

    user_id: str
    email: str
    access_token: str | None = None
    refresh_token: str | None = None
