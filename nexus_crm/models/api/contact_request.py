"""
Contact API request models.
Used by routes for input validation.
"""

from datetime import date

from pydantic import BaseModel, Field

from nexus_crm.models.domain.contact_domain import ContactStatus, InteractionType, Recurrence


class SignInRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(default="", max_length=200)


class ContactCreateRequest(BaseModel):
    """Request for creating a contact."""

    name: str = Field(..., min_length=1, max_length=200, description="Full name")
    company: str = Field(..., min_length=1, max_length=200, description="Company name")
    website: str = Field(default="", max_length=500)
    email: str = Field(default="", max_length=320)
    phone: str = Field(default="", max_length=50)
    status: ContactStatus = Field(default=ContactStatus.PROSPECT)
    commercial_area: str = Field(default="", max_length=200, description="Segment tag")


class ContactUpdateRequest(BaseModel):
    """Partial contact update; omitted fields are left as they are."""

    name: str | None = Field(None, min_length=1, max_length=200)
    company: str | None = Field(None, min_length=1, max_length=200)
    website: str | None = Field(None, max_length=500)
    email: str | None = Field(None, max_length=320)
    phone: str | None = Field(None, max_length=50)
    status: ContactStatus | None = None
    commercial_area: str | None = Field(None, max_length=200)


class NoteRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)


class InteractionRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)
    type: InteractionType = Field(default=InteractionType.COMMENT)


class FinancialRequest(BaseModel):
    service_name: str = Field(..., min_length=1, max_length=200)
    value_charged: float = Field(..., gt=0, description="Amount charged")
    value_paid: float = Field(default=0.0, ge=0, description="Amount received so far")


class AlertRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)
    value: float = Field(..., gt=0)
    charge_date: date = Field(..., description="Next charge date")
    recurrence: Recurrence = Field(default=Recurrence.ONCE)
