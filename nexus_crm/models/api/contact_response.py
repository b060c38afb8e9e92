from pydantic import BaseModel, Field

from nexus_crm.models.domain.contact_domain import ContactWithDetails, Session


class ContactListResponse(BaseModel):
    contacts: list[ContactWithDetails]
    total: int = Field(..., description="Number of contacts owned by the session user")
    filtered: int = Field(..., description="Number of contacts matching the filter")


class SessionResponse(BaseModel):
    user_id: str
    email: str
    mode: str = Field(..., description="Store discipline: local or remote")

    @classmethod
    def from_session(cls, session: Session, mode: str) -> "SessionResponse":
        return cls(user_id=session.user_id, email=session.email, mode=mode)


class SettleAlertResponse(BaseModel):
    alert_id: str
    consumed: bool = Field(..., description="True when a one-off alert was removed")
    next_charge_date: str | None = None


class SuggestionResponse(BaseModel):
    contact_id: str
    suggestion: str
