"""
Session endpoints: sign in, sign up, sign out and the current session.
"""

from fastapi import APIRouter, Depends, status

from nexus_crm.auth.verify import context_dependency, session_dependency
from nexus_crm.context import AppContext
from nexus_crm.models.api.contact_request import SignInRequest
from nexus_crm.models.api.contact_response import SessionResponse
from nexus_crm.models.domain.contact_domain import Session

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/sign-in", response_model=SessionResponse)
async def sign_in(body: SignInRequest, context: AppContext = Depends(context_dependency)):
    session = await context.auth.sign_in(body.email, body.password)
    return SessionResponse.from_session(session, context.mode)


@router.post("/sign-up", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def sign_up(body: SignInRequest, context: AppContext = Depends(context_dependency)):
    session = await context.auth.sign_up(body.email, body.password)
    return SessionResponse.from_session(session, context.mode)


@router.post("/sign-out", status_code=status.HTTP_204_NO_CONTENT)
async def sign_out(context: AppContext = Depends(context_dependency)):
    await context.auth.sign_out()


@router.get("/session", response_model=SessionResponse)
async def current_session(
    session: Session = Depends(session_dependency),
    context: AppContext = Depends(context_dependency),
):
    return SessionResponse.from_session(session, context.mode)
