"""
verify.py
---------
Purpose:
    Request dependencies that resolve the application context and require an
    active session.

Notes:
    - The context is created by the app lifespan and stored on app.state.
    - `session_dependency` guards every route that reads or writes contacts.
"""

from fastapi import Depends, HTTPException, Request, status

from nexus_crm.context import AppContext
from nexus_crm.models.domain.contact_domain import Session


def context_dependency(request: Request) -> AppContext:
    context = getattr(request.app.state, "context", None)
    if context is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Application context not initialized",
        )
    return context


def session_dependency(context: AppContext = Depends(context_dependency)) -> Session:
    session = context.session
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Sign in required",
        )
    return session
