from fastapi import APIRouter, Depends

from nexus_crm.auth.verify import context_dependency, session_dependency
from nexus_crm.context import AppContext
from nexus_crm.models.api.dashboard_response import DashboardSummary, UpcomingAlert
from nexus_crm.services.dashboard_service import build_dashboard, upcoming_alerts

router = APIRouter(prefix="/dashboard", tags=["dashboard"], dependencies=[Depends(session_dependency)])


@router.get("", response_model=DashboardSummary)
async def dashboard(context: AppContext = Depends(context_dependency)):
    """Counts, revenue, top clients and alerts due in the next days."""
    return build_dashboard(context.store.list_contacts(), context.today())


@router.get("/upcoming-alerts", response_model=list[UpcomingAlert])
async def dashboard_upcoming_alerts(context: AppContext = Depends(context_dependency)):
    return upcoming_alerts(context.store.list_contacts(), context.today())
