"""
Health check endpoints.
"""

import time

from fastapi import APIRouter, Depends

from nexus_crm.auth.verify import context_dependency
from nexus_crm.context import AppContext

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "nexus-crm"}


@router.get("/readyz")
async def readyz(context: AppContext = Depends(context_dependency)):
    """Readiness check for local storage and the configured store."""
    checks = {}

    t0 = time.time()
    storage_ok = await context.storage.ping()
    checks["local_storage"] = {
        "ok": storage_ok,
        "latency_ms": round((time.time() - t0) * 1000, 1),
    }

    checks["store"] = {
        "ok": True,
        "mode": context.mode,
        "signed_in": context.session is not None,
    }

    overall_ok = all(check["ok"] for check in checks.values())
    return {"overall_ok": overall_ok, "checks": checks}
