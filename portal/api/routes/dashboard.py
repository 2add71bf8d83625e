"""Administrator dashboard endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from portal.core.auth import RequestUserContext, require_platform_admin
from portal.db.dependencies import get_db_session
from portal.services.dashboard_service import DashboardService

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/stats")
def get_dashboard_stats(
    _: RequestUserContext = Depends(require_platform_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return DashboardService(db).get_stats()
