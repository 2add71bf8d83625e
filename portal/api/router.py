"""Top-level API router."""

from fastapi import APIRouter

from portal.api.routes.contracts import router as contracts_router
from portal.api.routes.dashboard import router as dashboard_router
from portal.api.routes.health import router as health_router
from portal.api.routes.invoices import router as invoices_router
from portal.api.routes.me import router as me_router
from portal.api.routes.organizations import router as organizations_router
from portal.api.routes.projects import router as projects_router
from portal.api.routes.timesheets import router as timesheets_router
from portal.api.routes.users import router as users_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(me_router)
api_router.include_router(organizations_router)
api_router.include_router(users_router)
api_router.include_router(projects_router)
api_router.include_router(invoices_router)
api_router.include_router(timesheets_router)
api_router.include_router(contracts_router)
api_router.include_router(dashboard_router)
