"""V1 API router aggregation."""

from fastapi import APIRouter

from ganli.api.v1.auth import router as auth_router
from ganli.api.v1.candidates import router as candidates_router
from ganli.api.v1.quota import router as quota_router
from ganli.api.v1.reports import router as reports_router
from ganli.api.v1.system import router as system_router
from ganli.api.v1.tasks import router as tasks_router
from ganli.api.v1.team import router as team_router
from ganli.api.v1.tenants import router as tenants_router

v1_router = APIRouter(prefix="/v1")
v1_router.include_router(tenants_router)
v1_router.include_router(auth_router)
v1_router.include_router(tasks_router)
v1_router.include_router(reports_router)
v1_router.include_router(candidates_router)
v1_router.include_router(quota_router)
v1_router.include_router(team_router)
v1_router.include_router(system_router)
