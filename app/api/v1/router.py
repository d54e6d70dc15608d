"""API v1 router aggregation."""

from fastapi import APIRouter

from app.api.v1 import admin, projects, sprints, tasks

api_router = APIRouter()

api_router.include_router(projects.router, prefix="/projects", tags=["Projects"])
api_router.include_router(sprints.router, prefix="/sprints", tags=["Sprints"])
api_router.include_router(tasks.router, prefix="/tasks", tags=["Tasks"])
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])
