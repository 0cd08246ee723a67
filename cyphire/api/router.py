"""Mount all API routes."""

from fastapi import APIRouter

from cyphire.api.events import router as events_router
from cyphire.api.realtime import router as realtime_router
from cyphire.api.tasks import router as tasks_router
from cyphire.api.users import router as users_router
from cyphire.api.workrooms import router as workrooms_router

api_router = APIRouter()
api_router.include_router(users_router, tags=["users"])
api_router.include_router(tasks_router, tags=["tasks"])
api_router.include_router(workrooms_router, tags=["workrooms"])
api_router.include_router(events_router, tags=["events"])
api_router.include_router(realtime_router, tags=["realtime"])
