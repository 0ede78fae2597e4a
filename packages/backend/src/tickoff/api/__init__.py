"""API route aggregation.

All routers registered here get mounted in main.py under /api.

Auth is applied at the include_router level using FastAPI's dependencies
parameter, so every todo route is protected without touching individual
handlers. Health and auth routers are open; /auth/me declares its own
dependency.
"""

from fastapi import APIRouter, Depends

from tickoff.api.auth import router as auth_router
from tickoff.api.health import router as health_router
from tickoff.api.todos import router as todos_router
from tickoff.auth.dependencies import get_current_user

_auth = [Depends(get_current_user)]

api_router = APIRouter(prefix="/api")

# Open routes: no auth required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])

# Protected routes: require a valid access token
api_router.include_router(todos_router, tags=["todos"], dependencies=_auth)
