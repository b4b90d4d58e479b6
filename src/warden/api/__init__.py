"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Access is declared per route, not per router: the users router
mixes public routes (register, confirm, reset) with protected ones
(me, update, delete). See warden.auth.dependencies.
"""

from fastapi import APIRouter

from warden.api.auth import router as auth_router
from warden.api.users import router as users_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(users_router, tags=["users"])
