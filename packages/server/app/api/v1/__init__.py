"""
API v1 Router

Auth endpoints sit at the root of the API prefix; everything else is
scoped to the authenticated user.
"""

from fastapi import APIRouter
from taskpad_shared.schemas.common import ErrorResponse
from . import auth, categories, tasks, users

# Documented error envelope for every route.
ERROR_RESPONSES = {
    status: {"model": ErrorResponse} for status in (400, 401, 403, 404, 500, 503)
}

router = APIRouter(responses=ERROR_RESPONSES)

router.include_router(auth.router, tags=["Authentication"])
router.include_router(users.router, prefix="/users", tags=["Users"])
router.include_router(tasks.router, prefix="/tasks", tags=["Tasks"])
router.include_router(categories.router, prefix="/categories", tags=["Categories"])
