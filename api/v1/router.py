"""
API router.

Aggregates all endpoints under /api.
"""

from fastapi import APIRouter

from . import admin, auth, master

router = APIRouter()

# Include all route modules
router.include_router(auth.router, prefix="/autenticacion", tags=["Autenticación"])
router.include_router(master.router, prefix="/autenticacion", tags=["Autenticación"])
router.include_router(master.router, tags=["Autenticación"])
router.include_router(admin.router, prefix="/admin", tags=["Admin"])
