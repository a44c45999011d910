"""
Admin endpoints.

Everything here requires an admin access token.
"""

import logging

from fastapi import APIRouter

from ..deps import AdminUser
from ..responses import SuccessResponse, success

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/test", response_model=SuccessResponse)
def admin_test(user: AdminUser):
    """Check that the caller is an administrator."""
    logger.debug(f"Admin check passed for {user.phone}")
    return success("Acceso autorizado. ¡Sos un administrador!")
