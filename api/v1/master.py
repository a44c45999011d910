"""
Master access endpoint.

Mounted under /api/autenticacion and directly under /api.
"""

from fastapi import APIRouter
from pydantic import BaseModel, Field, field_validator

from ..deps import ServicesDep
from ..responses import SuccessResponse, success

router = APIRouter()


class MasterAccessRequest(BaseModel):
    codigo: str = Field(..., description="Master code")

    @field_validator("codigo")
    @classmethod
    def check_code(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("El código maestro no puede estar vacío")
        return value


@router.post("/acceso-maestro", response_model=SuccessResponse)
def master_access(request: MasterAccessRequest, services: ServicesDep):
    """
    Log in as the configured administrator.

    No SMS is sent. The admin user is created on first use.
    """
    result = services.engine.master_access(request.codigo)
    return success("Acceso maestro exitoso", result.to_dict(include_role=True))
