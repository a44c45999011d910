"""
Authentication endpoints.

Handles phone registration, code verification, login and token refresh.
"""

import logging

from fastapi import APIRouter
from pydantic import BaseModel, Field, field_validator

from servipro.auth.codes import PHONE_PATTERN

from ..deps import ServicesDep
from ..responses import SuccessResponse, success

logger = logging.getLogger(__name__)

router = APIRouter()

PHONE_MESSAGE = "El teléfono debe tener formato internacional, ej: +34600111222"
CODE_MESSAGE = "El código debe tener exactamente 6 dígitos"


# Request models

class PhoneRequest(BaseModel):
    """Registration request."""
    telefono: str = Field(..., description="Phone number in E.164 format (e.g., +34600111222)")

    @field_validator("telefono")
    @classmethod
    def check_phone(cls, value: str) -> str:
        value = value.strip()
        if not PHONE_PATTERN.match(value):
            raise ValueError(PHONE_MESSAGE)
        return value


class PhoneCodeRequest(PhoneRequest):
    """Verification / login request."""
    codigo: str = Field(..., description="6-digit code received by SMS")

    @field_validator("codigo")
    @classmethod
    def check_code(cls, value: str) -> str:
        value = value.strip()
        if len(value) != 6:
            raise ValueError(CODE_MESSAGE)
        return value


class RefreshRequest(BaseModel):
    """Token refresh request."""
    refreshToken: str = Field(..., description="Refresh token from login or a previous refresh")

    @field_validator("refreshToken")
    @classmethod
    def check_token(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 10:
            raise ValueError("El refresh token debe tener al menos 10 caracteres")
        return value


# Endpoints

@router.post("/registro", response_model=SuccessResponse)
def register(request: PhoneRequest, services: ServicesDep):
    """
    Send a verification code by SMS.

    Any earlier code for the same phone stops being valid.
    """
    services.engine.register(request.telefono)
    return success("Código enviado correctamente")


@router.post("/verificar", response_model=SuccessResponse)
def verify(request: PhoneCodeRequest, services: ServicesDep):
    """Check a verification code. The code is consumed."""
    services.engine.verify(request.telefono, request.codigo)
    return success("Código verificado correctamente")


@router.post("/login", response_model=SuccessResponse)
def login(request: PhoneCodeRequest, services: ServicesDep):
    """
    Login with phone and SMS code.

    Creates the user on first login. Returns an access token, a refresh
    token and the user's id and phone.
    """
    result = services.engine.login(request.telefono, request.codigo)
    return success("Login exitoso", result.to_dict())


@router.post("/refresh", response_model=SuccessResponse)
def refresh_token(request: RefreshRequest, services: ServicesDep):
    """
    Rotate a refresh token.

    The presented token is invalidated; use the returned one next time.
    """
    result = services.engine.refresh(request.refreshToken)
    return success("Token renovado correctamente", result.tokens.to_dict())
