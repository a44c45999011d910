"""
Response envelope.

Every endpoint answers with

    {"exito": true,  "mensaje": ..., "datos": ...}
    {"exito": false, "mensaje": ..., "codigo": ..., "errores": [...]}

`errores` is only present on validation failures. Unknown routes and
unhandled errors also carry `"datos": null`.
"""

from typing import Any, List, Optional

from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ErrorDetail(BaseModel):
    """Per-field validation problem."""
    campo: str
    mensaje: str


class SuccessResponse(BaseModel):
    """Successful response envelope."""
    exito: bool = True
    mensaje: str
    datos: Optional[Any] = None


class ErrorResponse(BaseModel):
    """Error response envelope."""
    exito: bool = False
    mensaje: str
    codigo: str
    errores: Optional[List[ErrorDetail]] = None


def success(mensaje: str, datos: Optional[Any] = None) -> SuccessResponse:
    return SuccessResponse(mensaje=mensaje, datos=datos)


def error_response(
    status_code: int,
    mensaje: str,
    codigo: str,
    errores: Optional[List[dict]] = None,
    datos_nulos: bool = False
) -> JSONResponse:
    """Build an error JSONResponse, omitting `errores` when there are none.

    Args:
        status_code: HTTP status.
        mensaje: Human readable message.
        codigo: Machine readable error code.
        errores: Per-field validation problems.
        datos_nulos: Emit an explicit `"datos": null`, as the fallback
            handlers (unknown route, unhandled error) do.
    """
    body = ErrorResponse(
        mensaje=mensaje,
        codigo=codigo,
        errores=[ErrorDetail(**e) for e in errores] if errores else None
    )
    content = body.model_dump(exclude_none=True)
    if datos_nulos:
        content["datos"] = None
    return JSONResponse(status_code=status_code, content=content)
