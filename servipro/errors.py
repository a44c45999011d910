"""
Error taxonomy.

Every failure the API can report is a ServiproError carrying a
machine-readable code and the HTTP status it maps to.
"""

from typing import Any, Optional


class ServiproError(Exception):
    """Base exception for the application."""

    def __init__(
        self,
        message: str,
        code: str = "ERROR_INTERNO",
        status_code: int = 500,
        details: Optional[Any] = None
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class ConfigError(ServiproError):
    """Raised at startup when required configuration is missing or invalid."""

    def __init__(self, problems: list):
        self.problems = problems
        super().__init__(
            f"Configuration validation failed: {', '.join(problems)}",
            code="CONFIGURACION_INVALIDA",
            details=problems
        )


class InternalError(ServiproError):
    """
    Generic internal failure.

    The code is chosen per endpoint; the underlying cause is only logged.
    """

    def __init__(self, code: str, message: str = "Error interno del servidor"):
        super().__init__(message, code=code, status_code=500)


class SendFailureError(ServiproError):
    """Raised when the SMS provider could not deliver a message."""

    def __init__(self, message: str = "No se pudo enviar el SMS. Intenta nuevamente."):
        super().__init__(message, code="ERROR_ENVIO_SMS", status_code=500)


# Storage

class StorageError(ServiproError):
    """Raised when the persistence backend fails."""

    def __init__(self, message: str = "Error de almacenamiento"):
        super().__init__(message, code="ERROR_ALMACENAMIENTO", status_code=500)


class DuplicateKeyError(StorageError):
    """Raised when a write violates a unique constraint."""

    def __init__(self, collection: str, field: str, value: Any):
        self.collection = collection
        self.field = field
        self.value = value
        super().__init__(f"Duplicate value for {collection}.{field}: {value!r}")


# Authentication and authorization rejections

class AuthError(ServiproError):
    """
    Expected rejection of a credential or request.

    These are reported to the caller as-is; they never hide an internal fault.
    """


class ValidationError(AuthError):
    """Malformed input, with per-field detail in `details`."""

    def __init__(self, details: Optional[list] = None):
        super().__init__(
            "Error de validación en los datos enviados",
            code="VALIDACION_DATOS_INVALIDOS",
            status_code=400,
            details=details or []
        )


class TokenMissingError(AuthError):
    def __init__(self):
        super().__init__("Token no proporcionado", code="TOKEN_FALTANTE", status_code=401)


class TokenInvalidError(AuthError):
    def __init__(self):
        super().__init__("Token inválido o expirado", code="TOKEN_INVALIDO", status_code=401)


class UserInvalidError(AuthError):
    def __init__(self):
        super().__init__("Usuario no encontrado", code="USUARIO_INVALIDO", status_code=401)


class UnauthenticatedError(AuthError):
    def __init__(self):
        super().__init__("Usuario no autenticado", code="USUARIO_NO_AUTENTICADO", status_code=401)


class ForbiddenError(AuthError):
    def __init__(self):
        super().__init__(
            "Acceso restringido a administradores",
            code="ACCESO_NO_AUTORIZADO",
            status_code=403
        )


class CodeInvalidOrExpiredError(AuthError):
    def __init__(self):
        super().__init__(
            "Código incorrecto o expirado",
            code="CODIGO_INVALIDO_O_EXPIRADO",
            status_code=400
        )


class CodeInvalidError(AuthError):
    def __init__(self):
        super().__init__("Código inválido o expirado", code="CODIGO_INVALIDO", status_code=400)


class RefreshTokenInvalidError(AuthError):
    def __init__(self):
        super().__init__(
            "Refresh token inválido o caducado",
            code="REFRESH_TOKEN_INVALIDO",
            status_code=400
        )


class UserNotFoundError(AuthError):
    def __init__(self):
        super().__init__("Usuario no encontrado", code="USUARIO_NO_EXISTE", status_code=400)


class MasterCodeInvalidError(AuthError):
    def __init__(self):
        super().__init__("Código incorrecto", code="CODIGO_MAESTRO_INVALIDO", status_code=401)
