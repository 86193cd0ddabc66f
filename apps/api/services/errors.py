"""Error taxonomy shared by services and routers.

Every error carries a user-facing message (Spanish, shown verbatim by the
dashboard) and the HTTP status it maps to.
"""

from typing import Optional


class AppError(Exception):
    status_code = 500
    default_message = "Error interno del servidor"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Datos inválidos"


class AuthError(AppError):
    """Bad credentials (401) or rejected registration (400)."""

    status_code = 401
    default_message = "Credenciales inválidas"


class AuthzError(AppError):
    """Missing (401) or invalid/expired (403) bearer token."""

    status_code = 403
    default_message = "Token inválido"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Recurso no encontrado"


class ConflictError(AppError):
    """Operation blocked by dependent rows."""

    status_code = 400
    default_message = "La operación entra en conflicto con registros existentes"
