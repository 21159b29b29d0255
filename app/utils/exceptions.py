"""
🚨 ERRORES DE DOMINIO
=====================

Los servicios lanzan estas excepciones; los handlers registrados en la app
(app.utils.error_handlers) las convierten en JSON con su status HTTP:

    {"error": "<mensaje>", "details": <opcional>}
"""

from typing import Any, Optional


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class DataValidationError(AppError):
    """Datos de entrada inválidos o referencias inexistentes en el body."""
    status_code = 400

    @classmethod
    def for_field(cls, campo: str, mensaje: str) -> "DataValidationError":
        return cls(mensaje, details=[{"campo": campo, "mensaje": mensaje}])


class AuthenticationError(AppError):
    status_code = 401


class AuthorizationError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 400


class StateError(AppError):
    """Transición de estado ilegal o borrado de una entidad referenciada."""
    status_code = 400
