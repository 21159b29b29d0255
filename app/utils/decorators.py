"""
🔧 DECORADOR DE TRANSACCIONES PARA LOS SERVICIOS
================================================

Cada método de escritura de un servicio corre dentro de UNA transacción:
commit al terminar bien, rollback si algo falla. Los errores se re-lanzan
para que los handlers HTTP los conviertan en respuesta.

ANTES (código repetitivo):
    def mi_metodo(self, ...):
        try:
            # lógica de negocio
            self.db.commit()
            return resultado
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error: {e}")
            raise

DESPUÉS (con decorador):
    @db_transaction
    def mi_metodo(self, ...):
        # solo lógica de negocio
        return resultado  # commit automático
"""

import logging
import re
from functools import wraps
from typing import Callable, Any

from sqlalchemy.exc import IntegrityError

from app.utils.exceptions import AppError, ConflictError

logger = logging.getLogger(__name__)

def _mask_sensitive_data(data: Any) -> str:
    """
    🔒 Enmascara datos sensibles en logs para proteger PII

    Args:
        data: Datos a enmascarar (args, kwargs, etc.)

    Returns:
        String seguro para logging sin datos sensibles
    """
    data_str = str(data)

    # Emails
    data_str = re.sub(r"[\w.+-]+@[\w-]+\.[\w.-]+", "***MASKED***", data_str)

    # Enmascarar otros campos sensibles comunes
    sensitive_fields = ['password', 'password_hash', 'token', 'secret', 'telefono']
    for field in sensitive_fields:
        pattern = rf"('{field}'|{field}=)(:\s*)?'([^']+)'"
        data_str = re.sub(pattern, r"\1\2'***MASKED***'", data_str, flags=re.IGNORECASE)

    return data_str

def db_transaction(func: Callable) -> Callable:
    """
    🎯 Decorador principal para manejo automático de transacciones

    ✅ QUÉ HACE:
    - Ejecuta la función original
    - Hace commit si termina sin excepción
    - Hace rollback y re-lanza si hay cualquier error
    - Convierte IntegrityError (unicidad, carreras entre requests) en ConflictError

    ⚠️ CUÁNDO NO USAR:
    - Métodos de solo lectura (usar @read_only)
    - Métodos auxiliares que se llaman desde otro método ya decorado
    """
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            result = func(self, *args, **kwargs)
            self.db.commit()
            logger.debug(f"✅ Transacción exitosa en {func.__name__}")
            return result

        except AppError as e:
            self.db.rollback()
            logger.info(f"🔄 Rollback en {func.__name__}: {e.message}")
            raise

        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"⚠️ Conflicto de integridad en {func.__name__}: {e.orig}")
            logger.debug(f"   Args: {_mask_sensitive_data(args)}")
            raise ConflictError("La operación entra en conflicto con datos existentes") from e

        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Error en {func.__name__}: {e}")
            logger.debug(f"   Args: {_mask_sensitive_data(args)}")
            logger.debug(f"   Kwargs: {_mask_sensitive_data(kwargs)}")
            raise

    return wrapper


def read_only(func: Callable) -> Callable:
    """
    📖 Decorador para operaciones de solo lectura

    - NO hace commit (no modifica datos)
    - SÍ hace rollback si hay error (limpia la transacción) y re-lanza
    """
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except Exception as e:
            self.db.rollback()
            if not isinstance(e, AppError):
                logger.error(f"❌ Error en consulta {func.__name__}: {e}")
            raise

    return wrapper
