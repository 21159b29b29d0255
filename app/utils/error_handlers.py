"""
Handlers de excepciones de la app: todo error sale como JSON estructurado.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.utils.exceptions import AppError

logger = logging.getLogger(__name__)


def _field_issues(exc: RequestValidationError) -> list:
    issues = []
    for err in exc.errors():
        # loc = ("body", "items", 0, "cantidad") → "items.0.cantidad"
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        issues.append({"campo": ".".join(loc) or "body", "mensaje": err.get("msg", "Valor inválido")})
    return issues


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("❌ %s %s | %s", request.method, request.url.path, exc.message)
    else:
        logger.info("⚠️ %s %s → %s | %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    issues = _field_issues(exc)
    logger.info("⚠️ %s %s → 400 | %d campos inválidos", request.method, request.url.path, len(issues))
    return JSONResponse({"error": "Datos inválidos", "details": issues}, status_code=400)


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("❌ Error inesperado | %s %s", request.method, request.url.path)
    return JSONResponse({"error": "Error interno del servidor"}, status_code=500)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
