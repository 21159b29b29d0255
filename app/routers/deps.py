"""
Dependencias comunes de los routers: sesión de base y sesión de usuario.
"""
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.services.access_control import SessionContext, require_admin
from app.services.auth_service import AuthService
from app.utils.exceptions import AuthenticationError
from config.settings import settings
from database.connection import get_db


def _token_from_request(request: Request) -> Optional[str]:
    """Bearer token del header Authorization o, si falta, la cookie de sesión."""
    auth = request.headers.get("authorization", "")
    scheme, _, token = auth.partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    return request.cookies.get(settings.SESSION_COOKIE_NAME)


def get_session(request: Request, db: Session = Depends(get_db)) -> SessionContext:
    token = _token_from_request(request)
    if not token:
        raise AuthenticationError("No autorizado")
    return AuthService(db).session_from_token(token)


def require_admin_session(ctx: SessionContext = Depends(get_session)) -> SessionContext:
    require_admin(ctx)
    return ctx
