from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, ConfigDict, Field, field_validator
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.orm import Session
import logging

from app.routers.deps import get_session
from app.services.access_control import SessionContext
from app.services.auth_service import AuthService
from config.settings import settings
from database.connection import get_db


router = APIRouter()
limiter = Limiter(key_func=get_remote_address)
logger = logging.getLogger(__name__)


class LoginIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: str = Field(..., min_length=3, max_length=120)
    password: str = Field(..., min_length=1, max_length=72)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


@router.post("/login")
@limiter.limit(settings.LOGIN_RATE_LIMIT)
def login(request: Request, response: Response, body: LoginIn, db: Session = Depends(get_db)):
    """Valida credenciales, devuelve el token y lo deja también en cookie."""
    result = AuthService(db).authenticate(body.email, body.password)
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        result["token"],
        max_age=settings.SESSION_TTL_MINUTES * 60,
        httponly=True,
        samesite="lax",
        secure=not settings.DEBUG,
    )
    return result


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return {"message": "Sesión cerrada"}


@router.get("/me")
def me(ctx: SessionContext = Depends(get_session), db: Session = Depends(get_db)):
    return AuthService(db).current_user(ctx)
