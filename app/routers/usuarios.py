from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.orm import Session
from typing import Optional
import re

from app.models.usuario import Rol
from app.routers.deps import require_admin_session
from app.services.access_control import SessionContext
from app.services.user_service import UserService
from database.connection import get_db


router = APIRouter(dependencies=[Depends(require_admin_session)])

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _valid_email(v: str) -> str:
    v = v.strip().lower()
    if not _EMAIL_RE.match(v):
        raise ValueError("Email inválido")
    return v


def _password_fits(v):
    if v is not None and len(v.encode("utf-8")) > 72:
        raise ValueError("La contraseña no puede superar los 72 bytes")
    return v


class UsuarioIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    nombre: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., max_length=120)
    # bcrypt solo considera los primeros 72 bytes
    password: str = Field(..., min_length=6, max_length=72)
    rol: Rol = Rol.USUARIO
    cliente_id: Optional[int] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return _valid_email(v)

    @field_validator("password")
    @classmethod
    def check_password(cls, v):
        return _password_fits(v)


class UsuarioUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    nombre: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., max_length=120)
    password: Optional[str] = Field(None, min_length=6, max_length=72)
    rol: Optional[Rol] = None
    cliente_id: Optional[int] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return _valid_email(v)

    @field_validator("password")
    @classmethod
    def check_password(cls, v):
        return _password_fits(v)


@router.get("")
def list_usuarios(db: Session = Depends(get_db)):
    return UserService(db).list_users()


@router.post("", status_code=201)
def create_usuario(body: UsuarioIn, db: Session = Depends(get_db)):
    return UserService(db).create_user(body.model_dump())


@router.get("/{usuario_id}")
def get_usuario(usuario_id: int, db: Session = Depends(get_db)):
    return UserService(db).get_user(usuario_id)


@router.put("/{usuario_id}")
def update_usuario(usuario_id: int, body: UsuarioUpdate, db: Session = Depends(get_db)):
    return UserService(db).update_user(usuario_id, body.model_dump())


@router.delete("/{usuario_id}")
def delete_usuario(usuario_id: int, ctx: SessionContext = Depends(require_admin_session),
                   db: Session = Depends(get_db)):
    return UserService(db).delete_user(ctx, usuario_id)
