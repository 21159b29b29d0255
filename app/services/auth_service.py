"""
🔑 AUTH SERVICE - CONTRASEÑAS Y TOKENS DE SESIÓN
================================================

🔒 CONTRASEÑAS:
- bcrypt (hashpw / checkpw), nunca se guardan ni se loguean en claro

🎫 TOKEN DE SESIÓN:
    base64url(json payload) + "." + base64url(HMAC-SHA256(payload, SECRET_KEY))

    payload = {"sub": usuario_id, "rol": "ADMIN", "cliente_id": 3, "exp": 1760000000}

- Firma comparada en tiempo constante (hmac.compare_digest)
- El token solo identifica al usuario: en cada request se relee la fila
  de la base, así que rol y cliente siempre reflejan el estado actual
"""
import base64
import hashlib
import hmac
import json
import logging
import time
from typing import Any, Dict, Optional

import bcrypt
from sqlalchemy.orm import Session

from app.models.cliente import Cliente
from app.models.usuario import Usuario
from app.services.access_control import SessionContext
from app.services.serializers import usuario_to_dict
from app.utils.decorators import read_only
from app.utils.exceptions import AuthenticationError
from config.settings import settings

logger = logging.getLogger(__name__)

INVALID_SESSION = "Sesión inválida o expirada"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Hash corrupto o con formato desconocido
        return False


def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64decode(data: str) -> bytes:
    return base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))


def _sign(payload_b64: str, key: str) -> str:
    digest = hmac.new(key.encode("utf-8"), payload_b64.encode("utf-8"), hashlib.sha256).digest()
    return _b64encode(digest)


def create_session_token(usuario: Usuario, ttl_minutes: Optional[int] = None,
                         secret: Optional[str] = None) -> str:
    """Emite un token firmado para el usuario"""
    ttl = ttl_minutes if ttl_minutes is not None else settings.SESSION_TTL_MINUTES
    payload = {
        "sub": usuario.id,
        "rol": usuario.rol.value,
        "cliente_id": usuario.cliente_id,
        "exp": int(time.time()) + ttl * 60,
    }
    payload_b64 = _b64encode(json.dumps(payload, separators=(",", ":")).encode("utf-8"))
    return f"{payload_b64}.{_sign(payload_b64, secret or settings.SECRET_KEY)}"


def decode_session_token(token: str, secret: Optional[str] = None) -> Dict[str, Any]:
    """
    Verifica firma y vencimiento de un token.

    Raises:
        AuthenticationError: si el token está mal formado, la firma no
            coincide o ya venció
    """
    try:
        payload_b64, signature = token.split(".", 1)
    except (AttributeError, ValueError):
        raise AuthenticationError(INVALID_SESSION)

    expected = _sign(payload_b64, secret or settings.SECRET_KEY)
    if not hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8")):
        logger.info("🔑 Token con firma inválida")
        raise AuthenticationError(INVALID_SESSION)

    try:
        payload = json.loads(_b64decode(payload_b64))
    except (ValueError, UnicodeDecodeError):
        raise AuthenticationError(INVALID_SESSION)

    if not isinstance(payload, dict) or not isinstance(payload.get("sub"), int):
        raise AuthenticationError(INVALID_SESSION)
    if int(payload.get("exp", 0)) < time.time():
        raise AuthenticationError(INVALID_SESSION)
    return payload


class AuthService:
    def __init__(self, db: Session):
        self.db = db

    @read_only
    def authenticate(self, email: str, password: str) -> Dict[str, Any]:
        """
        Valida credenciales y emite un token.

        Returns:
            {"token": str, "usuario": dict}
        """
        usuario = self.db.query(Usuario).filter(Usuario.email == email.strip().lower()).first()
        if not usuario or not verify_password(password, usuario.password_hash):
            logger.info("🔑 Login fallido")
            raise AuthenticationError("Credenciales inválidas")

        cliente = self.db.get(Cliente, usuario.cliente_id) if usuario.cliente_id else None
        logger.info("🔑 Login de usuario %s (%s)", usuario.id, usuario.rol.value)
        return {"token": create_session_token(usuario), "usuario": usuario_to_dict(usuario, cliente)}

    @read_only
    def session_from_token(self, token: str) -> SessionContext:
        payload = decode_session_token(token)
        usuario = self.db.get(Usuario, payload["sub"])
        if not usuario:
            raise AuthenticationError(INVALID_SESSION)
        return SessionContext(usuario_id=usuario.id, rol=usuario.rol, cliente_id=usuario.cliente_id)

    @read_only
    def current_user(self, ctx: SessionContext) -> Dict[str, Any]:
        usuario = self.db.get(Usuario, ctx.usuario_id)
        if not usuario:
            raise AuthenticationError(INVALID_SESSION)
        cliente = self.db.get(Cliente, usuario.cliente_id) if usuario.cliente_id else None
        return usuario_to_dict(usuario, cliente)
