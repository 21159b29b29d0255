"""
🔐 CONTROL DE ACCESO
====================

Decide ALLOW/DENY a partir del contexto de sesión (derivado del token en
cada request, ver auth_service) y del recurso:

- Clientes, categorías, productos, precios, repartos y usuarios: solo ADMIN.
- Pedidos: ADMIN, o USUARIO cuyo cliente asociado es el cliente del pedido.
- Nadie puede eliminar su propio usuario.

DENY = AuthorizationError (403). Se verifica antes de cualquier mutación.
"""

from dataclasses import dataclass
from typing import Optional

from app.models.usuario import Rol
from app.utils.exceptions import AuthorizationError


@dataclass(frozen=True)
class SessionContext:
    usuario_id: int
    rol: Rol
    cliente_id: Optional[int] = None

    @property
    def is_admin(self) -> bool:
        return self.rol == Rol.ADMIN


def require_admin(ctx: SessionContext) -> None:
    if not ctx.is_admin:
        raise AuthorizationError("Se requiere rol de administrador")


def ensure_order_access(ctx: SessionContext, cliente_id: int, accion: str = "acceder a") -> None:
    """El USUARIO solo opera sobre pedidos de su propio cliente."""
    if ctx.is_admin:
        return
    if ctx.cliente_id is None or ctx.cliente_id != cliente_id:
        raise AuthorizationError(f"No tiene permiso para {accion} este pedido")


def order_scope(ctx: SessionContext) -> Optional[int]:
    """
    Cliente al que se limita un listado de pedidos.
    None = sin límite (ADMIN).
    """
    if ctx.is_admin:
        return None
    if ctx.cliente_id is None:
        raise AuthorizationError("Usuario no asociado a un cliente")
    return ctx.cliente_id


def ensure_not_self(ctx: SessionContext, usuario_id: int) -> None:
    if ctx.usuario_id == usuario_id:
        raise AuthorizationError("No puede eliminar su propio usuario")
