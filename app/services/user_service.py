"""
👤 USER SERVICE
===============

ABM de usuarios del sistema (solo ADMIN). El email se guarda en minúsculas
y es único; la contraseña se guarda como hash bcrypt.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.models.cliente import Cliente
from app.models.usuario import Usuario, Rol
from app.services.access_control import SessionContext, ensure_not_self
from app.services.auth_service import hash_password
from app.services.serializers import usuario_to_dict
from app.utils.decorators import db_transaction, read_only
from app.utils.exceptions import ConflictError, DataValidationError, NotFoundError

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, db: Session):
        self.db = db

    def _get_or_404(self, usuario_id: int) -> Usuario:
        usuario = self.db.get(Usuario, usuario_id)
        if not usuario:
            raise NotFoundError("Usuario no encontrado")
        return usuario

    def _email_taken(self, email: str, excluir_id: Optional[int] = None) -> bool:
        query = self.db.query(Usuario.id).filter(Usuario.email == email)
        if excluir_id is not None:
            query = query.filter(Usuario.id != excluir_id)
        return query.first() is not None

    def _get_cliente(self, cliente_id: Optional[int]) -> Optional[Cliente]:
        if cliente_id is None:
            return None
        cliente = self.db.get(Cliente, cliente_id)
        if not cliente:
            raise DataValidationError.for_field("cliente_id", "El cliente seleccionado no existe")
        return cliente

    def _to_dict(self, usuario: Usuario) -> Dict[str, Any]:
        cliente = self.db.get(Cliente, usuario.cliente_id) if usuario.cliente_id else None
        return usuario_to_dict(usuario, cliente)

    @read_only
    def list_users(self) -> List[Dict[str, Any]]:
        usuarios = self.db.query(Usuario).order_by(Usuario.nombre.asc()).all()
        cliente_ids = {u.cliente_id for u in usuarios if u.cliente_id}
        clientes = {}
        if cliente_ids:
            clientes = {c.id: c for c in self.db.query(Cliente).filter(Cliente.id.in_(cliente_ids)).all()}
        return [usuario_to_dict(u, clientes.get(u.cliente_id)) for u in usuarios]

    @read_only
    def get_user(self, usuario_id: int) -> Dict[str, Any]:
        return self._to_dict(self._get_or_404(usuario_id))

    @db_transaction
    def create_user(self, datos: Dict[str, Any]) -> Dict[str, Any]:
        email = datos["email"].strip().lower()
        if self._email_taken(email):
            raise ConflictError("El email ya está en uso")
        cliente = self._get_cliente(datos.get("cliente_id"))

        usuario = Usuario(
            nombre=datos["nombre"].strip(),
            email=email,
            password_hash=hash_password(datos["password"]),
            rol=datos.get("rol") or Rol.USUARIO,
            cliente_id=cliente.id if cliente else None,
        )
        self.db.add(usuario)
        self.db.flush()
        logger.info("👤 Usuario %s creado con rol %s", usuario.id, usuario.rol.value)
        return usuario_to_dict(usuario, cliente)

    @db_transaction
    def update_user(self, usuario_id: int, datos: Dict[str, Any]) -> Dict[str, Any]:
        usuario = self._get_or_404(usuario_id)
        email = datos["email"].strip().lower()
        if self._email_taken(email, excluir_id=usuario.id):
            raise ConflictError("El email ya está en uso por otro usuario")
        cliente = self._get_cliente(datos.get("cliente_id"))

        usuario.nombre = datos["nombre"].strip()
        usuario.email = email
        usuario.rol = datos.get("rol") or usuario.rol
        usuario.cliente_id = cliente.id if cliente else None
        # Contraseña opcional en la edición
        if datos.get("password"):
            usuario.password_hash = hash_password(datos["password"])
        self.db.flush()
        return usuario_to_dict(usuario, cliente)

    @db_transaction
    def delete_user(self, ctx: SessionContext, usuario_id: int) -> Dict[str, Any]:
        usuario = self._get_or_404(usuario_id)
        ensure_not_self(ctx, usuario.id)

        self.db.delete(usuario)
        logger.info("🗑️ Usuario %s eliminado", usuario_id)
        return {"message": "Usuario eliminado correctamente"}
