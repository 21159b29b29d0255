"""
👥 CLIENT SERVICE
=================

ABM de clientes. La zona se guarda normalizada para que coincida con la de
los repartos; el tipo de precio define qué precio se usa en sus pedidos
cuando un ítem no trae precio explícito.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.models.cliente import Cliente
from app.models.pedido import Pedido
from app.models.precio import TipoPrecio
from app.services.serializers import cliente_to_dict
from app.utils.decorators import db_transaction, read_only
from app.utils.exceptions import DataValidationError, NotFoundError, StateError
from app.utils.text_normalizer import normalize_zone

logger = logging.getLogger(__name__)


class ClientService:
    def __init__(self, db: Session):
        self.db = db

    def _get_or_404(self, cliente_id: int) -> Cliente:
        cliente = self.db.get(Cliente, cliente_id)
        if not cliente:
            raise NotFoundError("Cliente no encontrado")
        return cliente

    def _apply(self, cliente: Cliente, datos: Dict[str, Any]) -> None:
        zona = normalize_zone(datos["zona"])
        if not zona:
            raise DataValidationError.for_field("zona", "La zona es requerida")

        cliente.nombre = datos["nombre"].strip()
        cliente.direccion = datos["direccion"].strip()
        cliente.telefono = datos["telefono"].strip()
        cliente.email = datos.get("email")
        cliente.zona = zona
        cliente.tipo_precio = datos.get("tipo_precio") or TipoPrecio.MINORISTA
        cliente.activo = datos.get("activo", True)

    @read_only
    def list_clients(self, zona: Optional[str] = None, solo_activos: bool = False) -> List[Dict[str, Any]]:
        query = self.db.query(Cliente)
        if zona:
            query = query.filter(Cliente.zona == normalize_zone(zona))
        if solo_activos:
            query = query.filter(Cliente.activo.is_(True))
        return [cliente_to_dict(c) for c in query.order_by(Cliente.nombre.asc()).all()]

    @read_only
    def get_client(self, cliente_id: int) -> Dict[str, Any]:
        return cliente_to_dict(self._get_or_404(cliente_id))

    @db_transaction
    def create_client(self, datos: Dict[str, Any]) -> Dict[str, Any]:
        cliente = Cliente()
        self._apply(cliente, datos)
        self.db.add(cliente)
        self.db.flush()
        logger.info("👥 Cliente %s creado | zona=%s tipo=%s", cliente.id, cliente.zona, cliente.tipo_precio.value)
        return cliente_to_dict(cliente)

    @db_transaction
    def update_client(self, cliente_id: int, datos: Dict[str, Any]) -> Dict[str, Any]:
        cliente = self._get_or_404(cliente_id)
        self._apply(cliente, datos)
        self.db.flush()
        return cliente_to_dict(cliente)

    @db_transaction
    def delete_client(self, cliente_id: int) -> Dict[str, Any]:
        cliente = self._get_or_404(cliente_id)

        if self.db.query(Pedido.id).filter(Pedido.cliente_id == cliente.id).first():
            raise StateError("No se puede eliminar un cliente con pedidos asociados")

        self.db.delete(cliente)
        logger.info("🗑️ Cliente %s eliminado", cliente_id)
        return {"message": "Cliente eliminado correctamente"}
