"""
🚚 DELIVERY SERVICE - ASIGNACIÓN DE PEDIDOS A REPARTOS
======================================================

Un reparto es la salida de entrega de una ZONA en una FECHA. Los pedidos
se asignan al reparto de la zona de su cliente.

🔄 REGLAS DE ASIGNACIÓN:
1. Pedido nuevo → reparto activo más próximo (fecha >= hoy) de la zona del
   cliente; si no hay, queda sin asignar
2. Reparto nuevo (activo) → absorbe los pedidos PENDIENTES sin reparto de
   clientes de su zona
3. Cambio de zona del reparto → se liberan los pedidos cuyo cliente ya no
   es de la zona y se absorben los pendientes de la zona nueva
4. Asignación manual → la zona del reparto debe coincidir con la del
   cliente; si no, se rechaza (no se corrige en silencio)

🛡️ INVARIANTES:
- Un único reparto por (zona, fecha): se verifica antes de insertar y lo
  respalda la restricción única de la tabla
- No se elimina un reparto con pedidos ENTREGADOS
"""
import logging
from collections import defaultdict
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.cliente import Cliente
from app.models.pedido import Pedido, EstadoPedido
from app.models.reparto import Reparto
from app.services.serializers import orders_to_dicts, reparto_to_dict
from app.utils.decorators import db_transaction, read_only
from app.utils.exceptions import ConflictError, DataValidationError, NotFoundError, StateError
from app.utils.text_normalizer import normalize_zone

logger = logging.getLogger(__name__)


class DeliveryService:
    """Servicio de repartos y asignación de pedidos por zona"""

    def __init__(self, db: Session):
        self.db = db

    def _get_round_or_404(self, reparto_id: int) -> Reparto:
        reparto = self.db.get(Reparto, reparto_id)
        if not reparto:
            raise NotFoundError("Reparto no encontrado")
        return reparto

    def _normalized_zone(self, zona: str) -> str:
        normalizada = normalize_zone(zona)
        if not normalizada:
            raise DataValidationError.for_field("zona", "La zona es requerida")
        return normalizada

    def _ensure_unique(self, zona: str, fecha: date, excluir_id: Optional[int] = None) -> None:
        query = self.db.query(Reparto.id).filter(Reparto.zona == zona, Reparto.fecha == fecha)
        if excluir_id is not None:
            query = query.filter(Reparto.id != excluir_id)
        if query.first():
            raise ConflictError("Ya existe un reparto para esta zona y fecha")

    def _round_detail(self, reparto: Reparto) -> Dict[str, Any]:
        pedidos = (self.db.query(Pedido)
                   .filter(Pedido.reparto_id == reparto.id)
                   .order_by(Pedido.fecha.asc())
                   .all())
        return reparto_to_dict(reparto, pedidos=orders_to_dicts(self.db, pedidos))

    # ==========================================
    # MOTOR DE ASIGNACIÓN
    # ==========================================

    def find_round_for_zone(self, zona: str, desde: Optional[date] = None) -> Optional[Reparto]:
        """Reparto activo más próximo de la zona con fecha >= desde (hoy por defecto)"""
        desde = desde or date.today()
        return (self.db.query(Reparto)
                .filter(Reparto.zona == zona,
                        Reparto.activo.is_(True),
                        Reparto.fecha >= desde)
                .order_by(Reparto.fecha.asc())
                .first())

    def assign_round(self, pedido: Pedido, cliente: Cliente) -> Optional[Reparto]:
        """Vincula el pedido al próximo reparto de la zona del cliente, si existe"""
        reparto = self.find_round_for_zone(cliente.zona)
        pedido.reparto_id = reparto.id if reparto else None
        if reparto:
            logger.debug("🚚 Pedido asignado a reparto %s (zona=%s, fecha=%s)", reparto.id, reparto.zona, reparto.fecha)
        else:
            logger.debug("🚚 Sin reparto próximo para zona=%s", cliente.zona)
        return reparto

    def absorb_pending_orders(self, reparto: Reparto) -> int:
        """Asigna al reparto los pedidos PENDIENTES sin reparto de clientes de su zona"""
        clientes_zona = select(Cliente.id).where(Cliente.zona == reparto.zona)
        asignados = (self.db.query(Pedido)
                     .filter(Pedido.cliente_id.in_(clientes_zona),
                             Pedido.reparto_id.is_(None),
                             Pedido.estado == EstadoPedido.PENDIENTE)
                     .update({Pedido.reparto_id: reparto.id}, synchronize_session="fetch"))
        if asignados:
            logger.info("🚚 Reparto %s absorbió %d pedido(s) pendientes de zona=%s", reparto.id, asignados, reparto.zona)
        return asignados

    def release_mismatched_orders(self, reparto: Reparto) -> int:
        """Desvincula los pedidos del reparto cuyo cliente no es de la zona del reparto"""
        clientes_fuera = select(Cliente.id).where(Cliente.zona != reparto.zona)
        liberados = (self.db.query(Pedido)
                     .filter(Pedido.reparto_id == reparto.id,
                             Pedido.cliente_id.in_(clientes_fuera))
                     .update({Pedido.reparto_id: None}, synchronize_session="fetch"))
        if liberados:
            logger.info("🚚 Reparto %s liberó %d pedido(s) fuera de zona=%s", reparto.id, liberados, reparto.zona)
        return liberados

    def validate_round_for_client(self, reparto_id: int, cliente: Cliente) -> Reparto:
        """
        Valida una asignación manual de reparto.

        Raises:
            DataValidationError: si el reparto no existe o es de otra zona
        """
        reparto = self.db.get(Reparto, reparto_id)
        if not reparto:
            raise DataValidationError.for_field("reparto_id", "El reparto seleccionado no existe")
        if reparto.zona != cliente.zona:
            raise DataValidationError.for_field(
                "reparto_id", "El reparto seleccionado no corresponde a la zona del cliente"
            )
        return reparto

    # ==========================================
    # ABM DE REPARTOS
    # ==========================================

    @db_transaction
    def create_round(self, datos: Dict[str, Any]) -> Dict[str, Any]:
        zona = self._normalized_zone(datos["zona"])
        fecha = datos["fecha"]

        # La unicidad se verifica antes de cualquier barrido de asignación
        self._ensure_unique(zona, fecha)

        reparto = Reparto(
            fecha=fecha,
            zona=zona,
            activo=datos.get("activo", True),
            observacion=datos.get("observacion"),
        )
        self.db.add(reparto)
        self.db.flush()

        asignados = self.absorb_pending_orders(reparto) if reparto.activo else 0
        logger.info("🚚 Reparto %s creado | zona=%s fecha=%s | pedidos asignados=%d",
                    reparto.id, zona, fecha, asignados)
        return self._round_detail(reparto)

    @db_transaction
    def update_round(self, reparto_id: int, datos: Dict[str, Any]) -> Dict[str, Any]:
        reparto = self._get_round_or_404(reparto_id)
        zona = self._normalized_zone(datos["zona"])
        fecha = datos["fecha"]
        zona_anterior = reparto.zona

        if fecha != reparto.fecha or zona != reparto.zona:
            self._ensure_unique(zona, fecha, excluir_id=reparto.id)

        reparto.fecha = fecha
        reparto.zona = zona
        reparto.activo = datos.get("activo", True)
        reparto.observacion = datos.get("observacion")
        self.db.flush()

        if zona != zona_anterior:
            self.release_mismatched_orders(reparto)
            if reparto.activo:
                self.absorb_pending_orders(reparto)
            logger.info("🚚 Reparto %s cambió de zona %s → %s", reparto.id, zona_anterior, zona)

        return self._round_detail(reparto)

    @db_transaction
    def delete_round(self, reparto_id: int) -> Dict[str, Any]:
        reparto = self._get_round_or_404(reparto_id)

        entregado = (self.db.query(Pedido.id)
                     .filter(Pedido.reparto_id == reparto.id,
                             Pedido.estado == EstadoPedido.ENTREGADO)
                     .first())
        if entregado:
            raise StateError("No se puede eliminar el reparto porque tiene pedidos entregados")

        (self.db.query(Pedido)
         .filter(Pedido.reparto_id == reparto.id)
         .update({Pedido.reparto_id: None}, synchronize_session="fetch"))
        self.db.delete(reparto)

        logger.info("🗑️ Reparto %s eliminado", reparto_id)
        return {"message": "Reparto eliminado correctamente"}

    # ==========================================
    # CONSULTAS
    # ==========================================

    @read_only
    def list_rounds(self, incluir_pasados: bool = False, zona: Optional[str] = None) -> List[Dict[str, Any]]:
        query = self.db.query(Reparto)
        if not incluir_pasados:
            query = query.filter(Reparto.fecha >= date.today())
        if zona:
            query = query.filter(Reparto.zona == normalize_zone(zona))
        repartos = query.order_by(Reparto.fecha.asc(), Reparto.zona.asc()).all()
        if not repartos:
            return []

        pedidos = (self.db.query(Pedido)
                   .filter(Pedido.reparto_id.in_([r.id for r in repartos]))
                   .order_by(Pedido.fecha.asc())
                   .all())
        por_reparto = defaultdict(list)
        for pedido_dict in orders_to_dicts(self.db, pedidos):
            por_reparto[pedido_dict["reparto_id"]].append(pedido_dict)

        return [reparto_to_dict(r, pedidos=por_reparto[r.id]) for r in repartos]

    @read_only
    def get_round(self, reparto_id: int) -> Dict[str, Any]:
        return self._round_detail(self._get_round_or_404(reparto_id))
