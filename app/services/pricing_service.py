"""
💲 PRICING SERVICE - PRECIOS POR CATEGORÍA Y TIPO DE CLIENTE
============================================================

Resuelve el precio vigente de una categoría para un tipo de cliente
(FABRICA / MAYORISTA / MINORISTA) y mantiene el invariante:

    como máximo UN precio activo por (categoría, tipo)

🔄 ACTIVACIÓN (dentro de una sola transacción):
1. Bloquear (SELECT ... FOR UPDATE en PostgreSQL) los precios activos
   del mismo (categoría, tipo)
2. Desactivarlos: activo=False, fecha_fin=ahora
3. Insertar/activar el precio nuevo

El índice único parcial de la tabla precios respalda el invariante si dos
requests compiten: el perdedor termina en ConflictError.

📊 FUNCIONES PRINCIPALES:
- resolve_active_price(): búsqueda directa del precio vigente
- active_prices_by_category(): precios vigentes de varias categorías (pedidos)
- create_price() / update_price() / delete_price()
- list_prices() / get_price()
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from app.models.categoria import Categoria
from app.models.pedido import PedidoItem
from app.models.precio import Precio, TipoPrecio
from app.services.serializers import money, precio_to_dict
from app.utils.decorators import db_transaction, read_only
from app.utils.exceptions import DataValidationError, NotFoundError, StateError

logger = logging.getLogger(__name__)


class PricingService:
    """Servicio para resolver y mantener precios vigentes"""

    def __init__(self, db: Session):
        self.db = db

    def _get_price_or_404(self, precio_id: int) -> Precio:
        precio = self.db.get(Precio, precio_id)
        if not precio:
            raise NotFoundError("Precio no encontrado")
        return precio

    def _get_categoria(self, categoria_id: int) -> Categoria:
        categoria = self.db.get(Categoria, categoria_id)
        if not categoria:
            raise DataValidationError.for_field("categoria_id", "La categoría seleccionada no existe")
        return categoria

    def _deactivate_competing(self, categoria_id: int, tipo: TipoPrecio,
                              excluir_id: Optional[int] = None) -> int:
        """
        Desactiva los precios activos del mismo (categoría, tipo).

        Debe llamarse ANTES de modificar el precio que se activa: el flush
        final escribe las desactivaciones en la base.
        """
        query = self.db.query(Precio).filter(
            Precio.categoria_id == categoria_id,
            Precio.tipo == tipo,
            Precio.activo.is_(True),
        )
        if excluir_id is not None:
            query = query.filter(Precio.id != excluir_id)

        vigentes = query.with_for_update().all()
        ahora = datetime.now(timezone.utc)
        for precio in vigentes:
            precio.activo = False
            precio.fecha_fin = ahora
        self.db.flush()

        if vigentes:
            logger.info(
                "💲 Desactivados %d precio(s) previos | categoria=%s tipo=%s",
                len(vigentes), categoria_id, tipo.value,
            )
        return len(vigentes)

    # ==========================================
    # RESOLUCIÓN
    # ==========================================

    def find_active_price(self, categoria_id: int, tipo: TipoPrecio) -> Optional[Precio]:
        return (self.db.query(Precio)
                .filter(Precio.categoria_id == categoria_id,
                        Precio.tipo == tipo,
                        Precio.activo.is_(True))
                .first())

    @read_only
    def resolve_active_price(self, categoria_id: int, tipo: TipoPrecio) -> Precio:
        """
        Devuelve el precio activo de (categoría, tipo).

        Raises:
            NotFoundError: si no hay precio vigente
        """
        precio = self.find_active_price(categoria_id, tipo)
        if not precio:
            raise NotFoundError("No hay un precio activo para esta categoría y tipo")
        return precio

    def active_prices_by_category(self, categoria_ids: Iterable[int], tipo: TipoPrecio) -> Dict[int, Precio]:
        """Precios vigentes de varias categorías en una sola query"""
        ids = set(categoria_ids)
        if not ids:
            return {}
        precios = (self.db.query(Precio)
                   .filter(Precio.categoria_id.in_(ids),
                           Precio.tipo == tipo,
                           Precio.activo.is_(True))
                   .all())
        return {p.categoria_id: p for p in precios}

    # ==========================================
    # ESCRITURA
    # ==========================================

    def activate_price(self, precio: Precio) -> Precio:
        """
        Activa un precio ya persistido desactivando a su competencia.
        Se ejecuta dentro de la transacción de quien llama.
        """
        self._deactivate_competing(precio.categoria_id, precio.tipo, excluir_id=precio.id)
        precio.activo = True
        self.db.flush()
        return precio

    @db_transaction
    def create_price(self, datos: Dict[str, Any]) -> Dict[str, Any]:
        """
        Crea un precio. Si llega activo, el precio activo anterior del mismo
        (categoría, tipo) queda inactivo con fecha_fin = ahora.
        """
        categoria = self._get_categoria(datos["categoria_id"])
        tipo = datos["tipo"]
        activo = datos.get("activo", True)

        # Se inserta inactivo y luego se activa: nunca hay dos activos a la vez
        precio = Precio(
            categoria_id=categoria.id,
            tipo=tipo,
            valor=money(datos["valor"]),
            fecha_inicio=datos.get("fecha_inicio") or datetime.now(timezone.utc),
            fecha_fin=datos.get("fecha_fin"),
            activo=False,
        )
        self.db.add(precio)
        self.db.flush()

        if activo:
            self.activate_price(precio)

        logger.info("💲 Precio %s creado | categoria=%s tipo=%s valor=%s activo=%s",
                    precio.id, categoria.id, tipo.value, precio.valor, activo)
        return precio_to_dict(precio, categoria)

    @db_transaction
    def update_price(self, precio_id: int, datos: Dict[str, Any]) -> Dict[str, Any]:
        precio = self._get_price_or_404(precio_id)
        categoria = self._get_categoria(datos["categoria_id"])
        tipo = datos["tipo"]
        activo = datos.get("activo", True)

        cambia_clave = precio.categoria_id != categoria.id or precio.tipo != tipo
        if activo and (not precio.activo or cambia_clave):
            self._deactivate_competing(categoria.id, tipo, excluir_id=precio.id)

        precio.categoria_id = categoria.id
        precio.tipo = tipo
        precio.valor = money(datos["valor"])
        if datos.get("fecha_inicio") is not None:
            precio.fecha_inicio = datos["fecha_inicio"]
        precio.fecha_fin = datos.get("fecha_fin")
        precio.activo = activo
        self.db.flush()

        return precio_to_dict(precio, categoria)

    @db_transaction
    def delete_price(self, precio_id: int) -> Dict[str, Any]:
        precio = self._get_price_or_404(precio_id)

        en_uso = self.db.query(PedidoItem.id).filter(PedidoItem.precio_id == precio.id).first()
        if en_uso:
            raise StateError("No se puede eliminar el precio porque está siendo utilizado en pedidos")

        self.db.delete(precio)
        logger.info("🗑️ Precio %s eliminado", precio_id)
        return {"message": "Precio eliminado correctamente"}

    # ==========================================
    # CONSULTAS
    # ==========================================

    @read_only
    def list_prices(self, categoria_id: Optional[int] = None, solo_activos: bool = False) -> List[Dict[str, Any]]:
        query = (self.db.query(Precio, Categoria)
                 .join(Categoria, Categoria.id == Precio.categoria_id))
        if categoria_id is not None:
            query = query.filter(Precio.categoria_id == categoria_id)
        if solo_activos:
            query = query.filter(Precio.activo.is_(True))

        filas = query.order_by(Precio.categoria_id.asc(), Precio.tipo.asc(), Precio.fecha_inicio.desc()).all()
        return [precio_to_dict(precio, categoria) for precio, categoria in filas]

    @read_only
    def get_price(self, precio_id: int) -> Dict[str, Any]:
        precio = self._get_price_or_404(precio_id)
        return precio_to_dict(precio, self.db.get(Categoria, precio.categoria_id))
