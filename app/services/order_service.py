"""
📦 ORDER SERVICE - CICLO DE VIDA DE PEDIDOS
===========================================

Este módulo es el corazón del sistema de pedidos: creación con cálculo de
totales, asignación automática a repartos y máquina de estados.

🔄 MÁQUINA DE ESTADOS:

    PENDIENTE ──► ENTREGADO   (terminal)
        │
        └──────► CANCELADO   (terminal)

- mark_delivered(): solo desde PENDIENTE
- cancel_order(): nunca si ENTREGADO; cancelar dos veces también es error
- toggle_paid(): en cualquier estado (el cobro es independiente de la entrega)
- Pedidos ENTREGADOS/CANCELADOS solo aceptan cambios triviales
  (cobrado, observación)

🔐 PERMISOS:
Cada operación verifica primero que el actor sea ADMIN o el USUARIO del
cliente del pedido (app.services.access_control).
Solo un ADMIN puede forzar el tipo de precio al crear un pedido.

💰 CÁLCULOS MONETARIOS:
- Precio unitario explícito o, si falta, el precio activo de la categoría
  del producto para el tipo de cliente
- Subtotales y total redondeados a 2 decimales (Decimal, ROUND_HALF_UP)
- Ningún subtotal ni total puede superar MONTO_MAXIMO (Numeric(10, 2))
- Cada ítem guarda referencia al Precio vigente que corresponde

⚡ OPTIMIZACIONES:
- Productos y precios de todos los ítems en dos queries (fix N+1)
- Serialización con cliente/reparto/ítems en tres queries
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.models.categoria import Producto
from app.models.cliente import Cliente
from app.models.pedido import Pedido, PedidoItem, EstadoPedido
from app.models.precio import TipoPrecio
from app.services.access_control import SessionContext, ensure_order_access, order_scope
from app.services.delivery_service import DeliveryService
from app.services.pricing_service import PricingService
from app.services.serializers import money, orders_to_dicts
from app.utils.decorators import db_transaction, read_only
from app.utils.exceptions import AuthorizationError, DataValidationError, NotFoundError, StateError

logger = logging.getLogger(__name__)

# Transiciones permitidas de la máquina de estados
TRANSICIONES = {
    EstadoPedido.PENDIENTE: {EstadoPedido.ENTREGADO, EstadoPedido.CANCELADO},
    EstadoPedido.ENTREGADO: set(),
    EstadoPedido.CANCELADO: set(),
}

# Máximo que admiten las columnas Numeric(10, 2)
MONTO_MAXIMO = Decimal("99999999.99")


class OrderService:
    """Servicio para crear pedidos y gobernar su ciclo de vida"""

    def __init__(self, db: Session):
        self.db = db
        self.pricing = PricingService(db)
        self.delivery = DeliveryService(db)

    def _get_pedido(self, pedido_id: int) -> Pedido:
        pedido = self.db.get(Pedido, pedido_id)
        if not pedido:
            raise NotFoundError("Pedido no encontrado")
        return pedido

    def _detail(self, pedido: Pedido) -> Dict[str, Any]:
        self.db.flush()
        return orders_to_dicts(self.db, [pedido])[0]

    def _validate_order_items(self, items: List[Dict[str, Any]], tipo: TipoPrecio) -> List[Dict[str, Any]]:
        """
        Valida los ítems y calcula precio/subtotal de cada uno.

        Args:
            items: [{"producto_id": int, "cantidad": int, "precio": Decimal | None}]
            tipo: Tipo de precio del cliente para resolver precios faltantes

        Returns:
            Lista de líneas listas para crear PedidoItem

        Raises:
            DataValidationError: con el detalle por ítem inválido
        """
        producto_ids = {item["producto_id"] for item in items}
        productos = {
            p.id: p
            for p in self.db.query(Producto).filter(Producto.id.in_(producto_ids)).all()
        }
        vigentes = self.pricing.active_prices_by_category({p.categoria_id for p in productos.values()}, tipo)

        lineas = []
        errores = []
        for i, item in enumerate(items):
            producto = productos.get(item["producto_id"])
            if not producto:
                errores.append({"campo": f"items.{i}.producto_id",
                                "mensaje": f"Producto {item['producto_id']} no encontrado"})
                continue
            if not producto.activo:
                errores.append({"campo": f"items.{i}.producto_id",
                                "mensaje": f"Producto {producto.id} no disponible"})
                continue

            vigente = vigentes.get(producto.categoria_id)
            if item.get("precio") is not None:
                precio = money(item["precio"])
            elif vigente is not None:
                precio = money(vigente.valor)
            else:
                errores.append({"campo": f"items.{i}.precio",
                                "mensaje": f"No hay precio {tipo.value} activo para el producto {producto.id}"})
                continue

            # Referencia explícita al Precio solo si el valor coincide con el vigente
            precio_id = vigente.id if vigente is not None and money(vigente.valor) == precio else None

            lineas.append({
                "producto_id": producto.id,
                "precio_id": precio_id,
                "cantidad": item["cantidad"],
                "precio": precio,
                "subtotal": money(precio * item["cantidad"]),
            })
            if lineas[-1]["subtotal"] > MONTO_MAXIMO:
                errores.append({"campo": f"items.{i}.cantidad",
                                "mensaje": f"El subtotal supera el máximo permitido ({MONTO_MAXIMO})"})

        if errores:
            raise DataValidationError("Hay ítems inválidos en el pedido", details=errores)
        return lineas

    def _transition(self, pedido: Pedido, nuevo: EstadoPedido) -> None:
        actual = pedido.estado
        if actual == EstadoPedido.ENTREGADO and nuevo == EstadoPedido.CANCELADO:
            raise StateError("No se puede cancelar un pedido ya entregado")
        if nuevo not in TRANSICIONES[actual]:
            raise StateError(f"No se puede pasar un pedido de {actual.value} a {nuevo.value}")
        pedido.estado = nuevo
        logger.info("📋 Pedido %s: %s → %s", pedido.id, actual.value, nuevo.value)

    # ==========================================
    # CREACIÓN Y EDICIÓN
    # ==========================================

    @db_transaction
    def create_order(self, ctx: SessionContext, datos: Dict[str, Any]) -> Dict[str, Any]:
        """
        Crea un pedido PENDIENTE con sus ítems.

        Args:
            ctx: Contexto de sesión del actor
            datos: cliente_id, items, y opcionales fecha, cobrado,
                observacion, reparto_id, tipo_precio

        Returns:
            Pedido con cliente, reparto e ítems
        """
        ensure_order_access(ctx, datos["cliente_id"], "crear")

        cliente = self.db.get(Cliente, datos["cliente_id"])
        if not cliente:
            raise DataValidationError.for_field("cliente_id", "El cliente seleccionado no existe")

        if datos.get("tipo_precio") and not ctx.is_admin:
            raise AuthorizationError("Solo un administrador puede elegir el tipo de precio")
        tipo = datos.get("tipo_precio") or cliente.tipo_precio
        lineas = self._validate_order_items(datos["items"], tipo)
        total = money(sum((linea["subtotal"] for linea in lineas), Decimal("0")))
        if total > MONTO_MAXIMO:
            raise DataValidationError.for_field("items", f"El total del pedido supera el máximo permitido ({MONTO_MAXIMO})")

        pedido = Pedido(
            cliente_id=cliente.id,
            fecha=datos.get("fecha") or datetime.now(timezone.utc),
            estado=EstadoPedido.PENDIENTE,
            cobrado=datos.get("cobrado", False),
            observacion=datos.get("observacion"),
            total=total,
        )

        if datos.get("reparto_id") is not None:
            reparto = self.delivery.validate_round_for_client(datos["reparto_id"], cliente)
            pedido.reparto_id = reparto.id
        else:
            self.delivery.assign_round(pedido, cliente)

        self.db.add(pedido)
        self.db.flush()

        for linea in lineas:
            self.db.add(PedidoItem(pedido_id=pedido.id, **linea))

        logger.info("🛒 Pedido %s creado | cliente=%s | total=%s | reparto=%s",
                    pedido.id, cliente.id, total, pedido.reparto_id or "sin asignar")
        return self._detail(pedido)

    @db_transaction
    def update_order(self, ctx: SessionContext, pedido_id: int, cambios: Dict[str, Any]) -> Dict[str, Any]:
        """
        Actualización parcial: estado, cobrado, observacion, reparto_id.

        Solo se aplican las claves presentes en `cambios`. El reparto solo
        se cambia en pedidos PENDIENTES y debe ser de la zona del cliente;
        reparto_id=None desasigna.
        """
        pedido = self._get_pedido(pedido_id)
        ensure_order_access(ctx, pedido.cliente_id, "actualizar")

        if "reparto_id" in cambios and cambios["reparto_id"] != pedido.reparto_id:
            if pedido.estado != EstadoPedido.PENDIENTE:
                raise StateError(f"No se puede cambiar el reparto de un pedido {pedido.estado.value}")
            if cambios["reparto_id"] is None:
                pedido.reparto_id = None
            else:
                cliente = self.db.get(Cliente, pedido.cliente_id)
                reparto = self.delivery.validate_round_for_client(cambios["reparto_id"], cliente)
                pedido.reparto_id = reparto.id

        nuevo_estado = cambios.get("estado")
        if nuevo_estado is not None and nuevo_estado != pedido.estado:
            self._transition(pedido, nuevo_estado)

        if cambios.get("cobrado") is not None:
            pedido.cobrado = cambios["cobrado"]
        if "observacion" in cambios:
            pedido.observacion = cambios["observacion"]

        return self._detail(pedido)

    # ==========================================
    # TRANSICIONES
    # ==========================================

    @db_transaction
    def mark_delivered(self, ctx: SessionContext, pedido_id: int) -> Dict[str, Any]:
        pedido = self._get_pedido(pedido_id)
        ensure_order_access(ctx, pedido.cliente_id, "entregar")

        if pedido.estado != EstadoPedido.PENDIENTE:
            raise StateError(f"Solo se pueden entregar pedidos pendientes (estado actual: {pedido.estado.value})")
        self._transition(pedido, EstadoPedido.ENTREGADO)
        return self._detail(pedido)

    @db_transaction
    def cancel_order(self, ctx: SessionContext, pedido_id: int) -> Dict[str, Any]:
        pedido = self._get_pedido(pedido_id)
        ensure_order_access(ctx, pedido.cliente_id, "cancelar")

        if pedido.estado == EstadoPedido.ENTREGADO:
            raise StateError("No se puede cancelar un pedido ya entregado")
        if pedido.estado == EstadoPedido.CANCELADO:
            raise StateError("El pedido ya está cancelado")
        self._transition(pedido, EstadoPedido.CANCELADO)

        return {"message": "Pedido cancelado correctamente", "id": pedido.id, "estado": pedido.estado.value}

    @db_transaction
    def toggle_paid(self, ctx: SessionContext, pedido_id: int) -> Dict[str, Any]:
        pedido = self._get_pedido(pedido_id)
        ensure_order_access(ctx, pedido.cliente_id, "actualizar")

        pedido.cobrado = not pedido.cobrado
        logger.info("💳 Pedido %s cobrado=%s", pedido.id, pedido.cobrado)
        return self._detail(pedido)

    # ==========================================
    # CONSULTAS
    # ==========================================

    @read_only
    def get_order(self, ctx: SessionContext, pedido_id: int) -> Dict[str, Any]:
        pedido = self._get_pedido(pedido_id)
        ensure_order_access(ctx, pedido.cliente_id, "ver")
        return orders_to_dicts(self.db, [pedido])[0]

    @read_only
    def list_orders(self, ctx: SessionContext, cliente_id: Optional[int] = None,
                    estado: Optional[EstadoPedido] = None) -> List[Dict[str, Any]]:
        """
        Lista pedidos, más recientes primero. Un USUARIO solo ve los de su
        cliente (el filtro cliente_id se ignora en ese caso).
        """
        alcance = order_scope(ctx)
        query = self.db.query(Pedido)
        if alcance is not None:
            query = query.filter(Pedido.cliente_id == alcance)
        elif cliente_id is not None:
            query = query.filter(Pedido.cliente_id == cliente_id)
        if estado is not None:
            query = query.filter(Pedido.estado == estado)

        pedidos = query.order_by(Pedido.fecha.desc(), Pedido.id.desc()).all()
        return orders_to_dicts(self.db, pedidos)
