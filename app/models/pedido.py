"""
📦 MODELO DE PEDIDOS - ESTRUCTURA DE ÓRDENES
============================================

Este módulo define la estructura de datos para pedidos, incluyendo estados,
ítems y la relación con clientes y repartos.

📊 ESTRUCTURA PRINCIPAL:

🛒 TABLA PEDIDOS:
- ID único del pedido
- Referencia a cliente (obligatoria)
- Referencia a reparto (opcional, se asigna por zona)
- Estado actual (pendiente → entregado | cancelado)
- Cobrado: seguimiento de pago, independiente del estado
- Total calculado con precisión decimal
- Observación libre

🔍 TABLA PEDIDO_ITEMS:
- Producto y cantidad
- Precio unitario (snapshot al momento de la compra)
- Referencia explícita al Precio usado (si existe)
- Subtotal = cantidad × precio
- Inmutables una vez creado el pedido

📋 ESTADOS DE PEDIDO:
- PENDIENTE: Recién creado, esperando entrega
- ENTREGADO: Terminal
- CANCELADO: Terminal

🔗 CLAVES FORÁNEAS:
- Pedido → Cliente (RESTRICT: no se borran clientes con pedidos)
- Pedido → Reparto (SET NULL)
- PedidoItem → Pedido (CASCADE)
- PedidoItem → Producto / Precio (RESTRICT)

Las relaciones se consultan explícitamente en los servicios; los modelos
solo declaran las claves foráneas.
"""

from datetime import datetime, timezone
from enum import Enum
from sqlalchemy import Column, Integer, DateTime, Boolean, ForeignKey, Text, Numeric
from sqlalchemy import Enum as SQLEnum
from sqlalchemy import CheckConstraint, Index
from database.connection import Base


class EstadoPedido(Enum):
    PENDIENTE = "PENDIENTE"
    ENTREGADO = "ENTREGADO"
    CANCELADO = "CANCELADO"


def _ahora():
    return datetime.now(timezone.utc)


# Modelo de pedido
class Pedido(Base):
    __tablename__ = "pedidos"

    id = Column(Integer, primary_key=True, index=True)
    cliente_id = Column(Integer, ForeignKey("clientes.id", ondelete="RESTRICT"), nullable=False)
    reparto_id = Column(Integer, ForeignKey("repartos.id", ondelete="SET NULL"), nullable=True, index=True)
    fecha = Column(DateTime(timezone=True), nullable=False, default=_ahora)
    estado = Column(SQLEnum(EstadoPedido), default=EstadoPedido.PENDIENTE, nullable=False)
    cobrado = Column(Boolean, nullable=False, default=False)
    total = Column(Numeric(10, 2), nullable=False)
    observacion = Column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("total >= 0", name="ck_pedido_total_nonneg"),
        Index("ix_pedidos_estado_fecha", "estado", "fecha"),
        Index("ix_pedidos_cliente_fecha", "cliente_id", "fecha"),
    )

    def __repr__(self):
        return f"<Pedido(id={self.id}, cliente_id={self.cliente_id}, estado={self.estado}, total={self.total})>"

# Modelo de ítem de pedido
class PedidoItem(Base):
    __tablename__ = "pedido_items"

    id = Column(Integer, primary_key=True, index=True)
    pedido_id = Column(Integer, ForeignKey("pedidos.id", ondelete="CASCADE"), nullable=False, index=True)
    producto_id = Column(Integer, ForeignKey("productos.id", ondelete="RESTRICT"), nullable=False, index=True)
    precio_id = Column(Integer, ForeignKey("precios.id", ondelete="RESTRICT"), nullable=True, index=True)

    cantidad = Column(Integer, nullable=False, default=1)
    precio = Column(Numeric(10, 2), nullable=False)  # Precio unitario al momento de la compra
    subtotal = Column(Numeric(10, 2), nullable=False)  # cantidad × precio

    __table_args__ = (
        CheckConstraint("cantidad > 0", name="ck_item_cantidad_positive"),
        CheckConstraint("precio > 0 AND subtotal > 0", name="ck_item_precios_positive"),
    )

    def __repr__(self):
        return f"<PedidoItem(pedido_id={self.pedido_id}, producto_id={self.producto_id}, cantidad={self.cantidad})>"
