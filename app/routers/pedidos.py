from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session
from typing import List, Optional

from app.models.pedido import EstadoPedido
from app.models.precio import TipoPrecio
from app.routers.deps import get_session
from app.services.access_control import SessionContext
from app.services.order_service import OrderService
from database.connection import get_db


router = APIRouter()


class PedidoItemIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    producto_id: int
    cantidad: int = Field(..., gt=0, le=100000)
    # Si falta se usa el precio activo de la categoría para el tipo del cliente
    precio: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)


class PedidoIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    cliente_id: int
    items: List[PedidoItemIn] = Field(..., min_length=1)
    fecha: Optional[datetime] = None
    cobrado: bool = False
    observacion: Optional[str] = None
    reparto_id: Optional[int] = None
    tipo_precio: Optional[TipoPrecio] = None


class PedidoUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    estado: Optional[EstadoPedido] = None
    cobrado: Optional[bool] = None
    observacion: Optional[str] = None
    reparto_id: Optional[int] = None


@router.get("")
def list_pedidos(cliente_id: Optional[int] = None, estado: Optional[EstadoPedido] = None,
                 ctx: SessionContext = Depends(get_session), db: Session = Depends(get_db)):
    return OrderService(db).list_orders(ctx, cliente_id=cliente_id, estado=estado)


@router.post("", status_code=201)
def create_pedido(body: PedidoIn, ctx: SessionContext = Depends(get_session), db: Session = Depends(get_db)):
    datos = body.model_dump()
    return OrderService(db).create_order(ctx, datos)


@router.get("/{pedido_id}")
def get_pedido(pedido_id: int, ctx: SessionContext = Depends(get_session), db: Session = Depends(get_db)):
    return OrderService(db).get_order(ctx, pedido_id)


@router.put("/{pedido_id}")
def update_pedido(pedido_id: int, body: PedidoUpdate,
                  ctx: SessionContext = Depends(get_session), db: Session = Depends(get_db)):
    # Solo los campos enviados: reparto_id=null desasigna, ausente no toca
    return OrderService(db).update_order(ctx, pedido_id, body.model_dump(exclude_unset=True))


@router.delete("/{pedido_id}")
def cancel_pedido(pedido_id: int, ctx: SessionContext = Depends(get_session), db: Session = Depends(get_db)):
    return OrderService(db).cancel_order(ctx, pedido_id)


@router.post("/{pedido_id}/entregar")
def entregar_pedido(pedido_id: int, ctx: SessionContext = Depends(get_session), db: Session = Depends(get_db)):
    return OrderService(db).mark_delivered(ctx, pedido_id)


@router.post("/{pedido_id}/cobro")
def toggle_cobro(pedido_id: int, ctx: SessionContext = Depends(get_session), db: Session = Depends(get_db)):
    return OrderService(db).toggle_paid(ctx, pedido_id)
