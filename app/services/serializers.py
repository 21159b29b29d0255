"""
Conversión de filas ORM a dicts JSON.

Los montos salen como float y las fechas en ISO 8601. Las relaciones se
cargan con consultas explícitas (ver orders_to_dicts); los modelos no
declaran relaciones perezosas.
"""
from collections import defaultdict
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from app.models.categoria import Categoria, Producto
from app.models.cliente import Cliente
from app.models.pedido import Pedido, PedidoItem
from app.models.precio import Precio
from app.models.reparto import Reparto
from app.models.usuario import Usuario


def money(amount: Any) -> Decimal:
    """Redondea cantidades monetarias a 2 decimales"""
    return Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _float(value) -> Optional[float]:
    return float(value) if value is not None else None


def cliente_to_dict(cliente: Cliente) -> Dict[str, Any]:
    return {
        "id": cliente.id,
        "nombre": cliente.nombre,
        "direccion": cliente.direccion,
        "telefono": cliente.telefono,
        "email": cliente.email,
        "zona": cliente.zona,
        "tipo_precio": cliente.tipo_precio.value,
        "activo": cliente.activo,
    }


def precio_to_dict(precio: Precio, categoria: Optional[Categoria] = None) -> Dict[str, Any]:
    data = {
        "id": precio.id,
        "categoria_id": precio.categoria_id,
        "tipo": precio.tipo.value,
        "valor": _float(precio.valor),
        "fecha_inicio": _iso(precio.fecha_inicio),
        "fecha_fin": _iso(precio.fecha_fin),
        "activo": precio.activo,
    }
    if categoria is not None:
        data["categoria"] = {"id": categoria.id, "nombre": categoria.nombre}
    return data


def categoria_to_dict(categoria: Categoria, precios: Optional[Iterable[Precio]] = None,
                      productos: Optional[Iterable[Producto]] = None) -> Dict[str, Any]:
    data = {
        "id": categoria.id,
        "nombre": categoria.nombre,
        "descripcion": categoria.descripcion,
    }
    if precios is not None:
        data["precios"] = [precio_to_dict(p) for p in precios]
    if productos is not None:
        data["productos"] = [producto_to_dict(p) for p in productos]
    return data


def producto_to_dict(producto: Producto, categoria: Optional[Categoria] = None) -> Dict[str, Any]:
    data = {
        "id": producto.id,
        "nombre": producto.nombre,
        "descripcion": producto.descripcion,
        "imagen": producto.imagen,
        "activo": producto.activo,
        "categoria_id": producto.categoria_id,
    }
    if categoria is not None:
        data["categoria"] = {"id": categoria.id, "nombre": categoria.nombre}
    return data


def reparto_to_dict(reparto: Reparto, pedidos: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    data = {
        "id": reparto.id,
        "fecha": _iso(reparto.fecha),
        "zona": reparto.zona,
        "activo": reparto.activo,
        "observacion": reparto.observacion,
    }
    if pedidos is not None:
        data["pedidos"] = pedidos
    return data


def usuario_to_dict(usuario: Usuario, cliente: Optional[Cliente] = None) -> Dict[str, Any]:
    # Nunca exponer password_hash
    return {
        "id": usuario.id,
        "nombre": usuario.nombre,
        "email": usuario.email,
        "rol": usuario.rol.value,
        "cliente_id": usuario.cliente_id,
        "cliente": cliente_to_dict(cliente) if cliente is not None else None,
    }


def item_to_dict(item: PedidoItem, producto: Optional[Producto] = None) -> Dict[str, Any]:
    return {
        "id": item.id,
        "producto_id": item.producto_id,
        "producto": producto_to_dict(producto) if producto is not None else None,
        "precio_id": item.precio_id,
        "cantidad": item.cantidad,
        "precio": _float(item.precio),
        "subtotal": _float(item.subtotal),
    }


def pedido_to_dict(pedido: Pedido, cliente: Optional[Cliente] = None, reparto: Optional[Reparto] = None,
                   items: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    return {
        "id": pedido.id,
        "fecha": _iso(pedido.fecha),
        "estado": pedido.estado.value,
        "cobrado": pedido.cobrado,
        "observacion": pedido.observacion,
        "total": _float(pedido.total),
        "cliente_id": pedido.cliente_id,
        "cliente": cliente_to_dict(cliente) if cliente is not None else None,
        "reparto_id": pedido.reparto_id,
        "reparto": reparto_to_dict(reparto) if reparto is not None else None,
        "items": items if items is not None else [],
    }


def orders_to_dicts(db: Session, pedidos: List[Pedido]) -> List[Dict[str, Any]]:
    """
    Serializa pedidos con cliente, reparto e ítems (+ producto).

    Tres consultas en total sin importar la cantidad de pedidos (fix N+1).
    Los pedidos e ítems nuevos deben estar flusheados antes de llamar.
    """
    if not pedidos:
        return []

    cliente_ids = {p.cliente_id for p in pedidos}
    reparto_ids = {p.reparto_id for p in pedidos if p.reparto_id is not None}
    pedido_ids = [p.id for p in pedidos]

    clientes = {c.id: c for c in db.query(Cliente).filter(Cliente.id.in_(cliente_ids)).all()}
    repartos = {}
    if reparto_ids:
        repartos = {r.id: r for r in db.query(Reparto).filter(Reparto.id.in_(reparto_ids)).all()}

    items_por_pedido = defaultdict(list)
    filas = (db.query(PedidoItem, Producto)
             .join(Producto, Producto.id == PedidoItem.producto_id)
             .filter(PedidoItem.pedido_id.in_(pedido_ids))
             .order_by(PedidoItem.id.asc())
             .all())
    for item, producto in filas:
        items_por_pedido[item.pedido_id].append(item_to_dict(item, producto))

    return [
        pedido_to_dict(
            p,
            cliente=clientes.get(p.cliente_id),
            reparto=repartos.get(p.reparto_id) if p.reparto_id is not None else None,
            items=items_por_pedido[p.id],
        )
        for p in pedidos
    ]
