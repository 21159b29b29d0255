# tests/test_pricing_service.py
from decimal import Decimal

import pytest

from app.models import Pedido, PedidoItem, Precio, TipoPrecio
from app.services.pricing_service import PricingService
from app.utils.exceptions import DataValidationError, NotFoundError, StateError


def _activos(db, categoria_id, tipo):
    db.expire_all()
    return (db.query(Precio)
            .filter(Precio.categoria_id == categoria_id, Precio.tipo == tipo, Precio.activo.is_(True))
            .all())


def test_new_active_price_replaces_previous(db, make_categoria, make_precio):
    """Vanilla MINORISTA: el precio nuevo desactiva al anterior y le pone fecha_fin."""
    vanilla = make_categoria("Vanilla")
    anterior = make_precio(vanilla, "10.00", TipoPrecio.MINORISTA)

    nuevo = PricingService(db).create_price({
        "categoria_id": vanilla.id,
        "tipo": TipoPrecio.MINORISTA,
        "valor": Decimal("12.00"),
        "activo": True,
    })

    activos = _activos(db, vanilla.id, TipoPrecio.MINORISTA)
    assert [p.id for p in activos] == [nuevo["id"]]

    db.refresh(anterior)
    assert anterior.activo is False
    assert anterior.fecha_fin is not None

    vigente = PricingService(db).resolve_active_price(vanilla.id, TipoPrecio.MINORISTA)
    assert vigente.valor == Decimal("12.00")


def test_swap_does_not_touch_other_tiers(db, make_categoria, make_precio):
    vanilla = make_categoria("Vanilla")
    mayorista = make_precio(vanilla, "8.00", TipoPrecio.MAYORISTA)
    make_precio(vanilla, "10.00", TipoPrecio.MINORISTA)

    PricingService(db).create_price({"categoria_id": vanilla.id, "tipo": TipoPrecio.MINORISTA, "valor": Decimal("11")})

    db.refresh(mayorista)
    assert mayorista.activo is True
    assert len(_activos(db, vanilla.id, TipoPrecio.MINORISTA)) == 1


def test_inactive_price_keeps_current_one(db, make_categoria, make_precio):
    vanilla = make_categoria("Vanilla")
    actual = make_precio(vanilla, "10.00")

    PricingService(db).create_price({
        "categoria_id": vanilla.id, "tipo": TipoPrecio.MINORISTA, "valor": Decimal("15"), "activo": False,
    })

    assert [p.id for p in _activos(db, vanilla.id, TipoPrecio.MINORISTA)] == [actual.id]


def test_create_price_unknown_category(db):
    with pytest.raises(DataValidationError) as exc:
        PricingService(db).create_price({"categoria_id": 999, "tipo": TipoPrecio.FABRICA, "valor": Decimal("5")})
    assert exc.value.details[0]["campo"] == "categoria_id"


def test_reactivating_price_deactivates_competitor(db, make_categoria, make_precio):
    vanilla = make_categoria("Vanilla")
    viejo = make_precio(vanilla, "9.00", activo=False)
    actual = make_precio(vanilla, "10.00")

    PricingService(db).update_price(viejo.id, {
        "categoria_id": vanilla.id, "tipo": TipoPrecio.MINORISTA, "valor": Decimal("9.50"), "activo": True,
    })

    db.refresh(actual)
    assert actual.activo is False
    assert [p.id for p in _activos(db, vanilla.id, TipoPrecio.MINORISTA)] == [viejo.id]


def test_changing_tier_of_active_price_swaps_in_new_tier(db, make_categoria, make_precio):
    vanilla = make_categoria("Vanilla")
    minorista = make_precio(vanilla, "10.00", TipoPrecio.MINORISTA)
    fabrica = make_precio(vanilla, "6.00", TipoPrecio.FABRICA)

    PricingService(db).update_price(minorista.id, {
        "categoria_id": vanilla.id, "tipo": TipoPrecio.FABRICA, "valor": Decimal("5.50"), "activo": True,
    })

    db.refresh(fabrica)
    assert fabrica.activo is False
    assert [p.id for p in _activos(db, vanilla.id, TipoPrecio.FABRICA)] == [minorista.id]


def test_resolve_without_active_price(db, make_categoria, make_precio):
    vanilla = make_categoria("Vanilla")
    make_precio(vanilla, "10.00", activo=False)

    with pytest.raises(NotFoundError):
        PricingService(db).resolve_active_price(vanilla.id, TipoPrecio.MINORISTA)


def test_update_missing_price(db, make_categoria):
    vanilla = make_categoria("Vanilla")
    with pytest.raises(NotFoundError):
        PricingService(db).update_price(42, {"categoria_id": vanilla.id, "tipo": TipoPrecio.FABRICA, "valor": 1})


def test_delete_price_in_use_is_rejected(db, make_categoria, make_producto, make_precio, make_cliente):
    vanilla = make_categoria("Vanilla")
    producto = make_producto(vanilla)
    precio = make_precio(vanilla, "10.00")
    cliente = make_cliente()

    pedido = Pedido(cliente_id=cliente.id, total=Decimal("20.00"))
    db.add(pedido)
    db.flush()
    db.add(PedidoItem(pedido_id=pedido.id, producto_id=producto.id, precio_id=precio.id,
                      cantidad=2, precio=Decimal("10.00"), subtotal=Decimal("20.00")))
    db.commit()

    with pytest.raises(StateError):
        PricingService(db).delete_price(precio.id)


def test_delete_unused_price(db, make_categoria, make_precio):
    vanilla = make_categoria("Vanilla")
    precio = make_precio(vanilla, "10.00")

    assert PricingService(db).delete_price(precio.id) == {"message": "Precio eliminado correctamente"}
    assert db.get(Precio, precio.id) is None


def test_list_prices_filters(db, make_categoria, make_precio):
    vanilla = make_categoria("Vanilla")
    chocolate = make_categoria("Chocolate")
    make_precio(vanilla, "10.00", activo=False)
    make_precio(vanilla, "11.00")
    make_precio(chocolate, "12.00")

    servicio = PricingService(db)
    assert len(servicio.list_prices()) == 3
    assert len(servicio.list_prices(categoria_id=vanilla.id)) == 2
    activos = servicio.list_prices(categoria_id=vanilla.id, solo_activos=True)
    assert [p["valor"] for p in activos] == [11.0]
    assert activos[0]["categoria"]["nombre"] == "Vanilla"
