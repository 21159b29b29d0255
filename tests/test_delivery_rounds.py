# tests/test_delivery_rounds.py
from datetime import date, timedelta
from decimal import Decimal

import pytest

from app.models import EstadoPedido, Pedido, Reparto
from app.services.delivery_service import DeliveryService
from app.utils.exceptions import ConflictError, DataValidationError, NotFoundError, StateError


def _pedido(db, cliente, estado=EstadoPedido.PENDIENTE, reparto=None):
    pedido = Pedido(cliente_id=cliente.id, total=Decimal("10.00"), estado=estado,
                    reparto_id=reparto.id if reparto else None)
    db.add(pedido)
    db.commit()
    return pedido


def test_find_round_picks_earliest_upcoming(db, make_reparto):
    make_reparto("NORTE", dias=5)
    manana = make_reparto("NORTE", dias=1)
    make_reparto("NORTE", dias=-1)
    make_reparto("NORTE", dias=0, activo=False)

    encontrado = DeliveryService(db).find_round_for_zone("NORTE")
    assert encontrado.id == manana.id


def test_find_round_none_for_other_zone(db, make_reparto):
    make_reparto("SUR", dias=1)
    assert DeliveryService(db).find_round_for_zone("NORTE") is None


def test_create_round_absorbs_pending_orders_of_zone(db, make_cliente):
    norte = make_cliente("Acme", zona="norte")
    sur = make_cliente("Beta", zona="SUR")
    pendiente = _pedido(db, norte)
    entregado = _pedido(db, norte, estado=EstadoPedido.ENTREGADO)
    otro = _pedido(db, sur)

    creado = DeliveryService(db).create_round({"zona": " Norte ", "fecha": date.today() + timedelta(days=1)})

    assert creado["zona"] == "NORTE"
    assert [p["id"] for p in creado["pedidos"]] == [pendiente.id]
    db.expire_all()
    assert db.get(Pedido, pendiente.id).reparto_id == creado["id"]
    assert db.get(Pedido, entregado.id).reparto_id is None
    assert db.get(Pedido, otro.id).reparto_id is None


def test_inactive_round_does_not_absorb(db, make_cliente):
    pendiente = _pedido(db, make_cliente())

    DeliveryService(db).create_round({"zona": "NORTE", "fecha": date.today(), "activo": False})

    db.expire_all()
    assert db.get(Pedido, pendiente.id).reparto_id is None


def test_duplicate_round_is_rejected_before_scan(db, make_cliente, make_reparto):
    existente = make_reparto("NORTE", dias=2)
    pendiente = _pedido(db, make_cliente())

    with pytest.raises(ConflictError):
        DeliveryService(db).create_round({"zona": "norte", "fecha": existente.fecha})

    db.expire_all()
    assert db.get(Pedido, pendiente.id).reparto_id is None
    assert db.query(Reparto).count() == 1


def test_blank_zone_is_rejected(db):
    with pytest.raises(DataValidationError):
        DeliveryService(db).create_round({"zona": "   ", "fecha": date.today()})


def test_zone_change_releases_and_absorbs(db, make_cliente, make_reparto):
    norte = make_cliente("Acme", zona="NORTE")
    sur = make_cliente("Beta", zona="SUR")
    reparto = make_reparto("NORTE", dias=1)
    del_norte = _pedido(db, norte, reparto=reparto)
    del_sur = _pedido(db, sur)

    actualizado = DeliveryService(db).update_round(reparto.id, {"zona": "sur", "fecha": reparto.fecha})

    assert actualizado["zona"] == "SUR"
    db.expire_all()
    assert db.get(Pedido, del_norte.id).reparto_id is None
    assert db.get(Pedido, del_sur.id).reparto_id == reparto.id


def test_update_round_conflict_excludes_itself(db, make_reparto):
    reparto = make_reparto("NORTE", dias=1)
    otro = make_reparto("SUR", dias=1)
    servicio = DeliveryService(db)

    # Misma clave: no es conflicto consigo mismo
    servicio.update_round(reparto.id, {"zona": "NORTE", "fecha": reparto.fecha, "observacion": "Mañana"})

    with pytest.raises(ConflictError):
        servicio.update_round(reparto.id, {"zona": "SUR", "fecha": otro.fecha})


def test_update_missing_round(db):
    with pytest.raises(NotFoundError):
        DeliveryService(db).update_round(99, {"zona": "NORTE", "fecha": date.today()})


def test_delete_round_with_delivered_orders(db, make_cliente, make_reparto):
    reparto = make_reparto()
    _pedido(db, make_cliente(), estado=EstadoPedido.ENTREGADO, reparto=reparto)

    with pytest.raises(StateError):
        DeliveryService(db).delete_round(reparto.id)


def test_delete_round_unlinks_pending_orders(db, make_cliente, make_reparto):
    reparto = make_reparto()
    pedido = _pedido(db, make_cliente(), reparto=reparto)
    reparto_id = reparto.id

    DeliveryService(db).delete_round(reparto_id)

    db.expire_all()
    assert db.get(Reparto, reparto_id) is None
    assert db.get(Pedido, pedido.id).reparto_id is None


def test_validate_round_for_client_zone_mismatch(db, make_cliente, make_reparto):
    cliente = make_cliente(zona="NORTE")
    sur = make_reparto("SUR")
    servicio = DeliveryService(db)

    with pytest.raises(DataValidationError) as exc:
        servicio.validate_round_for_client(sur.id, cliente)
    assert exc.value.details[0]["campo"] == "reparto_id"

    with pytest.raises(DataValidationError):
        servicio.validate_round_for_client(12345, cliente)


def test_list_rounds_hides_past_unless_requested(db, make_reparto):
    make_reparto("NORTE", dias=-3)
    make_reparto("NORTE", dias=1)
    make_reparto("SUR", dias=2)
    servicio = DeliveryService(db)

    assert len(servicio.list_rounds()) == 2
    assert len(servicio.list_rounds(incluir_pasados=True)) == 3
    assert [r["zona"] for r in servicio.list_rounds(zona="sur")] == ["SUR"]
