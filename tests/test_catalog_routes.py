# tests/test_catalog_routes.py
from datetime import date, timedelta

from app.models import Rol, TipoPrecio


# ==========================================
# CLIENTES
# ==========================================

def test_client_crud_normalizes_zone(client, admin_headers):
    res = client.post("/api/clientes", headers=admin_headers, json={
        "nombre": "Acme", "direccion": "Calle 1", "telefono": "3001112233",
        "zona": "  zona  Norte ", "tipo_precio": "MAYORISTA",
    })
    assert res.status_code == 201
    cliente = res.json()
    assert cliente["zona"] == "ZONA NORTE"
    assert cliente["tipo_precio"] == "MAYORISTA"

    res = client.put(f"/api/clientes/{cliente['id']}", headers=admin_headers, json={
        "nombre": "Acme SA", "direccion": "Calle 2", "telefono": "3001112233", "zona": "Sur",
    })
    assert res.status_code == 200
    assert res.json()["zona"] == "SUR"
    assert res.json()["tipo_precio"] == "MINORISTA"

    assert [c["nombre"] for c in client.get("/api/clientes?zona=sur", headers=admin_headers).json()] == ["Acme SA"]
    assert client.delete(f"/api/clientes/{cliente['id']}", headers=admin_headers).json() == {
        "message": "Cliente eliminado correctamente"
    }
    assert client.get(f"/api/clientes/{cliente['id']}", headers=admin_headers).status_code == 404


def test_client_validation_errors_are_400(client, admin_headers):
    res = client.post("/api/clientes", headers=admin_headers, json={"nombre": "Sin datos"})
    assert res.status_code == 400
    campos = {d["campo"] for d in res.json()["details"]}
    assert {"direccion", "telefono", "zona"} <= campos


def test_client_with_orders_cannot_be_deleted(client, admin_headers, make_cliente, make_categoria,
                                              make_producto, make_precio):
    vanilla = make_categoria("Vanilla")
    producto = make_producto(vanilla)
    make_precio(vanilla, "10.00")
    acme = make_cliente()
    client.post("/api/pedidos", headers=admin_headers, json={
        "cliente_id": acme.id, "items": [{"producto_id": producto.id, "cantidad": 1}],
    })

    res = client.delete(f"/api/clientes/{acme.id}", headers=admin_headers)
    assert res.status_code == 400
    assert res.json()["error"] == "No se puede eliminar un cliente con pedidos asociados"


# ==========================================
# CATEGORÍAS Y PRODUCTOS
# ==========================================

def test_category_list_includes_active_prices(client, admin_headers, make_categoria, make_precio):
    vanilla = make_categoria("Vanilla")
    make_precio(vanilla, "9.00", activo=False)
    make_precio(vanilla, "10.00")

    categorias = client.get("/api/categorias", headers=admin_headers).json()
    assert [p["valor"] for p in categorias[0]["precios"]] == [10.0]


def test_duplicate_category_name(client, admin_headers, make_categoria):
    make_categoria("Vanilla")
    res = client.post("/api/categorias", headers=admin_headers, json={"nombre": "vanilla"})
    assert res.status_code == 400
    assert res.json()["error"] == "Ya existe una categoría con este nombre"

    otra = client.post("/api/categorias", headers=admin_headers, json={"nombre": "Chocolate"}).json()
    res = client.put(f"/api/categorias/{otra['id']}", headers=admin_headers, json={"nombre": "Vanilla"})
    assert res.status_code == 400


def test_category_with_products_cannot_be_deleted(client, admin_headers, make_categoria, make_producto):
    vanilla = make_categoria("Vanilla")
    make_producto(vanilla)

    res = client.delete(f"/api/categorias/{vanilla.id}", headers=admin_headers)
    assert res.status_code == 400
    detalle = client.get(f"/api/categorias/{vanilla.id}", headers=admin_headers).json()
    assert len(detalle["productos"]) == 1


def test_product_requires_existing_category(client, admin_headers):
    res = client.post("/api/productos", headers=admin_headers, json={"nombre": "Huérfano", "categoria_id": 999})
    assert res.status_code == 400
    assert res.json()["details"] == [{"campo": "categoria_id", "mensaje": "La categoría seleccionada no existe"}]


def test_product_crud(client, admin_headers, make_categoria):
    vanilla = make_categoria("Vanilla")
    res = client.post("/api/productos", headers=admin_headers, json={
        "nombre": "Helado 1kg", "categoria_id": vanilla.id, "imagen": "https://img.lancuapp.com/1.png",
    })
    assert res.status_code == 201
    producto = res.json()
    assert producto["categoria"]["nombre"] == "Vanilla"

    res = client.put(f"/api/productos/{producto['id']}", headers=admin_headers, json={
        "nombre": "Helado 2kg", "categoria_id": vanilla.id, "activo": False,
    })
    assert res.json()["activo"] is False
    assert client.get("/api/productos?solo_activos=true", headers=admin_headers).json() == []
    assert client.delete(f"/api/productos/{producto['id']}", headers=admin_headers).status_code == 200


def test_product_in_orders_cannot_be_deleted(client, admin_headers, make_cliente, make_categoria,
                                             make_producto, make_precio):
    vanilla = make_categoria("Vanilla")
    producto = make_producto(vanilla)
    make_precio(vanilla, "10.00")
    client.post("/api/pedidos", headers=admin_headers, json={
        "cliente_id": make_cliente().id, "items": [{"producto_id": producto.id, "cantidad": 1}],
    })

    assert client.delete(f"/api/productos/{producto.id}", headers=admin_headers).status_code == 400


# ==========================================
# PRECIOS
# ==========================================

def test_price_routes_and_active_lookup(client, admin_headers, make_categoria):
    vanilla = make_categoria("Vanilla")
    primero = client.post("/api/precios", headers=admin_headers, json={
        "categoria_id": vanilla.id, "tipo": "MINORISTA", "valor": "10.00",
    })
    assert primero.status_code == 201
    segundo = client.post("/api/precios", headers=admin_headers, json={
        "categoria_id": vanilla.id, "tipo": "MINORISTA", "valor": "12.50",
    }).json()

    activo = client.get(f"/api/precios/activo?categoria_id={vanilla.id}&tipo=MINORISTA", headers=admin_headers)
    assert activo.json()["id"] == segundo["id"]
    assert activo.json()["valor"] == 12.5

    anterior = client.get(f"/api/precios/{primero.json()['id']}", headers=admin_headers).json()
    assert anterior["activo"] is False
    assert anterior["fecha_fin"] is not None

    sin_precio = client.get(f"/api/precios/activo?categoria_id={vanilla.id}&tipo=FABRICA", headers=admin_headers)
    assert sin_precio.status_code == 404


def test_price_must_be_positive(client, admin_headers, make_categoria):
    vanilla = make_categoria("Vanilla")
    res = client.post("/api/precios", headers=admin_headers, json={
        "categoria_id": vanilla.id, "tipo": "MINORISTA", "valor": "0",
    })
    assert res.status_code == 400
    assert res.json()["details"][0]["campo"] == "valor"


def test_price_dates_with_mixed_timezones(client, admin_headers, make_categoria):
    vanilla = make_categoria("Vanilla")
    base = {"categoria_id": vanilla.id, "tipo": "MINORISTA", "valor": "10.00"}

    en_orden = client.post("/api/precios", headers=admin_headers, json={
        **base, "fecha_inicio": "2026-01-01T00:00:00Z", "fecha_fin": "2026-02-01T00:00:00",
    })
    assert en_orden.status_code == 201

    invertidas = client.post("/api/precios", headers=admin_headers, json={
        **base, "fecha_inicio": "2026-02-01T00:00:00Z", "fecha_fin": "2026-01-01T00:00:00",
    })
    assert invertidas.status_code == 400
    assert invertidas.json()["error"] == "Datos inválidos"


# ==========================================
# REPARTOS Y PEDIDOS
# ==========================================

def test_round_creation_assigns_pending_orders(client, admin_headers, make_cliente, make_categoria,
                                               make_producto, make_precio):
    vanilla = make_categoria("Vanilla")
    producto = make_producto(vanilla)
    make_precio(vanilla, "10.00")
    acme = make_cliente("Acme", zona="NORTE")

    pedido = client.post("/api/pedidos", headers=admin_headers, json={
        "cliente_id": acme.id, "items": [{"producto_id": producto.id, "cantidad": 3}],
    }).json()
    assert pedido["reparto_id"] is None
    assert pedido["total"] == 30.0

    manana = (date.today() + timedelta(days=1)).isoformat()
    reparto = client.post("/api/repartos", headers=admin_headers, json={"zona": "norte", "fecha": manana})
    assert reparto.status_code == 201
    assert [p["id"] for p in reparto.json()["pedidos"]] == [pedido["id"]]

    duplicado = client.post("/api/repartos", headers=admin_headers, json={"zona": "NORTE", "fecha": manana})
    assert duplicado.status_code == 400
    assert duplicado.json()["error"] == "Ya existe un reparto para esta zona y fecha"

    detalle = client.get(f"/api/pedidos/{pedido['id']}", headers=admin_headers).json()
    assert detalle["reparto"]["id"] == reparto.json()["id"]


def test_order_lifecycle_over_http(client, admin_headers, make_cliente, make_categoria,
                                   make_producto, make_precio):
    vanilla = make_categoria("Vanilla")
    producto = make_producto(vanilla)
    make_precio(vanilla, "10.00")
    pedido = client.post("/api/pedidos", headers=admin_headers, json={
        "cliente_id": make_cliente().id, "items": [{"producto_id": producto.id, "cantidad": 1}],
    }).json()

    assert client.post(f"/api/pedidos/{pedido['id']}/cobro", headers=admin_headers).json()["cobrado"] is True
    assert client.post(f"/api/pedidos/{pedido['id']}/entregar", headers=admin_headers).json()["estado"] == "ENTREGADO"

    cancelado = client.delete(f"/api/pedidos/{pedido['id']}", headers=admin_headers)
    assert cancelado.status_code == 400
    assert cancelado.json() == {"error": "No se puede cancelar un pedido ya entregado"}


def test_order_requires_items(client, admin_headers, make_cliente):
    res = client.post("/api/pedidos", headers=admin_headers, json={"cliente_id": make_cliente().id, "items": []})
    assert res.status_code == 400
    assert res.json()["details"][0]["campo"] == "items"


def test_order_item_quantity_must_be_positive(client, admin_headers, make_cliente):
    res = client.post("/api/pedidos", headers=admin_headers, json={
        "cliente_id": make_cliente().id, "items": [{"producto_id": 1, "cantidad": 0}],
    })
    assert res.status_code == 400
    assert res.json()["details"][0]["campo"] == "items.0.cantidad"


def test_order_item_quantity_has_upper_bound(client, admin_headers, make_cliente):
    res = client.post("/api/pedidos", headers=admin_headers, json={
        "cliente_id": make_cliente().id, "items": [{"producto_id": 1, "cantidad": 10 ** 9}],
    })
    assert res.status_code == 400
    assert res.json()["details"][0]["campo"] == "items.0.cantidad"


def test_order_round_update_must_match_client_zone(client, admin_headers, make_cliente, make_categoria,
                                                   make_producto, make_precio, make_reparto):
    vanilla = make_categoria("Vanilla")
    producto = make_producto(vanilla)
    make_precio(vanilla, "10.00")
    sur = make_reparto("SUR")
    pedido = client.post("/api/pedidos", headers=admin_headers, json={
        "cliente_id": make_cliente(zona="NORTE").id, "items": [{"producto_id": producto.id, "cantidad": 1}],
    }).json()

    res = client.put(f"/api/pedidos/{pedido['id']}", headers=admin_headers, json={"reparto_id": sur.id})

    assert res.status_code == 400
    assert res.json()["details"][0]["campo"] == "reparto_id"
    detalle = client.get(f"/api/pedidos/{pedido['id']}", headers=admin_headers).json()
    assert detalle["reparto_id"] is None


# ==========================================
# USUARIOS
# ==========================================

def test_user_crud_hides_password_hash(client, admin_headers, make_cliente):
    acme = make_cliente()
    res = client.post("/api/usuarios", headers=admin_headers, json={
        "nombre": "Compras", "email": "Compras@Acme.com", "password": "secreto123", "cliente_id": acme.id,
    })
    assert res.status_code == 201
    usuario = res.json()
    assert usuario["email"] == "compras@acme.com"
    assert usuario["rol"] == Rol.USUARIO.value
    assert usuario["cliente"]["nombre"] == acme.nombre
    assert "password_hash" not in usuario

    duplicado = client.post("/api/usuarios", headers=admin_headers, json={
        "nombre": "Otro", "email": "compras@acme.com", "password": "secreto123",
    })
    assert duplicado.status_code == 400
    assert duplicado.json()["error"] == "El email ya está en uso"

    editado = client.put(f"/api/usuarios/{usuario['id']}", headers=admin_headers, json={
        "nombre": "Compras Acme", "email": "compras@acme.com", "rol": "ADMIN",
    })
    assert editado.json()["rol"] == "ADMIN"

    # La contraseña anterior sigue valiendo
    login = client.post("/api/auth/login", json={"email": "compras@acme.com", "password": "secreto123"})
    assert login.status_code == 200

    assert client.delete(f"/api/usuarios/{usuario['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/usuarios/{usuario['id']}", headers=admin_headers).status_code == 404


def test_user_short_password_and_unknown_client(client, admin_headers):
    corta = client.post("/api/usuarios", headers=admin_headers, json={
        "nombre": "X", "email": "x@lancuapp.com", "password": "123",
    })
    assert corta.status_code == 400

    sin_cliente = client.post("/api/usuarios", headers=admin_headers, json={
        "nombre": "X", "email": "x@lancuapp.com", "password": "secreto123", "cliente_id": 999,
    })
    assert sin_cliente.status_code == 400
    assert sin_cliente.json()["details"][0]["campo"] == "cliente_id"


def test_unexpected_errors_are_500_json(admin_headers, monkeypatch):
    from fastapi.testclient import TestClient
    from app.services.client_service import ClientService
    from main import app

    def boom(self, **kwargs):
        raise RuntimeError("fallo de base")

    monkeypatch.setattr(ClientService, "list_clients", boom)
    res = TestClient(app, raise_server_exceptions=False).get("/api/clientes", headers=admin_headers)
    assert res.status_code == 500
    assert res.json() == {"error": "Error interno del servidor"}


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"


def test_price_tier_enum_values_match_names():
    assert [t.value for t in TipoPrecio] == [t.name for t in TipoPrecio]
