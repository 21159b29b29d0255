# tests/conftest.py
import os

# Antes de importar la app: la configuración se lee al importar config.settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test_secret_key_123"
os.environ["DEBUG"] = "True"

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from app.models import Categoria, Cliente, Precio, Producto, Reparto, Rol, TipoPrecio, Usuario
from app.routers.auth import limiter
from app.services.access_control import SessionContext
from app.services.auth_service import create_session_token, hash_password
from app.utils.text_normalizer import normalize_zone
from database.connection import Base, SessionLocal, engine
from main import app as fastapi_app


@pytest.fixture(autouse=True)
def schema():
    """Esquema limpio para cada test (SQLite en memoria, conexión compartida)."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    """Cliente de test para la aplicación."""
    limiter.reset()
    return TestClient(fastapi_app)


@pytest.fixture
def make_cliente(db):
    def _make(nombre="Acme", zona="NORTE", tipo_precio=TipoPrecio.MINORISTA, **kwargs):
        cliente = Cliente(
            nombre=nombre,
            direccion=kwargs.pop("direccion", "Calle 123"),
            telefono=kwargs.pop("telefono", "3001234567"),
            zona=normalize_zone(zona),
            tipo_precio=tipo_precio,
            **kwargs,
        )
        db.add(cliente)
        db.commit()
        return cliente
    return _make


@pytest.fixture
def make_categoria(db):
    def _make(nombre="Vanilla", descripcion=None):
        categoria = Categoria(nombre=nombre, descripcion=descripcion)
        db.add(categoria)
        db.commit()
        return categoria
    return _make


@pytest.fixture
def make_producto(db):
    def _make(categoria, nombre="Helado vainilla 1kg", activo=True):
        producto = Producto(nombre=nombre, categoria_id=categoria.id, activo=activo)
        db.add(producto)
        db.commit()
        return producto
    return _make


@pytest.fixture
def make_precio(db):
    def _make(categoria, valor="10.00", tipo=TipoPrecio.MINORISTA, activo=True):
        precio = Precio(
            categoria_id=categoria.id,
            tipo=tipo,
            valor=Decimal(valor),
            fecha_inicio=datetime.now(timezone.utc),
            activo=activo,
        )
        db.add(precio)
        db.commit()
        return precio
    return _make


@pytest.fixture
def make_reparto(db):
    def _make(zona="NORTE", dias=1, activo=True):
        reparto = Reparto(zona=normalize_zone(zona), fecha=date.today() + timedelta(days=dias), activo=activo)
        db.add(reparto)
        db.commit()
        return reparto
    return _make


@pytest.fixture
def make_usuario(db):
    def _make(email, rol=Rol.USUARIO, cliente=None, password="secreto123", nombre="Usuario"):
        usuario = Usuario(
            nombre=nombre,
            email=email,
            password_hash=hash_password(password),
            rol=rol,
            cliente_id=cliente.id if cliente else None,
        )
        db.add(usuario)
        db.commit()
        return usuario
    return _make


@pytest.fixture
def admin(make_usuario):
    return make_usuario("admin@lancuapp.com", rol=Rol.ADMIN, nombre="Admin")


@pytest.fixture
def admin_ctx(admin):
    return SessionContext(usuario_id=admin.id, rol=Rol.ADMIN)


@pytest.fixture
def admin_headers(admin):
    return {"Authorization": f"Bearer {create_session_token(admin)}"}


@pytest.fixture
def auth_headers():
    def _headers(usuario):
        return {"Authorization": f"Bearer {create_session_token(usuario)}"}
    return _headers
