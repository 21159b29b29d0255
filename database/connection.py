"""
🗄️ CONEXIÓN A BASE DE DATOS - CONFIGURACIÓN SQLALCHEMY
======================================================

Este módulo configura la conexión a la base de datos, la gestión de sesiones
y la base declarativa para los modelos ORM.

🏗️ CONFIGURACIÓN DEL POOL:
- PostgreSQL: QueuePool con 10 conexiones permanentes + 20 de overflow,
  pre-ping y reciclado cada hora
- SQLite (desarrollo/tests): StaticPool, una sola conexión compartida
  para que las bases en memoria sobrevivan entre sesiones

📊 GESTIÓN DE SESIONES:
- SessionLocal: Factory de sesiones por request
- autocommit=False: Control manual de transacciones (ver app.utils.decorators)
- autoflush=False: Los servicios hacen flush explícito cuando lo necesitan
- Cierre automático en dependency

📝 USO CON FASTAPI:
    from database.connection import get_db

    @router.post("/endpoint")
    def endpoint(db: Session = Depends(get_db)):
        # usar sesión db aquí
        pass
"""

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import QueuePool, StaticPool
from config.settings import settings
import logging

logger = logging.getLogger(__name__)


def _build_engine(url: str):
    if url.startswith("sqlite"):
        sqlite_engine = create_engine(
            url,
            poolclass=StaticPool,
            echo=False,
            connect_args={
                "check_same_thread": False,  # TestClient atiende en otro hilo
                "timeout": 30,
            },
        )

        # SQLite no aplica claves foráneas si no se pide por conexión
        @event.listens_for(sqlite_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return sqlite_engine

    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=10,                    # Número de conexiones permanentes en el pool
        max_overflow=20,                 # Conexiones adicionales cuando el pool está lleno
        pool_pre_ping=True,             # Verificar conexiones antes de usar
        pool_recycle=3600,              # Reciclar conexiones cada hora
        echo=False,                     # No mostrar SQL queries (cambiar a True para debug)
        connect_args={
            "connect_timeout": 10,       # Timeout de conexión en segundos
        } if "postgresql" in url else {},
    )


# Crear motor de base de datos
engine = _build_engine(settings.DATABASE_URL)
logger.debug("🗄️ Motor de base de datos creado (%s)", engine.dialect.name)

# Crear sesión local
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base para modelos
Base = declarative_base()

# Dependencia para obtener sesión de BD
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
