from sqlalchemy import Column, Integer, String, DateTime, Boolean
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.sql import func
from database.connection import Base
from app.models.precio import TipoPrecio

# Modelo de cliente
class Cliente(Base):
    __tablename__ = "clientes"

    id = Column(Integer, primary_key=True, index=True)
    nombre = Column(String(100), nullable=False)
    direccion = Column(String(200), nullable=False)
    telefono = Column(String(30), nullable=False)
    email = Column(String(120), nullable=True)
    zona = Column(String(60), nullable=False, index=True)  # normalizada, ver text_normalizer
    tipo_precio = Column(SQLEnum(TipoPrecio), nullable=False, default=TipoPrecio.MINORISTA)
    activo = Column(Boolean, nullable=False, default=True)
    creado_en = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Cliente(nombre='{self.nombre}', zona='{self.zona}')>"
