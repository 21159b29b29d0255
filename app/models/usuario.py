from enum import Enum
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.sql import func
from database.connection import Base


class Rol(Enum):
    ADMIN = "ADMIN"
    USUARIO = "USUARIO"


class Usuario(Base):
    __tablename__ = "usuarios"

    id = Column(Integer, primary_key=True, index=True)
    nombre = Column(String(100), nullable=False)
    email = Column(String(120), unique=True, nullable=False, index=True)  # siempre en minúsculas
    password_hash = Column(String(128), nullable=False)
    rol = Column(SQLEnum(Rol), nullable=False, default=Rol.USUARIO)
    # Solo tiene sentido para rol USUARIO: limita sus pedidos a este cliente
    cliente_id = Column(Integer, ForeignKey("clientes.id", ondelete="SET NULL"), nullable=True)
    creado_en = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Usuario(email='{self.email}', rol={self.rol})>"
