"""
💲 MODELO DE PRECIOS
====================

Un precio pertenece a una categoría y a un tipo de cliente (fábrica,
mayorista o minorista). Para cada par (categoría, tipo) existe como máximo
un precio activo: al activar uno nuevo, el anterior se desactiva y recibe
fecha_fin.

🛡️ RESTRICCIONES:
- valor > 0
- Índice único parcial (categoria_id, tipo) WHERE activo
"""

from enum import Enum
from sqlalchemy import Column, Integer, DateTime, Boolean, ForeignKey, Numeric, CheckConstraint, Index, text
from sqlalchemy import Enum as SQLEnum
from database.connection import Base


class TipoPrecio(Enum):
    FABRICA = "FABRICA"
    MAYORISTA = "MAYORISTA"
    MINORISTA = "MINORISTA"


class Precio(Base):
    __tablename__ = "precios"

    id = Column(Integer, primary_key=True, index=True)
    categoria_id = Column(Integer, ForeignKey("categorias.id", ondelete="RESTRICT"), nullable=False)
    tipo = Column(SQLEnum(TipoPrecio), nullable=False)
    valor = Column(Numeric(10, 2), nullable=False)
    fecha_inicio = Column(DateTime(timezone=True), nullable=False)
    fecha_fin = Column(DateTime(timezone=True), nullable=True)
    activo = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("valor > 0", name="ck_precio_valor_positive"),
        Index("ix_precios_categoria_tipo", "categoria_id", "tipo"),
        Index(
            "uq_precios_activo_categoria_tipo",
            "categoria_id",
            "tipo",
            unique=True,
            postgresql_where=text("activo"),
            sqlite_where=text("activo = 1"),
        ),
    )

    def __repr__(self):
        return f"<Precio(categoria_id={self.categoria_id}, tipo={self.tipo}, valor={self.valor}, activo={self.activo})>"
