from sqlalchemy import Column, Integer, String, Date, Boolean, Text, UniqueConstraint
from database.connection import Base


# Un reparto es la salida de entrega de una zona en una fecha
class Reparto(Base):
    __tablename__ = "repartos"

    id = Column(Integer, primary_key=True, index=True)
    fecha = Column(Date, nullable=False, index=True)
    zona = Column(String(60), nullable=False)
    activo = Column(Boolean, nullable=False, default=True)
    observacion = Column(Text, nullable=True)

    __table_args__ = (UniqueConstraint("zona", "fecha", name="uq_repartos_zona_fecha"),)

    def __repr__(self):
        return f"<Reparto(zona='{self.zona}', fecha={self.fecha}, activo={self.activo})>"
