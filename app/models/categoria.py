from sqlalchemy import Column, Integer, String, Text, Boolean, ForeignKey
from database.connection import Base


class Categoria(Base):
    __tablename__ = "categorias"

    id = Column(Integer, primary_key=True, index=True)
    nombre = Column(String(100), unique=True, nullable=False)
    descripcion = Column(Text, nullable=True)

    def __repr__(self):
        return f"<Categoria(nombre='{self.nombre}')>"


class Producto(Base):
    __tablename__ = "productos"

    id = Column(Integer, primary_key=True, index=True)
    nombre = Column(String(100), nullable=False)
    descripcion = Column(Text, nullable=True)
    imagen = Column(String(500), nullable=True)
    activo = Column(Boolean, nullable=False, default=True)
    categoria_id = Column(Integer, ForeignKey("categorias.id", ondelete="RESTRICT"), nullable=False, index=True)

    def __repr__(self):
        return f"<Producto(nombre='{self.nombre}', categoria_id={self.categoria_id})>"
