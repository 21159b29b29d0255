"""
🗂️ CATALOG SERVICE - CATEGORÍAS Y PRODUCTOS
===========================================

ABM del catálogo. Los productos pertenecen a exactamente una categoría y
toman su precio de los precios activos de esa categoría (ver pricing_service).

🛡️ REGLAS DE BORRADO:
- Categoría: no se elimina si tiene productos o precios
- Producto: no se elimina si figura en algún ítem de pedido
"""
import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.categoria import Categoria, Producto
from app.models.pedido import PedidoItem
from app.models.precio import Precio
from app.services.serializers import categoria_to_dict, producto_to_dict
from app.utils.decorators import db_transaction, read_only
from app.utils.exceptions import ConflictError, DataValidationError, NotFoundError, StateError

logger = logging.getLogger(__name__)


class CategoryService:
    def __init__(self, db: Session):
        self.db = db

    def _get_or_404(self, categoria_id: int) -> Categoria:
        categoria = self.db.get(Categoria, categoria_id)
        if not categoria:
            raise NotFoundError("Categoría no encontrada")
        return categoria

    def _name_taken(self, nombre: str, excluir_id: Optional[int] = None) -> bool:
        query = self.db.query(Categoria.id).filter(func.lower(Categoria.nombre) == nombre.lower())
        if excluir_id is not None:
            query = query.filter(Categoria.id != excluir_id)
        return query.first() is not None

    @read_only
    def list_categories(self) -> List[Dict[str, Any]]:
        """Categorías con sus precios activos (dos queries)"""
        categorias = self.db.query(Categoria).order_by(Categoria.nombre.asc()).all()
        activos = defaultdict(list)
        for precio in (self.db.query(Precio)
                       .filter(Precio.activo.is_(True))
                       .order_by(Precio.tipo.asc())
                       .all()):
            activos[precio.categoria_id].append(precio)
        return [categoria_to_dict(c, precios=activos[c.id]) for c in categorias]

    @read_only
    def get_category(self, categoria_id: int) -> Dict[str, Any]:
        categoria = self._get_or_404(categoria_id)
        precios = (self.db.query(Precio)
                   .filter(Precio.categoria_id == categoria.id)
                   .order_by(Precio.tipo.asc(), Precio.fecha_inicio.desc())
                   .all())
        productos = (self.db.query(Producto)
                     .filter(Producto.categoria_id == categoria.id)
                     .order_by(Producto.nombre.asc())
                     .all())
        return categoria_to_dict(categoria, precios=precios, productos=productos)

    @db_transaction
    def create_category(self, datos: Dict[str, Any]) -> Dict[str, Any]:
        nombre = datos["nombre"].strip()
        if self._name_taken(nombre):
            raise ConflictError("Ya existe una categoría con este nombre")

        categoria = Categoria(nombre=nombre, descripcion=datos.get("descripcion"))
        self.db.add(categoria)
        self.db.flush()
        logger.info("🗂️ Categoría %s creada: %s", categoria.id, nombre)
        return categoria_to_dict(categoria, precios=[])

    @db_transaction
    def update_category(self, categoria_id: int, datos: Dict[str, Any]) -> Dict[str, Any]:
        categoria = self._get_or_404(categoria_id)
        nombre = datos["nombre"].strip()
        if self._name_taken(nombre, excluir_id=categoria.id):
            raise ConflictError("El nombre ya está en uso por otra categoría")

        categoria.nombre = nombre
        categoria.descripcion = datos.get("descripcion")
        self.db.flush()
        return categoria_to_dict(categoria)

    @db_transaction
    def delete_category(self, categoria_id: int) -> Dict[str, Any]:
        categoria = self._get_or_404(categoria_id)

        if self.db.query(Producto.id).filter(Producto.categoria_id == categoria.id).first():
            raise StateError("No se puede eliminar la categoría porque tiene productos asociados")
        if self.db.query(Precio.id).filter(Precio.categoria_id == categoria.id).first():
            raise StateError("No se puede eliminar la categoría porque tiene precios asociados")

        self.db.delete(categoria)
        logger.info("🗑️ Categoría %s eliminada", categoria_id)
        return {"message": "Categoría eliminada correctamente"}


class ProductService:
    def __init__(self, db: Session):
        self.db = db

    def _get_or_404(self, producto_id: int) -> Producto:
        producto = self.db.get(Producto, producto_id)
        if not producto:
            raise NotFoundError("Producto no encontrado")
        return producto

    def _get_categoria(self, categoria_id: int) -> Categoria:
        categoria = self.db.get(Categoria, categoria_id)
        if not categoria:
            raise DataValidationError.for_field("categoria_id", "La categoría seleccionada no existe")
        return categoria

    @read_only
    def list_products(self, categoria_id: Optional[int] = None, solo_activos: bool = False) -> List[Dict[str, Any]]:
        query = (self.db.query(Producto, Categoria)
                 .join(Categoria, Categoria.id == Producto.categoria_id))
        if categoria_id is not None:
            query = query.filter(Producto.categoria_id == categoria_id)
        if solo_activos:
            query = query.filter(Producto.activo.is_(True))
        filas = query.order_by(Producto.nombre.asc()).all()
        return [producto_to_dict(p, c) for p, c in filas]

    @read_only
    def get_product(self, producto_id: int) -> Dict[str, Any]:
        producto = self._get_or_404(producto_id)
        return producto_to_dict(producto, self.db.get(Categoria, producto.categoria_id))

    @db_transaction
    def create_product(self, datos: Dict[str, Any]) -> Dict[str, Any]:
        categoria = self._get_categoria(datos["categoria_id"])
        producto = Producto(
            nombre=datos["nombre"].strip(),
            descripcion=datos.get("descripcion"),
            imagen=datos.get("imagen"),
            activo=datos.get("activo", True),
            categoria_id=categoria.id,
        )
        self.db.add(producto)
        self.db.flush()
        logger.info("📦 Producto %s creado en categoría %s", producto.id, categoria.id)
        return producto_to_dict(producto, categoria)

    @db_transaction
    def update_product(self, producto_id: int, datos: Dict[str, Any]) -> Dict[str, Any]:
        producto = self._get_or_404(producto_id)
        categoria = self._get_categoria(datos["categoria_id"])

        producto.nombre = datos["nombre"].strip()
        producto.descripcion = datos.get("descripcion")
        producto.imagen = datos.get("imagen")
        producto.activo = datos.get("activo", True)
        producto.categoria_id = categoria.id
        self.db.flush()
        return producto_to_dict(producto, categoria)

    @db_transaction
    def delete_product(self, producto_id: int) -> Dict[str, Any]:
        producto = self._get_or_404(producto_id)

        if self.db.query(PedidoItem.id).filter(PedidoItem.producto_id == producto.id).first():
            raise StateError("No se puede eliminar el producto porque está siendo utilizado en pedidos")

        self.db.delete(producto)
        logger.info("🗑️ Producto %s eliminado", producto_id)
        return {"message": "Producto eliminado correctamente"}
