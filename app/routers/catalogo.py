from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.orm import Session
from typing import Optional

from app.routers.deps import require_admin_session
from app.services.catalog_service import CategoryService, ProductService
from database.connection import get_db


# Categorías y productos se montan con prefijos distintos en main.py
categorias_router = APIRouter(dependencies=[Depends(require_admin_session)])
productos_router = APIRouter(dependencies=[Depends(require_admin_session)])


class CategoriaIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    nombre: str = Field(..., min_length=1, max_length=100)
    descripcion: Optional[str] = None

    @field_validator("nombre")
    @classmethod
    def nombre_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("El nombre es requerido")
        return v.strip()


class ProductoIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    nombre: str = Field(..., min_length=1, max_length=100)
    descripcion: Optional[str] = None
    imagen: Optional[str] = Field(None, max_length=500)
    activo: bool = True
    categoria_id: int

    @field_validator("imagen")
    @classmethod
    def imagen_is_url(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        v = v.strip()
        if not (v.startswith("http://") or v.startswith("https://")):
            raise ValueError("La imagen debe ser una URL http(s)")
        return v


# ==========================================
# CATEGORÍAS
# ==========================================

@categorias_router.get("")
def list_categorias(db: Session = Depends(get_db)):
    return CategoryService(db).list_categories()


@categorias_router.post("", status_code=201)
def create_categoria(body: CategoriaIn, db: Session = Depends(get_db)):
    return CategoryService(db).create_category(body.model_dump())


@categorias_router.get("/{categoria_id}")
def get_categoria(categoria_id: int, db: Session = Depends(get_db)):
    return CategoryService(db).get_category(categoria_id)


@categorias_router.put("/{categoria_id}")
def update_categoria(categoria_id: int, body: CategoriaIn, db: Session = Depends(get_db)):
    return CategoryService(db).update_category(categoria_id, body.model_dump())


@categorias_router.delete("/{categoria_id}")
def delete_categoria(categoria_id: int, db: Session = Depends(get_db)):
    return CategoryService(db).delete_category(categoria_id)


# ==========================================
# PRODUCTOS
# ==========================================

@productos_router.get("")
def list_productos(categoria_id: Optional[int] = None, solo_activos: bool = False, db: Session = Depends(get_db)):
    return ProductService(db).list_products(categoria_id=categoria_id, solo_activos=solo_activos)


@productos_router.post("", status_code=201)
def create_producto(body: ProductoIn, db: Session = Depends(get_db)):
    return ProductService(db).create_product(body.model_dump())


@productos_router.get("/{producto_id}")
def get_producto(producto_id: int, db: Session = Depends(get_db)):
    return ProductService(db).get_product(producto_id)


@productos_router.put("/{producto_id}")
def update_producto(producto_id: int, body: ProductoIn, db: Session = Depends(get_db)):
    return ProductService(db).update_product(producto_id, body.model_dump())


@productos_router.delete("/{producto_id}")
def delete_producto(producto_id: int, db: Session = Depends(get_db)):
    return ProductService(db).delete_product(producto_id)
