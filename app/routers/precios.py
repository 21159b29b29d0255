from datetime import datetime, timezone
from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field, model_validator
from sqlalchemy.orm import Session
from typing import Optional

from app.models.precio import TipoPrecio
from app.routers.deps import require_admin_session
from app.services.pricing_service import PricingService
from app.services.serializers import precio_to_dict
from database.connection import get_db


router = APIRouter(dependencies=[Depends(require_admin_session)])


class PrecioIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    categoria_id: int
    tipo: TipoPrecio
    valor: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    fecha_inicio: Optional[datetime] = None
    fecha_fin: Optional[datetime] = None
    activo: bool = True

    @model_validator(mode="after")
    def fechas_en_orden(self):
        if self.fecha_inicio and self.fecha_fin and _utc(self.fecha_fin) < _utc(self.fecha_inicio):
            raise ValueError("fecha_fin no puede ser anterior a fecha_inicio")
        return self


def _utc(valor: datetime) -> datetime:
    # Las fechas sin zona horaria se interpretan en UTC
    return valor.replace(tzinfo=timezone.utc) if valor.tzinfo is None else valor


@router.get("")
def list_precios(categoria_id: Optional[int] = None, solo_activos: bool = False, db: Session = Depends(get_db)):
    return PricingService(db).list_prices(categoria_id=categoria_id, solo_activos=solo_activos)


@router.post("", status_code=201)
def create_precio(body: PrecioIn, db: Session = Depends(get_db)):
    return PricingService(db).create_price(body.model_dump())


@router.get("/activo")
def get_precio_activo(categoria_id: int, tipo: TipoPrecio, db: Session = Depends(get_db)):
    """Precio vigente de una categoría para un tipo de cliente (404 si no hay)."""
    return precio_to_dict(PricingService(db).resolve_active_price(categoria_id, tipo))


@router.get("/{precio_id}")
def get_precio(precio_id: int, db: Session = Depends(get_db)):
    return PricingService(db).get_price(precio_id)


@router.put("/{precio_id}")
def update_precio(precio_id: int, body: PrecioIn, db: Session = Depends(get_db)):
    return PricingService(db).update_price(precio_id, body.model_dump())


@router.delete("/{precio_id}")
def delete_precio(precio_id: int, db: Session = Depends(get_db)):
    return PricingService(db).delete_price(precio_id)
