from datetime import date

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session
from typing import Optional

from app.routers.deps import require_admin_session
from app.services.delivery_service import DeliveryService
from database.connection import get_db


router = APIRouter(dependencies=[Depends(require_admin_session)])


class RepartoIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    fecha: date
    zona: str = Field(..., min_length=1, max_length=60)
    activo: bool = True
    observacion: Optional[str] = None


@router.get("")
def list_repartos(incluir_pasados: bool = False, zona: Optional[str] = None, db: Session = Depends(get_db)):
    """Repartos desde hoy (o todos con incluir_pasados), con sus pedidos."""
    return DeliveryService(db).list_rounds(incluir_pasados=incluir_pasados, zona=zona)


@router.post("", status_code=201)
def create_reparto(body: RepartoIn, db: Session = Depends(get_db)):
    return DeliveryService(db).create_round(body.model_dump())


@router.get("/{reparto_id}")
def get_reparto(reparto_id: int, db: Session = Depends(get_db)):
    return DeliveryService(db).get_round(reparto_id)


@router.put("/{reparto_id}")
def update_reparto(reparto_id: int, body: RepartoIn, db: Session = Depends(get_db)):
    return DeliveryService(db).update_round(reparto_id, body.model_dump())


@router.delete("/{reparto_id}")
def delete_reparto(reparto_id: int, db: Session = Depends(get_db)):
    return DeliveryService(db).delete_round(reparto_id)
