from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.orm import Session
from typing import Optional

from app.models.precio import TipoPrecio
from app.routers.deps import require_admin_session
from app.services.client_service import ClientService
from database.connection import get_db


router = APIRouter(dependencies=[Depends(require_admin_session)])


class ClienteIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    nombre: str = Field(..., min_length=1, max_length=100)
    direccion: str = Field(..., min_length=1, max_length=200)
    telefono: str = Field(..., min_length=1, max_length=30)
    email: Optional[str] = Field(None, max_length=120)
    zona: str = Field(..., min_length=1, max_length=60)
    tipo_precio: TipoPrecio = TipoPrecio.MINORISTA
    activo: bool = True

    @field_validator("email")
    @classmethod
    def empty_email_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip().lower()


@router.get("")
def list_clientes(zona: Optional[str] = None, solo_activos: bool = False, db: Session = Depends(get_db)):
    return ClientService(db).list_clients(zona=zona, solo_activos=solo_activos)


@router.post("", status_code=201)
def create_cliente(body: ClienteIn, db: Session = Depends(get_db)):
    return ClientService(db).create_client(body.model_dump())


@router.get("/{cliente_id}")
def get_cliente(cliente_id: int, db: Session = Depends(get_db)):
    return ClientService(db).get_client(cliente_id)


@router.put("/{cliente_id}")
def update_cliente(cliente_id: int, body: ClienteIn, db: Session = Depends(get_db)):
    return ClientService(db).update_client(cliente_id, body.model_dump())


@router.delete("/{cliente_id}")
def delete_cliente(cliente_id: int, db: Session = Depends(get_db)):
    return ClientService(db).delete_client(cliente_id)
