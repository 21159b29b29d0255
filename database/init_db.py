import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))) #Agregar ruta del proyecto

from config.settings import settings
from database.connection import Base, engine, SessionLocal
from app.models.usuario import Usuario, Rol
from app.services.auth_service import hash_password
from app import models  # noqa: F401  registra las tablas en Base.metadata


def init_database():
    """Crear todas las tablas en la base de datos"""
    Base.metadata.create_all(bind=engine)
    print("✅ Base de datos inicializada correctamente")


def seed_admin(db=None):
    """Crear el usuario administrador inicial si no existe ningún ADMIN"""
    own_session = db is None
    db = db or SessionLocal()
    try:
        if db.query(Usuario).filter(Usuario.rol == Rol.ADMIN).first():
            print("ℹ️ Ya existe un administrador en la base de datos")
            return None

        admin = Usuario(
            nombre="Administrador",
            email=settings.ADMIN_EMAIL.strip().lower(),
            password_hash=hash_password(settings.ADMIN_PASSWORD),
            rol=Rol.ADMIN,
        )
        db.add(admin)
        db.commit()
        print(f"✅ Administrador creado: {admin.email}")
        return admin
    except Exception as e:
        db.rollback()
        print(f"❌ Error al crear el administrador: {e}")
        raise
    finally:
        if own_session:
            db.close()


if __name__ == "__main__":
    init_database()
    seed_admin()
