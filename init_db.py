# Archivo: init_db.py
# Crea las tablas y deja listos la tienda demo y perfiles de prueba.
# Uso: python init_db.py
import logging

from app.core.config import settings
from app.core.security import get_password_hash
from app.db.database import SessionLocal, engine, Base
from app.db import models

logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(name)s: %(message)s")
logger = logging.getLogger("init_db")

TIENDA_PRINCIPAL_ID = "11111111-1111-1111-1111-111111111111"

PERFILES = [
    {"id": "super-admin", "email": "admin@posgo.app", "role": "super_admin", "password": "admin123", "store_id": None},
    {"id": "admin-tienda", "email": "dueno@posgo.app", "role": "admin", "password": "dueno123", "store_id": TIENDA_PRINCIPAL_ID},
    {"id": "cajero-tienda", "email": "cajero@posgo.app", "role": "cajero", "password": "cajero123", "store_id": TIENDA_PRINCIPAL_ID},
    {"id": "test-user-demo", "email": "prueba@demo.posgo", "role": "cajero", "password": "demo123", "store_id": None},
]

def init_db():
    logger.info("Creando tablas en %s", settings.DATABASE_URL)
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()

    try:
        # 1. Tiendas: la plantilla demo y una tienda real
        for store_id, nombre in [
            (settings.DEMO_STORE_ID, "Plantilla Cloud PosGo!"),
            (TIENDA_PRINCIPAL_ID, "Bodega Principal"),
        ]:
            if not db.get(models.Store, store_id):
                logger.info("Creando tienda %s", nombre)
                db.add(models.Store(id=store_id, name=nombre, settings={"name": nombre, "currency": "S/"}))
        db.commit()

        # 2. Perfiles
        for datos in PERFILES:
            if db.query(models.Profile).filter_by(email=datos["email"]).first():
                continue
            logger.info("Creando perfil %s (%s)", datos["email"], datos["role"])
            db.add(models.Profile(
                id=datos["id"],
                email=datos["email"],
                password_hash=get_password_hash(datos["password"]),
                role=datos["role"],
                store_id=datos["store_id"],
                activo=True,
            ))
        db.commit()
    finally:
        db.close()

if __name__ == "__main__":
    init_db()
