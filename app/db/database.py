from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
# IMPORTANTE: Aquí importamos la configuración
from app.core.config import settings

# connect_args={"check_same_thread": False} es necesario solo para SQLite
connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

# 1. Crear el motor (Engine)
engine = create_engine(
    settings.DATABASE_URL,
    connect_args=connect_args,
    # pool_pre_ping=True verifica que la conexión siga viva
    # antes de intentar usarla (evita errores si la BD se reinicia).
    pool_pre_ping=True
)

# 2. Configurar la Sesión
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# 3. Base Declarativa
Base = declarative_base()

# 4. Dependencia para obtener la DB
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
