# Archivo: app/core/config.py
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Base de datos: si hay servidor Postgres se usa, si no SQLite local
    POSTGRES_USER: Optional[str] = None
    POSTGRES_PASSWORD: Optional[str] = None
    POSTGRES_SERVER: Optional[str] = None
    POSTGRES_DB: Optional[str] = None
    POSTGRES_PORT: int = 5432
    SQLITE_PATH: str = "./posgo.db"

    SECRET_KEY: str = "CAMBIAME_CLAVE_SECRETA_POSGO"

    API_V1_STR: str = "/v1"
    PROJECT_NAME: str = "PosGo! Control de Caja"
    LOG_LEVEL: str = "INFO"

    # 60 minutos * 8 horas = 480 minutos (un turno completo).
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 480

    # --- REGLAS DE CAJA ---
    METODO_EFECTIVO: str = "cash"
    # Si es False, un retiro (OUT) no puede dejar la caja en negativo
    PERMITIR_CAJA_NEGATIVA: bool = False
    # Si es True, turno y movimiento se guardan en una sola transacción
    # y la actualización optimista se revierte si falla la escritura
    ESCRITURA_ATOMICA: bool = False
    # Archivo JSON para el estado local (sesión y turno activo). None = solo memoria
    ESTADO_LOCAL_PATH: Optional[str] = None

    DEMO_STORE_ID: str = "00000000-0000-0000-0000-000000000000"

    @property
    def DATABASE_URL(self) -> str:
        if self.POSTGRES_SERVER:
            return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        return f"sqlite:///{self.SQLITE_PATH}"

    model_config = SettingsConfigDict(
        env_file=".env", 
        env_file_encoding='utf-8',
        extra='ignore' 
    )

settings = Settings()

# --- CONSTANTES DE SEGURIDAD Y ROLES ---
# Estas no van dentro de Settings porque no se cargan desde el .env,
# son reglas fijas del negocio.

# Nivel 1: Ver caja y ventas (Lectura)
ROLES_LECTURA = ["super_admin", "admin", "cajero", "visual"]

# Nivel 2: Operar caja y vender
ROLES_ESCRITURA = ["super_admin", "admin", "cajero"]

# Nivel 3: Historial completo de turnos
ROLES_ADMIN = ["super_admin", "admin"]
