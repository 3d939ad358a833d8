# Archivo: main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.db.database import engine, Base
from app.db import models  # registra las tablas en Base.metadata

# Importaciones de Endpoints
from app.api.v1.endpoints import (
    auth,
    caja,
    ventas
)

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="[%(levelname)s] %(name)s: %(message)s",
)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Creación automática de tablas al arrancar
    Base.metadata.create_all(bind=engine)
    yield

# 1. Instancia principal
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="API de punto de venta: turnos de caja, movimientos de efectivo y ventas.",
    lifespan=lifespan
)

# 2. CONFIGURACIÓN DE CORS
# Definimos quién tiene permiso para hablar con el Backend
origins = [
    "http://localhost:3000",      # React (Create React App)
    "http://localhost:5173",      # React (Vite)
    "http://127.0.0.1:5173",      # React (Vite IP local)
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 3. INCLUSIÓN DE RUTAS (DESPUÉS DEL MIDDLEWARE)
app.include_router(auth.router, prefix=settings.API_V1_STR)
app.include_router(caja.router, prefix=settings.API_V1_STR)
app.include_router(ventas.router, prefix=settings.API_V1_STR)

@app.get("/")
def read_root():
    return {"message": "Bienvenido a PosGo! Control de Caja (FastAPI)"}
