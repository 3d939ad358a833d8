import pytest
from datetime import datetime, timedelta
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.deps import get_estado_local
from app.core.estado_local import EstadoLocal
from app.core.exceptions import MovimientoDuplicadoException, PersistenciaException
from app.core.security import get_password_hash
from app.db import models
from app.db.database import Base, get_db
from app.services.caja_service import CajaService
from app.services.gateway_caja import SqlCajaGateway
from main import app as api

STORE_ID = "tienda-test"
OTRA_TIENDA_ID = "tienda-vecina"


class GatewayMemoria:
    """
    Gateway en memoria para probar el coordinador.

    `fallar` contiene los nombres de métodos que deben lanzar
    PersistenciaException (p. ej. {"save_movement"}). `fallar_despues` se
    suma a `fallar` al escribir, para romper solo la recarga posterior.
    """

    def __init__(self):
        self.shifts = {}
        self.movements = {}
        self.transactions = {}
        self.fallar = set()
        self.fallar_despues = set()
        self.llamadas = []

    def _registrar(self, nombre):
        self.llamadas.append(nombre)
        if nombre.startswith("save_"):
            self.fallar |= self.fallar_despues
        if nombre in self.fallar:
            raise PersistenciaException(f"{nombre} caído")

    def get_shifts(self):
        self._registrar("get_shifts")
        return sorted(self.shifts.values(), key=lambda s: s.start_time, reverse=True)

    def save_shift(self, shift):
        self._registrar("save_shift")
        self.shifts[shift.id] = shift

    def get_movements(self):
        self._registrar("get_movements")
        return sorted(self.movements.values(), key=lambda m: m.timestamp, reverse=True)

    def save_movement(self, movement):
        self._registrar("save_movement")
        if movement.id in self.movements:
            raise MovimientoDuplicadoException(movement.id)
        self.movements[movement.id] = movement

    def get_transactions(self):
        self._registrar("get_transactions")
        return sorted(self.transactions.values(), key=lambda t: t.date, reverse=True)

    def save_transaction(self, transaction):
        self._registrar("save_transaction")
        self.transactions[transaction.id] = transaction

    def save_transition(self, shift, movement):
        self._registrar("save_transition")
        self.shifts[shift.id] = shift
        self.movements[movement.id] = movement


@pytest.fixture
def engine():
    """SQLite en memoria compartida entre sesiones."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def store(db):
    tienda = models.Store(id=STORE_ID, name="Bodega Test", settings={"currency": "S/"})
    db.add(tienda)
    db.add(models.Store(id=OTRA_TIENDA_ID, name="Bodega Vecina"))
    db.commit()
    return tienda


@pytest.fixture
def gateway(db, store):
    return SqlCajaGateway(db, STORE_ID)


@pytest.fixture
def gateway_memoria():
    return GatewayMemoria()


@pytest.fixture
def estado():
    """Estado local solo en memoria (sin archivo)."""
    return EstadoLocal()


@pytest.fixture
def caja(gateway, estado):
    servicio = CajaService(gateway, estado, clave_sesion="cajero-1", store_id=STORE_ID)
    servicio.refrescar()
    return servicio


@pytest.fixture
def ahora():
    return datetime(2024, 5, 10, 8, 0, 0)


@pytest.fixture
def reloj(ahora):
    """Devuelve horas crecientes, un minuto por llamada."""
    instantes = (ahora + timedelta(minutes=i) for i in range(1000))
    return lambda: next(instantes)


# =============================================================================
# API
# =============================================================================

def _crear_perfil(db, id, email, role, store_id, password="Secreta123"):
    perfil = models.Profile(
        id=id,
        email=email,
        password_hash=get_password_hash(password),
        role=role,
        store_id=store_id,
        activo=True,
    )
    db.add(perfil)
    db.commit()
    return perfil


@pytest.fixture
def cajero(db, store):
    return _crear_perfil(db, "cajero-1", "cajero@bodega.test", "cajero", STORE_ID)


@pytest.fixture
def administrador(db, store):
    return _crear_perfil(db, "admin-1", "admin@bodega.test", "admin", STORE_ID)


@pytest.fixture
def usuario_demo(db, store):
    return _crear_perfil(db, "demo-1", "prueba@demo.posgo", "cajero", STORE_ID)


@pytest.fixture
def client(session_factory, estado):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    api.dependency_overrides[get_db] = override_get_db
    api.dependency_overrides[get_estado_local] = lambda: estado
    yield TestClient(api)
    api.dependency_overrides.clear()


def login(client, email, password="Secreta123"):
    response = client.post("/v1/login", data={"username": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def auth_cajero(client, cajero):
    return login(client, cajero.email)


@pytest.fixture
def auth_admin(client, administrador):
    return login(client, administrador.email)


@pytest.fixture
def auth_demo(client, usuario_demo):
    return login(client, usuario_demo.email)
