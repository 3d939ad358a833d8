# Archivo: app/schemas/caja_schema.py
import enum
from decimal import Decimal
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ShiftStatus(str, enum.Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"

class MovementType(str, enum.Enum):
    OPEN = "OPEN"
    CLOSE = "CLOSE"
    IN = "IN"
    OUT = "OUT"


def utc_now() -> datetime:
    """UTC sin zona horaria: SQLite y Postgres (DateTime sin tz) devuelven lo mismo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _a_monto(v):
    """Montos faltantes cuentan como 0. Numeric de la BD llega como Decimal."""
    if v is None or v == "":
        return 0.0
    if isinstance(v, Decimal):
        return float(v)
    return v


class CajaModel(BaseModel):
    # Registros inmutables: las transiciones crean copias nuevas.
    # En el JSON viajan en camelCase (startTime, shiftId...)
    model_config = ConfigDict(
        from_attributes=True,
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

# --- MODELO 1: EL TURNO DE CAJA ---
class CashShift(CajaModel):
    id: str
    start_time: datetime
    start_amount: float = 0.0
    end_time: Optional[datetime] = None
    end_amount: Optional[float] = None
    status: ShiftStatus = ShiftStatus.OPEN

    # Cache opcional, no se actualiza incrementalmente
    total_sales_cash: float = 0.0
    total_sales_digital: float = 0.0

    @field_validator("start_amount", "total_sales_cash", "total_sales_digital", mode="before")
    @classmethod
    def _montos(cls, v):
        return _a_monto(v)

    @field_validator("end_amount", mode="before")
    @classmethod
    def _monto_cierre(cls, v):
        return float(v) if isinstance(v, Decimal) else v

# --- MODELO 2: EL MOVIMIENTO (FILA DEL LIBRO) ---
class CashMovement(CajaModel):
    id: str
    shift_id: str
    type: MovementType
    amount: float = 0.0  # OUT se guarda positivo y se resta al calcular
    description: str = ""
    timestamp: datetime

    @field_validator("amount", mode="before")
    @classmethod
    def _monto(cls, v):
        return _a_monto(v)

    @field_validator("description", mode="before")
    @classmethod
    def _descripcion(cls, v):
        return v or ""

# --- MODELO 3: LA VENTA (SOLO LECTURA PARA LA CAJA) ---
class Pago(CajaModel):
    method: str = ""
    amount: float = 0.0

    @field_validator("amount", mode="before")
    @classmethod
    def _monto(cls, v):
        return _a_monto(v)

class CobroUnico(BaseModel):
    """Venta cobrada con un solo medio: el total completo va a ese medio."""
    tipo: Literal["single"] = "single"
    method: str
    amount: float

class CobroDividido(BaseModel):
    """Venta con pago dividido: cada parte va a su medio."""
    tipo: Literal["split"] = "split"
    payments: List[Pago]

Cobro = Union[CobroUnico, CobroDividido]

class Transaction(CajaModel):
    id: str
    date: datetime
    items: List[Dict[str, Any]] = Field(default_factory=list)
    subtotal: float = 0.0
    tax: float = 0.0
    discount: float = 0.0
    total: float = 0.0
    payment_method: Optional[str] = None
    payments: Optional[List[Pago]] = None
    shift_id: Optional[str] = None

    @field_validator("subtotal", "tax", "discount", "total", mode="before")
    @classmethod
    def _montos(cls, v):
        return _a_monto(v)

    @field_validator("items", mode="before")
    @classmethod
    def _items(cls, v):
        return v if isinstance(v, list) else []

    @field_validator("payments", mode="before")
    @classmethod
    def _pagos(cls, v):
        # Un 'payments' que no es lista se trata como venta de un solo medio
        if not isinstance(v, list):
            return None
        return [p for p in v if isinstance(p, (dict, Pago))]

    @property
    def cobro(self) -> Cobro:
        if self.payments is not None:
            return CobroDividido(payments=self.payments)
        return CobroUnico(method=self.payment_method or "", amount=self.total)

# --- MODELO 4: TOTALES DEL TURNO ---
class TotalesTurno(BaseModel):
    cash: float = 0.0
    digital: float = 0.0
    start: float = 0.0

# --- MODELO 5: RESULTADO DE UNA TRANSICIÓN (SIN I/O) ---
class TransicionCaja(BaseModel):
    model_config = ConfigDict(frozen=True)

    accion: MovementType
    shift: Optional[CashShift] = None  # None para IN/OUT
    movement: CashMovement

# --- API: ACCIONES Y CONSULTAS ---
class AccionCajaRequest(BaseModel):
    action: MovementType
    # Se acepta texto tal cual lo escribe el cajero; se valida en el servicio
    amount: Optional[Union[float, str]] = None
    description: str = ""

class ResultadoAccion(CajaModel):
    ok: bool
    error: Optional[str] = None
    action: MovementType
    turno_activo: Optional[CashShift] = None
    movement: Optional[CashMovement] = None
    totales: TotalesTurno = Field(default_factory=TotalesTurno)

class EstadoCaja(CajaModel):
    turno_activo: Optional[CashShift] = None
    totales: TotalesTurno = Field(default_factory=TotalesTurno)
    ultimos_movimientos: List[CashMovement] = Field(default_factory=list)

class TurnoResumen(CajaModel):
    shift: CashShift
    totales: TotalesTurno
    # Contado al cierre menos efectivo esperado (faltante < 0 < sobrante)
    diferencia: Optional[float] = None
