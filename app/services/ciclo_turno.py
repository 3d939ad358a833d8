# Archivo: app/services/ciclo_turno.py
"""
Ciclo de vida del turno de caja: NINGUNO -> OPEN -> CLOSED.

Aquí no hay I/O. Cada acción valida y devuelve los registros nuevos
(TransicionCaja) para que quien llama los aplique y los guarde. Si una
validación falla se lanza la excepción antes de crear cualquier registro,
así que nunca queda una transición a medias.
"""
import math
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional, Union

from app.core.exceptions import (
    CajaServiceException,
    FondosInsuficientesException,
    MontoInvalidoException,
    SinTurnoAbiertoException,
    TurnoYaAbiertoException,
)
from app.schemas.caja_schema import (
    CashMovement,
    CashShift,
    MovementType,
    ShiftStatus,
    TransicionCaja,
    utc_now,
)

DESCRIPCION_APERTURA = "Apertura de caja"
DESCRIPCION_CIERRE = "Cierre de caja"

# Pequeña tolerancia decimal al comparar contra el efectivo disponible
TOLERANCIA = 0.01


def _nuevo_id() -> str:
    return str(uuid.uuid4())


def _a_numero(valor: Any) -> Optional[float]:
    if isinstance(valor, bool):
        return None
    if isinstance(valor, (int, float, Decimal)):
        numero = float(valor)
    elif isinstance(valor, str):
        try:
            numero = float(valor.strip())
        except ValueError:
            return None
    else:
        return None
    return numero if math.isfinite(numero) else None


def parsear_monto(valor: Any, accion: Union[MovementType, str]) -> float:
    """
    Convierte lo que escribió el cajero en un monto.

    Para CLOSE un monto vacío o no numérico vale 0 (se cierra sin contar).
    Para OPEN, IN y OUT se rechaza. "0" es válido al abrir: caja sin fondo.
    """
    accion = MovementType(accion)
    monto = _a_numero(valor)
    if monto is None:
        if accion == MovementType.CLOSE:
            return 0.0
        raise MontoInvalidoException()
    if monto < 0:
        raise MontoInvalidoException("El monto no puede ser negativo.")
    return monto


def _esta_abierto(turno: Optional[CashShift]) -> bool:
    return turno is not None and turno.status == ShiftStatus.OPEN


# -------------------------------------------------------------------------
# 1. ABRIR TURNO
# -------------------------------------------------------------------------
def abrir_turno(
    turno_activo: Optional[CashShift],
    monto: Any,
    *,
    shift_id: Optional[str] = None,
    movement_id: Optional[str] = None,
    ahora: Optional[datetime] = None,
) -> TransicionCaja:
    if _esta_abierto(turno_activo):
        raise TurnoYaAbiertoException()

    monto = parsear_monto(monto, MovementType.OPEN)
    ahora = ahora or utc_now()

    shift = CashShift(
        id=shift_id or _nuevo_id(),
        start_time=ahora,
        start_amount=monto,
        status=ShiftStatus.OPEN,
        total_sales_cash=0.0,
        total_sales_digital=0.0,
    )
    movement = CashMovement(
        id=movement_id or _nuevo_id(),
        shift_id=shift.id,
        type=MovementType.OPEN,
        amount=monto,
        description=DESCRIPCION_APERTURA,
        timestamp=ahora,
    )
    return TransicionCaja(accion=MovementType.OPEN, shift=shift, movement=movement)


# -------------------------------------------------------------------------
# 2. CERRAR TURNO
# -------------------------------------------------------------------------
def cerrar_turno(
    turno_activo: Optional[CashShift],
    monto: Any,
    *,
    movement_id: Optional[str] = None,
    ahora: Optional[datetime] = None,
) -> TransicionCaja:
    if turno_activo is None:
        raise SinTurnoAbiertoException("No hay turno abierto para cerrar.")
    if turno_activo.status == ShiftStatus.CLOSED:
        raise SinTurnoAbiertoException("El turno ya está cerrado.")

    monto = parsear_monto(monto, MovementType.CLOSE)
    ahora = ahora or utc_now()

    # Solo cambian status, end_amount y end_time
    shift = turno_activo.model_copy(update={
        "status": ShiftStatus.CLOSED,
        "end_amount": monto,
        "end_time": ahora,
    })
    movement = CashMovement(
        id=movement_id or _nuevo_id(),
        shift_id=turno_activo.id,
        type=MovementType.CLOSE,
        amount=monto,
        description=DESCRIPCION_CIERRE,
        timestamp=ahora,
    )
    return TransicionCaja(accion=MovementType.CLOSE, shift=shift, movement=movement)


# -------------------------------------------------------------------------
# 3. ENTRADAS / SALIDAS DE EFECTIVO
# -------------------------------------------------------------------------
def registrar_movimiento(
    turno_activo: Optional[CashShift],
    tipo: Union[MovementType, str],
    monto: Any,
    descripcion: str = "",
    *,
    efectivo_disponible: Optional[float] = None,
    permitir_negativo: bool = False,
    movement_id: Optional[str] = None,
    ahora: Optional[datetime] = None,
) -> TransicionCaja:
    tipo = MovementType(tipo)
    if tipo not in (MovementType.IN, MovementType.OUT):
        raise CajaServiceException(f"Tipo de movimiento inválido: {tipo.value}")
    if not _esta_abierto(turno_activo):
        raise SinTurnoAbiertoException()

    monto = parsear_monto(monto, tipo)

    if tipo == MovementType.OUT and not permitir_negativo and efectivo_disponible is not None:
        if efectivo_disponible < (monto - TOLERANCIA):
            raise FondosInsuficientesException(
                f"FONDOS INSUFICIENTES EN CAJA. Tienes {efectivo_disponible:.2f}, intentas retirar {monto:.2f}."
            )

    movement = CashMovement(
        id=movement_id or _nuevo_id(),
        shift_id=turno_activo.id,
        type=tipo,
        amount=monto,
        description=(descripcion or "").strip(),
        timestamp=ahora or utc_now(),
    )
    return TransicionCaja(accion=tipo, shift=None, movement=movement)


def aplicar_accion(
    turno_activo: Optional[CashShift],
    accion: Union[MovementType, str],
    monto: Any,
    descripcion: str = "",
    *,
    efectivo_disponible: Optional[float] = None,
    permitir_negativo: bool = False,
    shift_id: Optional[str] = None,
    movement_id: Optional[str] = None,
    ahora: Optional[datetime] = None,
) -> TransicionCaja:
    """Función de transición completa. Lanza CajaServiceException si no procede."""
    try:
        accion = MovementType(accion)
    except ValueError:
        raise CajaServiceException(f"Acción de caja desconocida: {accion}")

    if accion == MovementType.OPEN:
        return abrir_turno(turno_activo, monto, shift_id=shift_id, movement_id=movement_id, ahora=ahora)
    if accion == MovementType.CLOSE:
        return cerrar_turno(turno_activo, monto, movement_id=movement_id, ahora=ahora)
    return registrar_movimiento(
        turno_activo, accion, monto, descripcion,
        efectivo_disponible=efectivo_disponible,
        permitir_negativo=permitir_negativo,
        movement_id=movement_id,
        ahora=ahora,
    )
