# Archivo: app/services/totales_caja.py
"""
Cálculo de totales de un turno de caja.

Funciones puras: mismas entradas, mismo resultado, sin tocar la base de datos.
El efectivo esperado en el cajón es:

    fondo inicial + ventas en efectivo + entradas (IN) - salidas (OUT)

Los movimientos OPEN y CLOSE son registros de auditoría y no suman nada
adicional. Las ventas en cualquier otro medio van a 'digital'.
"""
import logging
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from app.schemas.caja_schema import (
    CashMovement,
    CashShift,
    CobroDividido,
    MovementType,
    ShiftStatus,
    TotalesTurno,
    Transaction,
)

logger = logging.getLogger(__name__)

METODO_EFECTIVO = "cash"


def _normalizar(modelo, registro: Any):
    # Acepta el esquema, un dict (JSON crudo) o una fila del ORM
    if isinstance(registro, modelo):
        return registro
    return modelo.model_validate(registro)


def _shift_id(registro: Any) -> Optional[str]:
    # Se lee antes de validar: un registro roto de otro turno no debe contar
    if isinstance(registro, dict):
        return registro.get("shift_id", registro.get("shiftId"))
    return getattr(registro, "shift_id", None)


def _del_turno(modelo, registros: Optional[Iterable[Any]], shift_id: str):
    """Registros del turno ya validados. Los ilegibles se registran en el log y se saltan."""
    for raw in registros or []:
        if _shift_id(raw) != shift_id:
            continue
        try:
            yield _normalizar(modelo, raw)
        except ValidationError as e:
            logger.warning(
                "%s ilegible ignorado en totales del turno %s: %s",
                modelo.__name__, shift_id, e.errors(include_url=False),
            )


def calcular_totales(
    shift: Any,
    movements: Optional[Iterable[Any]],
    transactions: Optional[Iterable[Any]],
    metodo_efectivo: str = METODO_EFECTIVO,
) -> TotalesTurno:
    """
    Totales de efectivo y digital para un turno.

    Recibe las listas completas (sin filtrar); aquí se filtra por shift_id.
    Nunca lanza excepciones. Un registro ilegible del turno se salta;
    si el propio turno es ilegible devuelve todo en cero.
    """
    if shift is None:
        return TotalesTurno()

    try:
        turno = _normalizar(CashShift, shift)
        start = turno.start_amount or 0.0
        cash = start
        digital = 0.0

        # A. VENTAS DEL TURNO
        for venta in _del_turno(Transaction, transactions, turno.id):
            cobro = venta.cobro
            if isinstance(cobro, CobroDividido):
                for pago in cobro.payments:
                    if pago.method == metodo_efectivo:
                        cash += pago.amount
                    else:
                        digital += pago.amount
            elif cobro.method == metodo_efectivo:
                cash += cobro.amount
            else:
                digital += cobro.amount

        # B. ENTRADAS Y SALIDAS MANUALES
        for mov in _del_turno(CashMovement, movements, turno.id):
            if mov.type == MovementType.IN:
                cash += mov.amount
            elif mov.type == MovementType.OUT:
                cash -= mov.amount

        return TotalesTurno(cash=round(cash, 2), digital=round(digital, 2), start=round(start, 2))
    except Exception:
        logger.exception("Error calculando totales del turno")
        return TotalesTurno()


def diferencia_cierre(shift: Optional[CashShift], totales: TotalesTurno) -> Optional[float]:
    """Arqueo: contado al cierre menos efectivo esperado. None si sigue abierto."""
    if shift is None or shift.status != ShiftStatus.CLOSED or shift.end_amount is None:
        return None
    return round(shift.end_amount - totales.cash, 2)
