# Archivo: app/services/caja_service.py
import logging
import threading
from collections import defaultdict
from typing import Any, Dict, List, Optional

from app.core.estado_local import EstadoLocal
from app.core.exceptions import PersistenciaException
from app.schemas import caja_schema
from app.schemas.caja_schema import MovementType, ShiftStatus
from app.services import ciclo_turno
from app.services.gateway_caja import CajaGateway
from app.services.libro_movimientos import LibroMovimientos
from app.services.totales_caja import METODO_EFECTIVO, calcular_totales, diferencia_cierre

logger = logging.getLogger(__name__)

# Punto de serialización por tienda: FastAPI atiende endpoints síncronos
# en varios hilos, dos terminales no pueden abrir/cerrar a la vez.
# Un candado por tienda atendida, nunca se liberan. Solo serializa dentro de
# este proceso; entre procesos solo queda el índice único de turno abierto.
_candados_por_tienda: Dict[str, threading.Lock] = defaultdict(threading.Lock)
_candado_registro = threading.Lock()


def candado_tienda(store_id: str) -> threading.Lock:
    with _candado_registro:
        return _candados_por_tienda[store_id]


class CajaService:
    """
    Coordina el control de caja de una sesión.

    Mantiene copias de trabajo de turnos, movimientos y ventas. Cada acción
    se aplica primero en memoria (optimista), luego se escribe en la BD y al
    final se recarga todo para reconciliar.
    """

    def __init__(
        self,
        gateway: CajaGateway,
        estado: EstadoLocal,
        clave_sesion: str,
        store_id: str = "",
        metodo_efectivo: str = METODO_EFECTIVO,
        permitir_caja_negativa: bool = False,
        escritura_atomica: bool = False,
    ):
        self.gateway = gateway
        self.estado = estado
        self.clave_sesion = clave_sesion
        self.store_id = store_id
        self.metodo_efectivo = metodo_efectivo
        self.permitir_caja_negativa = permitir_caja_negativa
        self.escritura_atomica = escritura_atomica

        self.shifts: List[caja_schema.CashShift] = []
        self.movements = LibroMovimientos()
        self.transactions: List[caja_schema.Transaction] = []
        self.active_shift_id: Optional[str] = estado.get_active_shift_id(clave_sesion)

    # -------------------------------------------------------------------------
    # 1. RECARGA COMPLETA
    # -------------------------------------------------------------------------
    def refrescar(self):
        """Relee turnos, movimientos y ventas. Lanza PersistenciaException si falla."""
        shifts = self.gateway.get_shifts()
        movements = self.gateway.get_movements()
        transactions = self.gateway.get_transactions()

        self.shifts = shifts
        self.movements = LibroMovimientos(movements)
        self.transactions = transactions
        self.active_shift_id = self.estado.get_active_shift_id(self.clave_sesion)

    # -------------------------------------------------------------------------
    # 2. TURNO ACTIVO Y TOTALES
    # -------------------------------------------------------------------------
    @property
    def turno_activo(self) -> Optional[caja_schema.CashShift]:
        if self.active_shift_id:
            for s in self.shifts:
                if s.id == self.active_shift_id and s.status == ShiftStatus.OPEN:
                    return s
        # El slot local no apunta a un turno abierto: se adopta el que tenga
        # la tienda (abierto desde otra sesión o antes de reiniciar).
        abierto = next((s for s in self.shifts if s.status == ShiftStatus.OPEN), None)
        nuevo_id = abierto.id if abierto else None
        if nuevo_id != self.active_shift_id:
            self.active_shift_id = nuevo_id
            self.estado.set_active_shift_id(self.clave_sesion, nuevo_id)
        return abierto

    def totales(self, shift: Optional[caja_schema.CashShift] = None) -> caja_schema.TotalesTurno:
        shift = shift if shift is not None else self.turno_activo
        return calcular_totales(shift, list(self.movements), self.transactions, self.metodo_efectivo)

    def ultimos_movimientos(self, n: int = 3) -> List[caja_schema.CashMovement]:
        turno = self.turno_activo
        if turno is None:
            return []
        return self.movements.ultimos(turno.id, n)

    def movimientos_de_turno(self, shift_id: Optional[str] = None) -> List[caja_schema.CashMovement]:
        if shift_id is None:
            turno = self.turno_activo
            if turno is None:
                return []
            shift_id = turno.id
        return self.movements.movimientos_de_turno(shift_id)

    def estado_caja(self) -> caja_schema.EstadoCaja:
        turno = self.turno_activo
        return caja_schema.EstadoCaja(
            turno_activo=turno,
            totales=self.totales(turno),
            ultimos_movimientos=self.ultimos_movimientos(),
        )

    def historial_turnos(self) -> List[caja_schema.TurnoResumen]:
        """Cada turno (más reciente primero) con sus totales y el arqueo al cierre."""
        resumen = []
        for s in self.shifts:
            totales = self.totales(s)
            resumen.append(caja_schema.TurnoResumen(
                shift=s,
                totales=totales,
                diferencia=diferencia_cierre(s, totales),
            ))
        return resumen

    # -------------------------------------------------------------------------
    # 3. ACCIONES DE CAJA (OPEN / CLOSE / IN / OUT)
    # -------------------------------------------------------------------------
    def ejecutar_accion(self, accion: Any, monto: Any, descripcion: str = "") -> caja_schema.ResultadoAccion:
        """
        Se recarga dentro del candado y se valida contra esos datos: otra
        sesión pudo abrir, cerrar o retirar desde que se construyó el servicio.

        Lanza PersistenciaException si esa recarga falla y CajaServiceException
        si la acción no procede; en ambos casos antes de tocar nada. Los errores
        al guardar se informan en el resultado.
        """
        with candado_tienda(self.store_id):
            self.refrescar()
            turno = self.turno_activo
            transicion = ciclo_turno.aplicar_accion(
                turno, accion, monto, descripcion,
                efectivo_disponible=self.totales(turno).cash if turno else None,
                permitir_negativo=self.permitir_caja_negativa,
            )

            respaldo = self._respaldo()
            self._aplicar_optimista(transicion)

            error = None
            try:
                self._persistir(transicion)
                logger.info(
                    "Caja %s: %s %.2f (turno %s)",
                    self.store_id, transicion.accion.value,
                    transicion.movement.amount, transicion.movement.shift_id,
                )
            except PersistenciaException as e:
                error = f"Error en caja: {e.detail}"
                logger.error("Fallo al guardar %s en tienda %s: %s", transicion.accion.value, self.store_id, e.detail)
                if self.escritura_atomica:
                    self._restaurar(respaldo)

            # Se recarga siempre, haya fallado o no la escritura
            try:
                self.refrescar()
            except PersistenciaException as e:
                logger.error("Fallo al recargar caja de tienda %s: %s", self.store_id, e.detail)
                error = error or f"Error al recargar datos: {e.detail}"

            turno = self.turno_activo
            return caja_schema.ResultadoAccion(
                ok=error is None,
                error=error,
                action=transicion.accion,
                turno_activo=turno,
                movement=transicion.movement,
                totales=self.totales(turno),
            )

    def _aplicar_optimista(self, transicion: caja_schema.TransicionCaja):
        if transicion.accion == MovementType.OPEN:
            self.shifts = [transicion.shift] + self.shifts
            self._set_activo(transicion.shift.id)
        elif transicion.accion == MovementType.CLOSE:
            self.shifts = [transicion.shift if s.id == transicion.shift.id else s for s in self.shifts]
            self._set_activo(None)
        self.movements.append(transicion.movement)

    def _persistir(self, transicion: caja_schema.TransicionCaja):
        if transicion.shift is None:
            self.gateway.save_movement(transicion.movement)
        elif self.escritura_atomica:
            self.gateway.save_transition(transicion.shift, transicion.movement)
        else:
            # Dos escrituras independientes: primero el turno, luego el movimiento.
            # Si falla la segunda, el turno queda sin su movimiento OPEN/CLOSE.
            self.gateway.save_shift(transicion.shift)
            self.gateway.save_movement(transicion.movement)

    def _set_activo(self, shift_id: Optional[str]):
        self.active_shift_id = shift_id
        self.estado.set_active_shift_id(self.clave_sesion, shift_id)

    def _respaldo(self):
        return (list(self.shifts), LibroMovimientos(self.movements), self.active_shift_id)

    def _restaurar(self, respaldo):
        self.shifts, self.movements, active_shift_id = respaldo
        self._set_activo(active_shift_id)
