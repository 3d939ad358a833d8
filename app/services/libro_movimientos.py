# Archivo: app/services/libro_movimientos.py
from typing import Iterable, Iterator, List, Optional, Set

from app.core.exceptions import MovimientoDuplicadoException
from app.schemas.caja_schema import CashMovement


class LibroMovimientos:
    """
    Libro de movimientos de caja, solo de inserción.

    No existe borrar ni editar: un error se corrige con un movimiento
    compensatorio. Los movimientos son inmutables (modelos frozen).
    """

    def __init__(self, movimientos: Optional[Iterable[CashMovement]] = None):
        self._movimientos: List[CashMovement] = []
        self._ids: Set[str] = set()
        if movimientos:
            self.extend(movimientos)

    def append(self, movement: CashMovement) -> CashMovement:
        if movement.id in self._ids:
            raise MovimientoDuplicadoException(movement.id)
        self._movimientos.append(movement)
        self._ids.add(movement.id)
        return movement

    def extend(self, movimientos: Iterable[CashMovement]):
        for m in movimientos:
            self.append(m)

    def __len__(self) -> int:
        return len(self._movimientos)

    def __iter__(self) -> Iterator[CashMovement]:
        return iter(list(self._movimientos))

    def __contains__(self, movement_id: str) -> bool:
        return movement_id in self._ids

    def movimientos_de_turno(self, shift_id: str) -> List[CashMovement]:
        """Del más reciente al más antiguo. Con la misma hora se respeta el orden de inserción."""
        propios = [m for m in self._movimientos if m.shift_id == shift_id]
        # sorted() es estable también con reverse=True
        return sorted(propios, key=lambda m: m.timestamp, reverse=True)

    def ultimos(self, shift_id: str, n: int = 3) -> List[CashMovement]:
        return self.movimientos_de_turno(shift_id)[:n]
