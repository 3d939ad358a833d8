# Archivo: app/services/gateway_caja.py
import logging
from typing import List, Protocol

from sqlalchemy import desc, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import MovimientoDuplicadoException, PersistenciaException
from app.db import models
from app.schemas import caja_schema

logger = logging.getLogger(__name__)


class CajaGateway(Protocol):
    """Lo que la caja necesita del almacenamiento remoto, ya filtrado por tienda."""

    def get_shifts(self) -> List[caja_schema.CashShift]: ...
    def save_shift(self, shift: caja_schema.CashShift) -> None: ...
    def get_movements(self) -> List[caja_schema.CashMovement]: ...
    def save_movement(self, movement: caja_schema.CashMovement) -> None: ...
    def get_transactions(self) -> List[caja_schema.Transaction]: ...
    def save_transaction(self, transaction: caja_schema.Transaction) -> None: ...
    def save_transition(self, shift: caja_schema.CashShift, movement: caja_schema.CashMovement) -> None: ...


class SqlCajaGateway:
    def __init__(self, db: Session, store_id: str):
        self.db = db
        self.store_id = store_id

    # -------------------------------------------------------------------------
    # LECTURAS
    # -------------------------------------------------------------------------
    def get_shifts(self) -> List[caja_schema.CashShift]:
        try:
            filas = self.db.query(models.CashShift).filter(
                models.CashShift.store_id == self.store_id
            ).order_by(desc(models.CashShift.start_time)).all()
        except SQLAlchemyError as e:
            raise PersistenciaException(f"Error al leer turnos: {e}")
        return [caja_schema.CashShift.model_validate(f) for f in filas]

    def get_movements(self) -> List[caja_schema.CashMovement]:
        try:
            filas = self.db.query(models.CashMovement).filter(
                models.CashMovement.store_id == self.store_id
            ).order_by(
                desc(models.CashMovement.timestamp),
                # Misma hora: en orden de inserción, como los guarda el libro
                models.CashMovement.secuencia,
            ).all()
        except SQLAlchemyError as e:
            raise PersistenciaException(f"Error al leer movimientos: {e}")
        return [caja_schema.CashMovement.model_validate(f) for f in filas]

    def get_transactions(self) -> List[caja_schema.Transaction]:
        try:
            filas = self.db.query(models.Transaction).filter(
                models.Transaction.store_id == self.store_id
            ).order_by(desc(models.Transaction.date)).all()
        except SQLAlchemyError as e:
            raise PersistenciaException(f"Error al leer ventas: {e}")
        return [caja_schema.Transaction.model_validate(f) for f in filas]

    # -------------------------------------------------------------------------
    # ESCRITURAS (cada una hace su propio commit)
    # -------------------------------------------------------------------------
    def save_shift(self, shift: caja_schema.CashShift) -> None:
        self._commit(lambda: self._upsert_shift(shift), "turno")

    def save_movement(self, movement: caja_schema.CashMovement) -> None:
        self._commit(lambda: self._insert_movement(movement), "movimiento")

    def save_transaction(self, transaction: caja_schema.Transaction) -> None:
        self._commit(lambda: self._insert_transaction(transaction), "venta")

    def save_transition(self, shift: caja_schema.CashShift, movement: caja_schema.CashMovement) -> None:
        """Turno y movimiento en una sola transacción: o se guardan ambos o ninguno."""
        def ambos():
            self._upsert_shift(shift)
            self._insert_movement(movement)
        self._commit(ambos, "turno y movimiento")

    # --- helpers ---
    def _commit(self, operacion, que: str):
        try:
            operacion()
            self.db.commit()
        except (MovimientoDuplicadoException, PersistenciaException):
            self.db.rollback()
            raise
        except IntegrityError as e:
            self.db.rollback()
            logger.error("Integridad al guardar %s (tienda %s): %s", que, self.store_id, e.orig)
            raise PersistenciaException(f"Error de integridad al guardar {que}.")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Error al guardar %s (tienda %s): %s", que, self.store_id, e)
            raise PersistenciaException(f"Error al guardar {que}: {str(e)}")

    def _upsert_shift(self, shift: caja_schema.CashShift):
        existente = self.db.get(models.CashShift, shift.id)
        if existente is not None and existente.store_id != self.store_id:
            raise PersistenciaException(f"El turno {shift.id} pertenece a otra tienda.")
        # merge = upsert por id
        self.db.merge(models.CashShift(
            id=shift.id,
            store_id=self.store_id,
            start_time=shift.start_time,
            start_amount=shift.start_amount,
            end_time=shift.end_time,
            end_amount=shift.end_amount,
            status=shift.status,
            total_sales_cash=shift.total_sales_cash,
            total_sales_digital=shift.total_sales_digital,
        ))
        self.db.flush()

    def _insert_movement(self, movement: caja_schema.CashMovement):
        if self.db.get(models.CashMovement, movement.id) is not None:
            raise MovimientoDuplicadoException(movement.id)
        ultima = self.db.query(func.max(models.CashMovement.secuencia)).filter(
            models.CashMovement.store_id == self.store_id
        ).scalar()
        self.db.add(models.CashMovement(
            id=movement.id,
            store_id=self.store_id,
            shift_id=movement.shift_id,
            type=movement.type,
            amount=movement.amount,
            description=movement.description,
            timestamp=movement.timestamp,
            secuencia=(ultima or 0) + 1,
        ))
        self.db.flush()

    def _insert_transaction(self, t: caja_schema.Transaction):
        self.db.add(models.Transaction(
            id=t.id,
            store_id=self.store_id,
            shift_id=t.shift_id,
            date=t.date,
            items=t.items,
            subtotal=t.subtotal,
            tax=t.tax,
            discount=t.discount,
            total=t.total,
            payment_method=t.payment_method,
            payments=[p.model_dump() for p in t.payments] if t.payments is not None else None,
        ))
        self.db.flush()
