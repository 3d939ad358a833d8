"""
Tests del gateway SQLAlchemy contra SQLite en memoria.
"""
from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import MovimientoDuplicadoException, PersistenciaException
from app.db import models
from app.schemas.caja_schema import CashShift, ShiftStatus, Transaction
from app.services import ciclo_turno
from app.services.gateway_caja import SqlCajaGateway
from app.services.libro_movimientos import LibroMovimientos

STORE_ID = "tienda-test"
OTRA_TIENDA_ID = "tienda-vecina"


def turno(id, hora, status=ShiftStatus.CLOSED, start=100):
    return CashShift(id=id, start_time=hora, start_amount=start, status=status)


class TestTurnos:
    def test_ordenados_por_inicio_descendente(self, gateway, ahora):
        gateway.save_shift(turno("viejo", ahora - timedelta(days=2)))
        gateway.save_shift(turno("nuevo", ahora, status=ShiftStatus.OPEN))
        gateway.save_shift(turno("medio", ahora - timedelta(days=1)))

        assert [s.id for s in gateway.get_shifts()] == ["nuevo", "medio", "viejo"]

    def test_upsert_por_id(self, gateway, db, ahora):
        abierto = ciclo_turno.abrir_turno(None, 100, shift_id="s1", ahora=ahora).shift
        gateway.save_shift(abierto)
        cerrado = ciclo_turno.cerrar_turno(abierto, 130, ahora=ahora + timedelta(hours=8)).shift
        gateway.save_shift(cerrado)

        turnos = gateway.get_shifts()
        assert len(turnos) == 1
        assert turnos[0].status == ShiftStatus.CLOSED
        assert turnos[0].end_amount == 130
        assert turnos[0].start_amount == 100
        assert db.query(models.CashShift).count() == 1

    def test_un_solo_turno_abierto_por_tienda(self, gateway, ahora):
        gateway.save_shift(turno("a", ahora, status=ShiftStatus.OPEN))

        with pytest.raises(PersistenciaException):
            gateway.save_shift(turno("b", ahora + timedelta(minutes=1), status=ShiftStatus.OPEN))

        abiertos = [s for s in gateway.get_shifts() if s.status == ShiftStatus.OPEN]
        assert [s.id for s in abiertos] == ["a"]

    def test_aislado_por_tienda(self, gateway, db, ahora):
        vecina = SqlCajaGateway(db, OTRA_TIENDA_ID)
        gateway.save_shift(turno("mio", ahora, status=ShiftStatus.OPEN))
        vecina.save_shift(turno("suyo", ahora, status=ShiftStatus.OPEN))

        assert [s.id for s in gateway.get_shifts()] == ["mio"]
        assert [s.id for s in vecina.get_shifts()] == ["suyo"]

    def test_no_pisa_turnos_de_otra_tienda(self, gateway, db, ahora):
        vecina = SqlCajaGateway(db, OTRA_TIENDA_ID)
        vecina.save_shift(turno("suyo", ahora))

        with pytest.raises(PersistenciaException):
            gateway.save_shift(turno("suyo", ahora, start=1))

        assert vecina.get_shifts()[0].start_amount == 100


class TestMovimientos:
    def test_solo_insercion(self, gateway, ahora):
        t = ciclo_turno.abrir_turno(None, 50, ahora=ahora)
        gateway.save_shift(t.shift)
        gateway.save_movement(t.movement)

        with pytest.raises(MovimientoDuplicadoException):
            gateway.save_movement(t.movement.model_copy(update={"amount": 999}))

        movimientos = gateway.get_movements()
        assert len(movimientos) == 1
        assert movimientos[0].amount == 50

    def test_ordenados_por_hora_descendente(self, gateway, ahora):
        t = ciclo_turno.abrir_turno(None, 50, ahora=ahora)
        gateway.save_shift(t.shift)
        gateway.save_movement(t.movement)
        for i, monto in enumerate([5, 7], start=1):
            m = ciclo_turno.registrar_movimiento(t.shift, "IN", monto, "x", ahora=ahora + timedelta(minutes=i))
            gateway.save_movement(m.movement)

        assert [m.amount for m in gateway.get_movements()] == [7, 5, 50]

    def test_misma_hora_conserva_el_orden_de_insercion(self, gateway, ahora):
        t = ciclo_turno.abrir_turno(None, 50, movement_id="m-open", ahora=ahora)
        gateway.save_shift(t.shift)
        gateway.save_movement(t.movement)
        for movement_id in ("m3", "m1", "m2"):
            m = ciclo_turno.registrar_movimiento(
                t.shift, "IN", 1, movement_id=movement_id, ahora=ahora + timedelta(minutes=5),
            )
            gateway.save_movement(m.movement)

        leidos = gateway.get_movements()

        assert [m.id for m in leidos] == ["m3", "m1", "m2", "m-open"]
        libro = LibroMovimientos(leidos)
        assert [m.id for m in libro.movimientos_de_turno(t.shift.id)] == ["m3", "m1", "m2", "m-open"]


class TestTransicionAtomica:
    def test_guarda_ambos(self, gateway, ahora):
        t = ciclo_turno.abrir_turno(None, 80, ahora=ahora)

        gateway.save_transition(t.shift, t.movement)

        assert [s.id for s in gateway.get_shifts()] == [t.shift.id]
        assert [m.id for m in gateway.get_movements()] == [t.movement.id]

    def test_si_falla_el_movimiento_no_queda_el_turno(self, gateway, ahora):
        primero = ciclo_turno.abrir_turno(None, 80, ahora=ahora)
        gateway.save_transition(primero.shift, primero.movement)

        cierre = ciclo_turno.cerrar_turno(primero.shift, 80, movement_id=primero.movement.id)
        with pytest.raises(MovimientoDuplicadoException):
            gateway.save_transition(cierre.shift, cierre.movement)

        assert gateway.get_shifts()[0].status == ShiftStatus.OPEN


class TestVentas:
    def test_venta_con_pago_dividido(self, gateway, ahora):
        gateway.save_transaction(Transaction(
            id="v1", date=ahora, total=100, payment_method="mixed", shift_id=None,
            items=[{"id": "p1", "name": "Arroz", "price": 50, "quantity": 2}],
            payments=[{"method": "cash", "amount": 40}, {"method": "card", "amount": 60}],
        ))

        venta = gateway.get_transactions()[0]
        assert venta.items[0]["name"] == "Arroz"
        assert [(p.method, p.amount) for p in venta.payments] == [("cash", 40), ("card", 60)]
        assert venta.cobro.tipo == "split"

    def test_venta_de_un_medio(self, gateway, ahora):
        gateway.save_transaction(Transaction(id="v1", date=ahora, total=12.5, payment_method="cash"))
        gateway.save_transaction(Transaction(id="v2", date=ahora + timedelta(minutes=1), total=3, payment_method="card"))

        ventas = gateway.get_transactions()
        assert [v.id for v in ventas] == ["v2", "v1"]
        assert ventas[1].payments is None
        assert ventas[1].cobro.tipo == "single"
        assert ventas[1].cobro.amount == 12.5


class TestErroresDeLectura:
    def test_error_de_bd_se_reporta_como_persistencia(self):
        db = MagicMock()
        db.query.side_effect = OperationalError("SELECT", {}, Exception("conexión perdida"))
        gateway = SqlCajaGateway(db, STORE_ID)

        for lectura in (gateway.get_shifts, gateway.get_movements, gateway.get_transactions):
            with pytest.raises(PersistenciaException):
                lectura()
