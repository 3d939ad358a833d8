import pytest
from pydantic import ValidationError

from app.core.exceptions import SinTurnoAbiertoException
from app.schemas.caja_schema import CashShift, ShiftStatus
from app.schemas.venta_schema import VentaCreate
from app.services.venta_service import VentaService


@pytest.fixture
def turno(ahora):
    return CashShift(id="turno-1", start_time=ahora, start_amount=20, status=ShiftStatus.OPEN)


def carrito(**extra):
    datos = {
        "items": [
            {"id": "p1", "name": "Leche", "price": 4.5, "quantity": 2},
            {"id": "p2", "name": "Pan", "price": 0.3, "quantity": 10, "selectedVariantId": "v-chico"},
        ],
        "paymentMethod": "cash",
    }
    datos.update(extra)
    return VentaCreate(**datos)


class TestRegistrarVenta:
    def test_total_y_turno(self, gateway_memoria, turno):
        venta = VentaService(gateway_memoria).registrar_venta(carrito(), turno)

        assert venta.total == 12
        assert venta.subtotal == 12
        assert venta.shift_id == "turno-1"
        assert venta.payments is None
        assert venta.items[1]["selectedVariantId"] == "v-chico"
        assert gateway_memoria.transactions[venta.id] == venta

    def test_pago_dividido(self, gateway_memoria, turno):
        venta = VentaService(gateway_memoria).registrar_venta(
            carrito(paymentMethod="mixed", payments=[
                {"method": "cash", "amount": 5},
                {"method": "card", "amount": 7},
            ]),
            turno,
        )

        assert venta.cobro.tipo == "split"
        assert [p.amount for p in venta.payments] == [5, 7]

    def test_sin_turno_abierto(self, gateway_memoria, turno):
        servicio = VentaService(gateway_memoria)

        with pytest.raises(SinTurnoAbiertoException):
            servicio.registrar_venta(carrito(), None)
        with pytest.raises(SinTurnoAbiertoException):
            servicio.registrar_venta(carrito(), turno.model_copy(update={"status": ShiftStatus.CLOSED}))
        assert gateway_memoria.transactions == {}

    def test_carrito_vacio_o_pago_negativo(self):
        with pytest.raises(ValidationError):
            VentaCreate(items=[], payment_method="cash")
        with pytest.raises(ValidationError):
            carrito(payments=[{"method": "cash", "amount": -1}])

    def test_listar_por_turno(self, gateway_memoria, turno):
        servicio = VentaService(gateway_memoria)
        servicio.registrar_venta(carrito(), turno)
        servicio.registrar_venta(carrito(), turno.model_copy(update={"id": "turno-2"}))

        assert len(servicio.listar_ventas()) == 2
        assert [v.shift_id for v in servicio.listar_ventas("turno-2")] == ["turno-2"]
