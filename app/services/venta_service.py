# Archivo: app/services/venta_service.py
import logging
import uuid
from typing import List, Optional

from app.core.exceptions import SinTurnoAbiertoException
from app.schemas import caja_schema, venta_schema
from app.schemas.caja_schema import ShiftStatus, utc_now
from app.services.gateway_caja import CajaGateway

logger = logging.getLogger(__name__)


class VentaService:
    def __init__(self, gateway: CajaGateway):
        self.gateway = gateway

    # -------------------------------------------------------------------------
    # 1. COBRAR (solo con caja abierta)
    # -------------------------------------------------------------------------
    def registrar_venta(
        self,
        venta_in: venta_schema.VentaCreate,
        turno_activo: Optional[caja_schema.CashShift],
    ) -> caja_schema.Transaction:
        if turno_activo is None or turno_activo.status != ShiftStatus.OPEN:
            raise SinTurnoAbiertoException("Abre la caja antes de vender.")

        total = round(sum(i.price * i.quantity for i in venta_in.items), 2)

        venta = caja_schema.Transaction(
            id=str(uuid.uuid4()),
            date=utc_now(),
            items=[i.model_dump(by_alias=True) for i in venta_in.items],
            subtotal=total,
            tax=0.0,
            discount=0.0,
            total=total,
            payment_method=venta_in.payment_method,
            payments=venta_in.payments,
            shift_id=turno_activo.id,
        )
        self.gateway.save_transaction(venta)
        logger.info("Venta %s por %.2f en turno %s", venta.id, total, turno_activo.id)
        return venta

    # -------------------------------------------------------------------------
    # 2. LISTAR
    # -------------------------------------------------------------------------
    def listar_ventas(self, shift_id: Optional[str] = None) -> List[caja_schema.Transaction]:
        ventas = self.gateway.get_transactions()
        if shift_id:
            ventas = [v for v in ventas if v.shift_id == shift_id]
        return ventas
