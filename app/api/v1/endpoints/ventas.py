from fastapi import APIRouter, Depends, HTTPException, status
from typing import List, Optional

from app.db import models
from app.services.caja_service import CajaService
from app.services.venta_service import VentaService
from app.services.gateway_caja import SqlCajaGateway
from app.schemas import caja_schema, venta_schema
from app.core.exceptions import PersistenciaException, SinTurnoAbiertoException
from app.core.deps import get_current_user, get_caja_service, get_gateway
from app.core.config import ROLES_ESCRITURA, ROLES_LECTURA

router = APIRouter(
    prefix="/ventas",
    tags=["Ventas POS"]
)

def get_venta_service(gateway: SqlCajaGateway = Depends(get_gateway)) -> VentaService:
    return VentaService(gateway)

@router.post("/", response_model=caja_schema.Transaction, status_code=status.HTTP_201_CREATED)
def cobrar_venta(
    venta: venta_schema.VentaCreate,
    servicio: VentaService = Depends(get_venta_service),
    caja: CajaService = Depends(get_caja_service),
    current_user: models.Profile = Depends(get_current_user)
):
    """Cobra el carrito. La venta queda asociada al turno abierto."""
    if current_user.role not in ROLES_ESCRITURA:
         raise HTTPException(status_code=403, detail="No tiene permisos para vender.")

    try:
        return servicio.registrar_venta(venta, caja.turno_activo)
    except SinTurnoAbiertoException as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.detail)
    except PersistenciaException as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.detail)

@router.get("/", response_model=List[caja_schema.Transaction])
def listar_ventas(
    shift_id: Optional[str] = None,
    servicio: VentaService = Depends(get_venta_service),
    current_user: models.Profile = Depends(get_current_user)
):
    if current_user.role not in ROLES_LECTURA:
         raise HTTPException(status_code=403, detail="Acceso denegado.")

    try:
        return servicio.listar_ventas(shift_id)
    except PersistenciaException as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.detail)
