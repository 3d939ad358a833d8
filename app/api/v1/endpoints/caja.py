from fastapi import APIRouter, Depends, HTTPException, status
from typing import List, Optional

from app.db import models
from app.services.caja_service import CajaService
from app.schemas import caja_schema
from app.core.exceptions import (
    CajaServiceException,
    PersistenciaException,
    SinTurnoAbiertoException,
    TurnoYaAbiertoException,
)

# SEGURIDAD
from app.core.deps import get_current_user, get_caja_service
from app.core.config import ROLES_LECTURA, ROLES_ESCRITURA, ROLES_ADMIN

router = APIRouter(
    prefix="/caja",
    tags=["Control de Caja (Turnos)"]
)

@router.get("/estado", response_model=caja_schema.EstadoCaja)
def ver_estado_caja(
    servicio: CajaService = Depends(get_caja_service),
    current_user: models.Profile = Depends(get_current_user)
):
    """
    Arqueo rápido: turno abierto, efectivo que debe haber en el cajón,
    cobros digitales y los últimos 3 movimientos.
    """
    if current_user.role not in ROLES_LECTURA:
         raise HTTPException(status_code=403, detail="Acceso denegado.")

    return servicio.estado_caja()

@router.post("/acciones", response_model=caja_schema.ResultadoAccion)
def ejecutar_accion_caja(
    accion: caja_schema.AccionCajaRequest,
    servicio: CajaService = Depends(get_caja_service),
    current_user: models.Profile = Depends(get_current_user)
):
    """
    Abrir (OPEN), cerrar (CLOSE), ingresar (IN) o retirar (OUT) efectivo.
    Si falla el guardado se responde igual, con el campo 'error' lleno.
    """
    if current_user.role not in ROLES_ESCRITURA:
         raise HTTPException(status_code=403, detail="No tiene permisos para operar la caja.")

    try:
        return servicio.ejecutar_accion(accion.action, accion.amount, accion.description)
    except (TurnoYaAbiertoException, SinTurnoAbiertoException) as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.detail)
    except CajaServiceException as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.detail)
    except PersistenciaException as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.detail)

@router.get("/turnos", response_model=List[caja_schema.TurnoResumen])
def ver_historial_turnos(
    servicio: CajaService = Depends(get_caja_service),
    current_user: models.Profile = Depends(get_current_user)
):
    """Historial de turnos con totales y diferencia al cierre."""
    if current_user.role not in ROLES_ADMIN:
         raise HTTPException(status_code=403, detail="Se requiere nivel Administrativo.")

    return servicio.historial_turnos()

@router.get("/movimientos", response_model=List[caja_schema.CashMovement])
def ver_movimientos(
    shift_id: Optional[str] = None,
    servicio: CajaService = Depends(get_caja_service),
    current_user: models.Profile = Depends(get_current_user)
):
    """Libro de movimientos de un turno (por defecto el abierto), del más reciente al más antiguo."""
    if current_user.role not in ROLES_LECTURA:
         raise HTTPException(status_code=403, detail="Acceso denegado.")

    return servicio.movimientos_de_turno(shift_id)
