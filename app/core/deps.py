from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.orm import Session
from app.db.database import get_db
from app.db import models
from app.core import security
from app.core.config import settings
from app.core.estado_local import EstadoLocal
from app.core.exceptions import PersistenciaException
from app.services.caja_service import CajaService
from app.services.gateway_caja import SqlCajaGateway

# Indica a FastAPI que el token viene del endpoint "/v1/login"
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/v1/login")

# Un solo estado local por proceso (equivale al almacenamiento del navegador)
estado_local = EstadoLocal(settings.ESTADO_LOCAL_PATH)

def get_estado_local() -> EstadoLocal:
    return estado_local

def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> models.Profile:
    """
    Dependencia que valida el token y devuelve el perfil actual.
    Si el token es falso o expiró, lanza error 401.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="No se pudieron validar las credenciales",
        headers={"WWW-Authenticate": "Bearer"},
    )
    
    try:
        # Decodificamos el token
        payload = security.decodificar_token(token)
        
        # Extraemos el ID del perfil (guardado como 'sub' en el token)
        user_id: str = payload.get("sub")
        if user_id is None:
            raise credentials_exception
    except JWTError:
        raise credentials_exception

    # Buscamos el perfil en la BD
    user = db.query(models.Profile).filter(models.Profile.id == user_id).first()
    
    if user is None:
        raise credentials_exception
        
    if not user.activo:
        raise HTTPException(status_code=400, detail="Usuario inactivo")
        
    return user

def es_demo(user: models.Profile) -> bool:
    return user.id == "test-user-demo" or (user.email or "").endswith("@demo.posgo")

def get_store_id(current_user: models.Profile = Depends(get_current_user)) -> str:
    """La tienda del perfil. Demos y perfiles sin tienda usan la plantilla demo."""
    if es_demo(current_user) or not current_user.store_id:
        return settings.DEMO_STORE_ID
    return current_user.store_id

def get_gateway(
    db: Session = Depends(get_db),
    store_id: str = Depends(get_store_id),
) -> SqlCajaGateway:
    return SqlCajaGateway(db, store_id)

def get_caja_service(
    gateway: SqlCajaGateway = Depends(get_gateway),
    estado: EstadoLocal = Depends(get_estado_local),
    current_user: models.Profile = Depends(get_current_user),
) -> CajaService:
    """Servicio de caja con los datos ya cargados."""
    servicio = CajaService(
        gateway,
        estado,
        clave_sesion=current_user.id,
        store_id=gateway.store_id,
        metodo_efectivo=settings.METODO_EFECTIVO,
        permitir_caja_negativa=settings.PERMITIR_CAJA_NEGATIVA,
        escritura_atomica=settings.ESCRITURA_ATOMICA,
    )
    try:
        servicio.refrescar()
    except PersistenciaException as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.detail)
    return servicio
