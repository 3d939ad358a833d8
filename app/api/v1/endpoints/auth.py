from datetime import timedelta
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm # Formulario estándar de Swagger
from sqlalchemy.orm import Session

from app.db.database import get_db
from app.db import models
from app.core import security
from app.core.deps import get_current_user, get_estado_local, get_store_id
from app.core.estado_local import EstadoLocal

router = APIRouter(tags=["Autenticación"])

@router.post("/login", response_model=None) # Retorna un JSON custom
def login_access_token(
    db: Session = Depends(get_db), 
    form_data: OAuth2PasswordRequestForm = Depends(),
    estado: EstadoLocal = Depends(get_estado_local)
):
    """
    OAuth2 compatible token login, get an access token for future requests.
    """
    # 1. Buscar perfil por email (username en el form)
    user = db.query(models.Profile).filter(models.Profile.email == form_data.username).first()
    
    # 2. Validar usuario y contraseña
    if not user or not security.verify_password(form_data.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Email o contraseña incorrectos",
            headers={"WWW-Authenticate": "Bearer"},
        )
    
    if not user.activo:
        raise HTTPException(status_code=400, detail="Usuario inactivo")

    # 3. Crear Token
    access_token_expires = timedelta(minutes=security.ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = security.create_access_token(
        data={"sub": str(user.id), "rol": user.role, "store_id": user.store_id},
        expires_delta=access_token_expires,
    )
    estado.guardar_sesion(user.id, access_token)

    # 4. Devolver respuesta estándar OAuth2
    # Además devolvemos datos del perfil para que el frontend sepa quién es
    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user_id": user.id,
        "email": user.email,
        "rol": user.role,
        "store_id": user.store_id
    }

@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(
    current_user: models.Profile = Depends(get_current_user),
    estado: EstadoLocal = Depends(get_estado_local)
):
    """Olvida la sesión guardada y el turno activo de este perfil."""
    estado.limpiar_sesion(current_user.id)

@router.get("/me")
def perfil_actual(
    current_user: models.Profile = Depends(get_current_user),
    store_id: str = Depends(get_store_id)
):
    return {
        "user_id": current_user.id,
        "email": current_user.email,
        "rol": current_user.role,
        "store_id": store_id
    }
