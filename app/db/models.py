from sqlalchemy import Column, String, Integer, Numeric, DateTime, Boolean, ForeignKey, Index, JSON, Enum, text
from sqlalchemy.orm import relationship

# Importamos la Base del archivo de conexión
from .database import Base
from app.schemas.caja_schema import ShiftStatus, MovementType, utc_now

# ==============================================================================
# 🏪 TIENDAS Y PERFILES
# ==============================================================================

class Store(Base):
    """
    La tienda (tenant). Todos los registros de caja y ventas cuelgan de ella.
    La tienda demo usa el ID de plantilla 00000000-...
    """
    __tablename__ = 'stores'
    id = Column(String(36), primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    settings = Column(JSON, nullable=True) # moneda, nombre del ticket, etc.
    created_at = Column(DateTime, default=utc_now)

    profiles = relationship("Profile", back_populates="store")

class Profile(Base):
    """
    La entidad que se loguea. El rol y la tienda se leen de aquí.
    """
    __tablename__ = 'profiles'
    id = Column(String(36), primary_key=True, index=True)
    email = Column(String(100), unique=True, index=True, nullable=False)
    password_hash = Column(String(200), nullable=True)
    role = Column(String(20), nullable=False, default='cajero') # super_admin, admin, cajero, visual
    store_id = Column(String(36), ForeignKey('stores.id'), nullable=True)
    activo = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utc_now)

    store = relationship("Store", back_populates="profiles")

# ==============================================================================
# 💰 CONTROL DE CAJA
# ==============================================================================

class CashShift(Base):
    __tablename__ = 'shifts'
    __table_args__ = (
        # Un solo turno OPEN por tienda, garantizado por la BD
        Index(
            'uq_shift_open_por_tienda', 'store_id',
            unique=True,
            sqlite_where=text("status = 'OPEN'"),
            postgresql_where=text("status = 'OPEN'"),
        ),
        Index('ix_shift_store_inicio', 'store_id', 'start_time'),
    )
    id = Column(String(36), primary_key=True, index=True)
    store_id = Column(String(36), ForeignKey('stores.id'), nullable=False)

    start_time = Column(DateTime, nullable=False)
    start_amount = Column(Numeric(10, 2), nullable=False, default=0.00)
    end_time = Column(DateTime, nullable=True)
    end_amount = Column(Numeric(10, 2), nullable=True)
    status = Column(Enum(ShiftStatus), nullable=False, default=ShiftStatus.OPEN)

    # Cache opcional: la verdad sale de movimientos + ventas
    total_sales_cash = Column(Numeric(10, 2), default=0.00)
    total_sales_digital = Column(Numeric(10, 2), default=0.00)

class CashMovement(Base):
    """Solo inserción: nunca se edita ni se borra."""
    __tablename__ = 'movements'
    __table_args__ = (
        Index('ix_movement_store_fecha', 'store_id', 'timestamp'),
        # Orden de inserción dentro de la tienda (desempate de movimientos con la misma hora)
        Index('uq_movement_store_secuencia', 'store_id', 'secuencia', unique=True),
    )
    id = Column(String(36), primary_key=True, index=True)
    store_id = Column(String(36), ForeignKey('stores.id'), nullable=False)
    shift_id = Column(String(36), ForeignKey('shifts.id'), nullable=False, index=True)

    type = Column(Enum(MovementType), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False, default=0.00)
    description = Column(String(255), nullable=True)
    timestamp = Column(DateTime, nullable=False, default=utc_now)
    secuencia = Column(Integer, nullable=False)

# ==============================================================================
# 🛒 VENTAS (solo lectura para la caja)
# ==============================================================================

class Transaction(Base):
    __tablename__ = 'transactions'
    __table_args__ = (
        Index('ix_transaction_store_fecha', 'store_id', 'date'),
    )
    id = Column(String(36), primary_key=True, index=True)
    store_id = Column(String(36), ForeignKey('stores.id'), nullable=False)
    shift_id = Column(String(36), ForeignKey('shifts.id'), nullable=True, index=True)

    date = Column(DateTime, nullable=False, default=utc_now)
    items = Column(JSON, nullable=False, default=list) # Líneas del carrito
    subtotal = Column(Numeric(10, 2), default=0.00)
    tax = Column(Numeric(10, 2), default=0.00)
    discount = Column(Numeric(10, 2), default=0.00)
    total = Column(Numeric(10, 2), nullable=False, default=0.00)
    payment_method = Column(String(20), nullable=True)
    payments = Column(JSON, nullable=True) # [{method, amount}] para pagos divididos
