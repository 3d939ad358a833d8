# Archivo: app/schemas/venta_schema.py
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import List, Optional

from app.schemas.caja_schema import Pago

# --- INPUT: LÍNEA DEL CARRITO ---
class LineaCarrito(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: str
    name: str = ""
    price: float = Field(..., ge=0)
    quantity: int = Field(1, ge=1)
    selected_variant_id: Optional[str] = None

# --- INPUT: COBRAR EL CARRITO ---
class VentaCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    items: List[LineaCarrito] = Field(..., min_length=1)
    payment_method: str = Field(..., min_length=1, description="cash, card, yape...")
    # Pago dividido: [{method, amount}]. Si viene, manda sobre payment_method
    payments: Optional[List[Pago]] = None

    @field_validator('payments')
    def pagos_no_negativos(cls, v):
        if v is not None and any(p.amount < 0 for p in v):
            raise ValueError('Los montos de pago no pueden ser negativos')
        return v
