# Archivo: app/core/exceptions.py
# Este archivo define las excepciones personalizadas para una gestión de errores limpia y centralizada.

class AppBaseException(Exception):
    """Clase base para todas las excepciones de la aplicación."""
    def __init__(self, detail: str = "Ocurrió un error inesperado en la aplicación."):
        self.detail = detail
        super().__init__(self.detail)

# Excepciones de la Capa de Base de Datos (DB)
class DBServiceException(AppBaseException):
    """Excepción para errores de base de datos o transacciones."""
    pass

class DuplicateEntryException(DBServiceException):
    """Excepción lanzada cuando se intenta crear un registro duplicado."""
    pass

class PersistenciaException(DBServiceException):
    """Falló una lectura o escritura remota (turnos, movimientos, ventas)."""
    pass

class MovimientoDuplicadoException(DuplicateEntryException):
    """Los movimientos solo se insertan: un ID repetido se rechaza."""
    def __init__(self, movement_id: str):
        super().__init__(detail=f"El movimiento {movement_id} ya fue registrado.")

# Excepciones de la Capa de Servicio/Lógica de Negocio
class CajaServiceException(AppBaseException):
    """Errores de validación del control de caja. Nunca modifican estado."""
    pass

class MontoInvalidoException(CajaServiceException):
    def __init__(self, detail: str = "Por favor, ingresa un monto válido."):
        super().__init__(detail)

class TurnoYaAbiertoException(CajaServiceException):
    def __init__(self, detail: str = "Ya existe un turno de caja abierto."):
        super().__init__(detail)

class SinTurnoAbiertoException(CajaServiceException):
    def __init__(self, detail: str = "No hay un turno de caja abierto."):
        super().__init__(detail)

class FondosInsuficientesException(CajaServiceException):
    """Un retiro dejaría la caja en negativo."""
    pass
