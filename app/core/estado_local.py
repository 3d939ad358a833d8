# Archivo: app/core/estado_local.py
"""
Estado local (no remoto) de la sesión: token guardado y turno activo.

Equivale al almacenamiento local del navegador: lecturas síncronas, sin
esperar a la base de datos. Opcionalmente se refleja en un archivo JSON para
sobrevivir a un reinicio del proceso.
"""
import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

CLAVES = {
    "SESION": "posgo_session",
    "TURNO_ACTIVO": "posgo_active_shift",
}


class EstadoLocal:
    def __init__(self, path: Optional[str] = None):
        self._path = Path(path) if path else None
        self._lock = threading.Lock()
        self._datos: Dict[str, Any] = self._cargar()

    def _cargar(self) -> Dict[str, Any]:
        if not self._path or not self._path.exists():
            return {}
        try:
            return json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            # Igual que una sesión corrupta en el navegador: se empieza de cero
            logger.warning("Estado local ilegible en %s: %s", self._path, e)
            return {}

    def _volcar(self):
        if self._path:
            self._path.write_text(json.dumps(self._datos), encoding="utf-8")

    # --- Acceso genérico clave/valor ---
    def get(self, clave: str) -> Optional[Any]:
        with self._lock:
            return self._datos.get(clave)

    def set(self, clave: str, valor: Any):
        with self._lock:
            self._datos[clave] = valor
            self._volcar()

    def remove(self, clave: str):
        with self._lock:
            self._datos.pop(clave, None)
            self._volcar()

    # --- Sesión ---
    def guardar_sesion(self, clave_sesion: str, token: str):
        self.set(f"{CLAVES['SESION']}:{clave_sesion}", token)

    def obtener_sesion(self, clave_sesion: str) -> Optional[str]:
        return self.get(f"{CLAVES['SESION']}:{clave_sesion}")

    def limpiar_sesion(self, clave_sesion: str):
        """Cerrar sesión también olvida el turno activo."""
        self.remove(f"{CLAVES['SESION']}:{clave_sesion}")
        self.remove(f"{CLAVES['TURNO_ACTIVO']}:{clave_sesion}")

    # --- Turno activo (un slot por sesión) ---
    def get_active_shift_id(self, clave_sesion: str) -> Optional[str]:
        return self.get(f"{CLAVES['TURNO_ACTIVO']}:{clave_sesion}")

    def set_active_shift_id(self, clave_sesion: str, shift_id: Optional[str]):
        if shift_id:
            self.set(f"{CLAVES['TURNO_ACTIVO']}:{clave_sesion}", shift_id)
        else:
            self.remove(f"{CLAVES['TURNO_ACTIVO']}:{clave_sesion}")
