# ==============================================================================
# REPOSITORIO DE SNAPSHOT - Copia local persistida de todas las colecciones
# ==============================================================================
# Un único archivo <data_dir>/pos_sync_data.json con la misma forma que la
# respuesta GET del endpoint remoto:
#   {"products": [...], "sales": [...], "customers": [...], "users": [...],
#    "apps": [...], "purchases": [...]}
# ==============================================================================

import os
from typing import Any, Dict, Optional

from pos_sync.repositories.base import BaseRepository


class SnapshotRepository(BaseRepository):
    """Slot persistente para el último snapshot conocido."""

    # Espacio de nombres fijo del slot
    NAMESPACE = 'pos_sync_data'

    def __init__(self, data_dir: str):
        """
        Args:
            data_dir: Carpeta donde vive el archivo del snapshot
        """
        super().__init__(os.path.join(data_dir, self.NAMESPACE + '.json'))

    def _empty_data(self) -> Dict[str, Any]:
        return {}

    def load(self) -> Optional[Dict[str, Any]]:
        """
        Carga el snapshot persistido.

        Returns:
            Diccionario crudo, o None si no hay snapshot utilizable
        """
        if not self.exists():
            return None
        data = self._read_raw()
        if not isinstance(data, dict) or not data:
            return None
        return data

    def save(self, data: Dict[str, Any]) -> None:
        """Reemplaza el snapshot completo."""
        self._write_raw(data)
