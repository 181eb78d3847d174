# ==============================================================================
# REPOSITORIO BASE - Acceso a un archivo JSON con escritura atómica
# ==============================================================================

import json
import os
import threading
from abc import ABC, abstractmethod
from typing import Any


class BaseRepository(ABC):
    """
    Clase base abstracta para repositorios respaldados por un archivo JSON.

    Escribe primero a un archivo temporal y luego reemplaza el original,
    así un corte de luz a mitad de escritura no deja el archivo corrupto.
    """

    # Lock global para evitar escrituras concurrentes a archivos
    _file_lock = threading.RLock()

    def __init__(self, file_path: str):
        """
        Args:
            file_path: Ruta absoluta al archivo JSON de datos
        """
        self.file_path = file_path

    @abstractmethod
    def _empty_data(self) -> Any:
        """Estructura vacía para este repositorio."""
        pass

    def exists(self) -> bool:
        return os.path.exists(self.file_path)

    def _read_raw(self) -> Any:
        """
        Lee los datos crudos del archivo JSON.

        Returns:
            Datos parseados, o la estructura vacía si el archivo no existe
            o está corrupto (JSON inválido o bytes que no son UTF-8)
        """
        with self._file_lock:
            try:
                with open(self.file_path, 'r', encoding='utf-8') as f:
                    return json.load(f)
            except (ValueError, FileNotFoundError):
                # ValueError cubre JSONDecodeError y UnicodeDecodeError
                return self._empty_data()

    def _write_raw(self, data: Any) -> None:
        """
        Escribe datos al archivo JSON.

        Raises:
            OSError: Si hay error de escritura
        """
        with self._file_lock:
            directory = os.path.dirname(self.file_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            temp_path = self.file_path + '.tmp'
            try:
                with open(temp_path, 'w', encoding='utf-8') as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                os.replace(temp_path, self.file_path)
            except Exception:
                # Limpiar archivo temporal si algo falla
                if os.path.exists(temp_path):
                    os.remove(temp_path)
                raise
