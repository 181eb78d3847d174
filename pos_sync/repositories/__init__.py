# ==============================================================================
# CAPA DE REPOSITORIOS - Acceso a datos locales
# ==============================================================================
# ESTRUCTURA:
# ├── interfaces.py          → Protocolos (contratos para dobles de test)
# ├── base.py                → Archivo JSON con escritura atómica
# ├── snapshot_repository.py → Slot persistente pos_sync_data.json
# └── cache_store.py         → Store en memoria de todas las colecciones
# ==============================================================================

from pos_sync.repositories.interfaces import (
    ISnapshotRepository,
    IMutationSender,
    IWriteQueue,
)
from pos_sync.repositories.base import BaseRepository
from pos_sync.repositories.snapshot_repository import SnapshotRepository
from pos_sync.repositories.cache_store import LocalCacheStore, demo_data

__all__ = [
    # Interfaces
    'ISnapshotRepository',
    'IMutationSender',
    'IWriteQueue',

    # Implementaciones
    'BaseRepository',
    'SnapshotRepository',
    'LocalCacheStore',
    'demo_data',
]
