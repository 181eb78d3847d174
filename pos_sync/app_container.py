# ==============================================================================
# CONTENEDOR DE DEPENDENCIAS - Inyección de servicios
# ==============================================================================
# Raíz de la aplicación: crea una sola vez el store local, el cliente remoto,
# la cola de escritura y los servicios, y los inyecta entre sí.
# Nada de esto vive en variables globales de módulo.
#
# Facilita:
#   - Testing (se pasa una configuración con otra carpeta de datos)
#   - Cambiar el endpoint remoto sin tocar los servicios
# ==============================================================================

import atexit
import os
from typing import Optional

from pos_sync.config import SyncSettings
from pos_sync.models import AppData

# ═══════════════════════════════════════════════════════════════════════════════
# REPOSITORIOS - Persistencia local
# ═══════════════════════════════════════════════════════════════════════════════
from pos_sync.repositories import LocalCacheStore, SnapshotRepository, demo_data

# ═══════════════════════════════════════════════════════════════════════════════
# SERVICIOS - Sincronización y lógica de negocio
# ═══════════════════════════════════════════════════════════════════════════════
from pos_sync.services import (
    AuthService,
    RemoteSyncClient,
    StockCountService,
    TransactionService,
    WriteQueue,
)
from pos_sync.sync_logger import log_sync_event


class AppContainer:
    """
    Contenedor de dependencias de la aplicación.

    Implementa el patrón Singleton para asegurar una única instancia
    del store y de la cola de escritura en todo el proceso.

    Uso:
        container = AppContainer(settings=SyncSettings.from_env())
        container.bootstrap()
        result = container.transaction_service.checkout(cart)
    """

    _instance: Optional['AppContainer'] = None

    def __new__(cls, settings: SyncSettings = None):
        """Singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, settings: SyncSettings = None):
        """
        Args:
            settings: Configuración (por defecto, desde variables de entorno)
        """
        if self._initialized:
            return

        self.settings = settings or SyncSettings.from_env()

        # Inicialización perezosa
        self._snapshot_repo: Optional[SnapshotRepository] = None
        self._store: Optional[LocalCacheStore] = None
        self._sync_client: Optional[RemoteSyncClient] = None
        self._write_queue: Optional[WriteQueue] = None
        self._transaction_service: Optional[TransactionService] = None
        self._auth_service: Optional[AuthService] = None
        self._stock_count_service: Optional[StockCountService] = None

        self._initialized = True

    # =========================================================================
    # REPOSITORIOS
    # =========================================================================

    @property
    def snapshot_repo(self) -> SnapshotRepository:
        """Slot persistente del snapshot (singleton)."""
        if self._snapshot_repo is None:
            self._snapshot_repo = SnapshotRepository(self.settings.data_dir)
        return self._snapshot_repo

    @property
    def store(self) -> LocalCacheStore:
        """Store local (singleton). En modo desarrollo arranca con datos demo."""
        if self._store is None:
            initial = AppData() if self.settings.production_mode else demo_data()
            self._store = LocalCacheStore(self.snapshot_repo, initial=initial)
        return self._store

    # =========================================================================
    # SERVICIOS
    # =========================================================================

    @property
    def sync_client(self) -> RemoteSyncClient:
        """Cliente del endpoint remoto (singleton)."""
        if self._sync_client is None:
            self._sync_client = RemoteSyncClient(
                self.store,
                remote_url=self.settings.remote_url,
                read_timeout=self.settings.read_timeout,
                max_retries=self.settings.max_retries,
                retry_backoff=self.settings.retry_backoff,
                observe_writes=self.settings.observe_writes,
            )
        return self._sync_client

    @property
    def write_queue(self) -> WriteQueue:
        """Cola de escritura compartida por todo el proceso (singleton)."""
        if self._write_queue is None:
            self._write_queue = WriteQueue(self.sync_client, delay=self.settings.write_delay)
        return self._write_queue

    @property
    def transaction_service(self) -> TransactionService:
        """Orquestador de transacciones (singleton)."""
        if self._transaction_service is None:
            self._transaction_service = TransactionService(
                self.store,
                self.write_queue,
                stock_policy=self.settings.stock_policy,
                purchase_increases_stock=self.settings.purchase_increases_stock,
            )
        return self._transaction_service

    @property
    def auth_service(self) -> AuthService:
        if self._auth_service is None:
            self._auth_service = AuthService(self.store)
        return self._auth_service

    @property
    def stock_count_service(self) -> StockCountService:
        if self._stock_count_service is None:
            self._stock_count_service = StockCountService(self.store)
        return self._stock_count_service

    # =========================================================================
    # CICLO DE VIDA
    # =========================================================================

    def bootstrap(self, sync: bool = True) -> AppData:
        """
        Arranque: primero el snapshot persistido (sin red), luego la nube.

        Args:
            sync: False para no llamar al endpoint (tests, modo offline forzado)

        Returns:
            Snapshot con el que arranca la app
        """
        os.makedirs(self.settings.data_dir, exist_ok=True)
        if self.store.load_persisted():
            log_sync_event('SISTEMA', "Arranque con snapshot local")
        if sync:
            return self.sync_client.fetch_snapshot()
        return self.store.snapshot()

    def shutdown(self, timeout: float = 5.0) -> None:
        """Vacía la cola de escritura antes de cerrar."""
        if self._write_queue is not None:
            self._write_queue.stop(timeout)

    def reset(self) -> None:
        """Reinicia todas las instancias (útil para testing)."""
        self._snapshot_repo = None
        self._store = None
        self._sync_client = None
        self._write_queue = None
        self._transaction_service = None
        self._auth_service = None
        self._stock_count_service = None

    @classmethod
    def get_instance(cls, settings: SyncSettings = None) -> 'AppContainer':
        """
        Obtiene la instancia singleton del contenedor.

        Args:
            settings: Configuración (solo se usa en la primera llamada)
        """
        if cls._instance is None:
            return cls(settings)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Elimina la instancia singleton (útil para tests)."""
        if cls._instance is not None:
            cls._instance.shutdown(timeout=1.0)
            cls._instance.reset()
            cls._instance = None


def get_container(settings: SyncSettings = None) -> AppContainer:
    """Obtiene el contenedor de dependencias global."""
    return AppContainer.get_instance(settings)


# Vaciar la cola de escritura al cerrar el proceso
@atexit.register
def _flush_write_queue():
    if AppContainer._instance is not None:
        AppContainer._instance.shutdown()
