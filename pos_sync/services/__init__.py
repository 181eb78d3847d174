# ==============================================================================
# CAPA DE SERVICIOS - Lógica de negocio y sincronización
# ==============================================================================
# ESTRUCTURA:
# ├── sync_client.py         → Lectura/escritura contra el endpoint remoto
# ├── write_queue.py         → Cola FIFO con pausa entre escrituras
# ├── transaction_service.py → Ventas, compras, stock y altas (optimista)
# ├── auth_service.py        → Login y navegación por rol
# └── stock_count_service.py → Conteo físico de inventario
# ==============================================================================

from pos_sync.services.sync_client import RemoteSyncClient, RemoteSyncError
from pos_sync.services.write_queue import Mutation, WriteQueue
from pos_sync.services.transaction_service import TransactionService
from pos_sync.services.auth_service import AuthService
from pos_sync.services.stock_count_service import StockCountService, StockCountSession

__all__ = [
    'RemoteSyncClient',
    'RemoteSyncError',
    'Mutation',
    'WriteQueue',
    'TransactionService',
    'AuthService',
    'StockCountService',
    'StockCountSession',
]
