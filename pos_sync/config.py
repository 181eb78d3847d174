# ==============================================================================
# CONFIGURACIÓN - Variables de entorno
# ==============================================================================
# Comando de ejemplo:
#   export POS_SYNC_REMOTE_URL="https://script.google.com/macros/s/.../exec"
#   export POS_SYNC_DATA_DIR="/var/lib/pos_sync"
#
# Sin POS_SYNC_REMOTE_URL la app funciona en MODO OFFLINE.
# ==============================================================================

import os
from dataclasses import dataclass

from pos_sync.models import StockPolicy


def _bool_env(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


def _float_env(name: str, default: float, low: float, high: float) -> float:
    """Lee un float y lo limita al rango permitido."""
    try:
        value = float(os.environ.get(name, default))
    except ValueError:
        value = default
    return min(high, max(low, value))


def _int_env(name: str, default: int, low: int, high: int) -> int:
    try:
        value = int(os.environ.get(name, default))
    except ValueError:
        value = default
    return min(high, max(low, value))


def _stock_policy(raw: str) -> StockPolicy:
    try:
        return StockPolicy(raw.strip().lower())
    except ValueError:
        return StockPolicy.CLAMP


_DEFAULT_SECRET = 'pos_sync_dev_secret_key_change_in_production'


@dataclass(frozen=True)
class SyncSettings:
    """
    Configuración del núcleo de sincronización.

    Attributes:
        remote_url: Endpoint único (GET snapshot / POST mutaciones); vacío = offline
        data_dir: Carpeta del snapshot persistido
        read_timeout: Timeout de lectura en segundos (5-10)
        write_delay: Pausa entre escrituras encoladas en segundos (0.1-0.5)
        max_retries: Reintentos por escritura fallida
        retry_backoff: Espera base del backoff exponencial en segundos
        observe_writes: False = fire-and-forget (no se lee la respuesta)
        stock_policy: CLAMP (vende y deja stock en 0) o STRICT (rechaza)
        purchase_increases_stock: Si una compra suma stock a productos conocidos
        production_mode: True = sin datos demo
        secret_key: Clave de sesión de Flask
    """
    remote_url: str = ''
    data_dir: str = ''
    read_timeout: float = 8.0
    write_delay: float = 0.3
    max_retries: int = 2
    retry_backoff: float = 0.5
    observe_writes: bool = True
    stock_policy: StockPolicy = StockPolicy.CLAMP
    purchase_increases_stock: bool = True
    production_mode: bool = True
    secret_key: str = _DEFAULT_SECRET

    @staticmethod
    def from_env(base_path: str = None) -> 'SyncSettings':
        """
        Construye la configuración desde el entorno.

        Args:
            base_path: Carpeta por defecto para los datos si no hay POS_SYNC_DATA_DIR
        """
        base_path = base_path or os.path.dirname(os.path.abspath(__file__))
        return SyncSettings(
            remote_url=os.environ.get('POS_SYNC_REMOTE_URL', '').strip(),
            data_dir=os.environ.get('POS_SYNC_DATA_DIR') or os.path.join(base_path, 'data'),
            read_timeout=_float_env('POS_SYNC_READ_TIMEOUT', 8.0, 5.0, 10.0),
            write_delay=_float_env('POS_SYNC_WRITE_DELAY', 0.3, 0.1, 0.5),
            max_retries=_int_env('POS_SYNC_MAX_RETRIES', 2, 0, 5),
            retry_backoff=_float_env('POS_SYNC_RETRY_BACKOFF', 0.5, 0.0, 10.0),
            observe_writes=_bool_env('POS_SYNC_OBSERVE_WRITES', True),
            stock_policy=_stock_policy(os.environ.get('POS_SYNC_STOCK_POLICY', 'clamp')),
            purchase_increases_stock=_bool_env('POS_SYNC_PURCHASE_STOCK', True),
            production_mode=_bool_env('PRODUCTION_MODE', True),
            secret_key=os.environ.get('POS_SYNC_SECRET_KEY') or _DEFAULT_SECRET,
        )
