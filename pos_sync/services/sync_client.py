# ==============================================================================
# CLIENTE DE SINCRONIZACIÓN REMOTA
# ==============================================================================
# Habla con el único endpoint externo (hoja de cálculo publicada como API):
#   GET  → snapshot completo {products, sales, customers, users, apps}
#   POST → mutación {action, sheet, data} enviada como text/plain
#
# REGLAS:
# - Nunca lanza excepciones hacia quien llama
# - Lectura fallida (timeout, HTTP != 2xx, HTML en vez de JSON) → se devuelve
#   el store local sin cambios
# - Escritura fallida → se reintenta con backoff y se reporta como Outcome
# - HTTP 404 en la lectura activa el MODO OFFLINE (endpoint inexistente)
# ==============================================================================

import json
import time
from typing import Any, Callable, Dict, Optional

import requests

from pos_sync.models import AppData, MutationAction, Outcome, PosSyncError
from pos_sync.models.normalizer import normalize_snapshot
from pos_sync.repositories.cache_store import LocalCacheStore
from pos_sync.sync_logger import log_sync_event, profile_function


class RemoteSyncError(PosSyncError):
    """Fallo de lectura remota. No sale de este módulo."""
    pass


class RemoteSyncClient:
    """
    Cliente HTTP del endpoint remoto.

    Uso:
        client = RemoteSyncClient(store, remote_url='https://...')
        data = client.fetch_snapshot()
        outcome = client.send_mutation(MutationAction.CREATE, 'Sales', row)
    """

    # Firmas de una página de error HTML devuelta con status 200
    HTML_SIGNATURES = ('<!doctype html', '<html')

    def __init__(
        self,
        store: LocalCacheStore,
        remote_url: str = '',
        read_timeout: float = 8.0,
        max_retries: int = 2,
        retry_backoff: float = 0.5,
        observe_writes: bool = True,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Args:
            store: Store local que se actualiza con cada lectura exitosa
            remote_url: URL del endpoint; vacía = modo offline
            read_timeout: Timeout en segundos (también se aplica a escrituras)
            max_retries: Reintentos por escritura fallida
            retry_backoff: Espera base del backoff exponencial
            observe_writes: False = fire-and-forget, no se lee la respuesta
            session: Sesión de requests (inyectable para tests)
            sleep: Función de espera (inyectable para tests)
        """
        self.store = store
        self.remote_url = remote_url
        self.read_timeout = read_timeout
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff
        self.observe_writes = observe_writes
        self.session = session or requests.Session()
        self._sleep = sleep
        self.offline = not remote_url

    def go_online(self) -> bool:
        """Sale del modo offline si hay URL configurada."""
        self.offline = not self.remote_url
        return not self.offline

    # =========================================================================
    # LECTURA
    # =========================================================================

    @profile_function(name='Descargar snapshot')
    def fetch_snapshot(self) -> AppData:
        """
        Descarga el snapshot remoto y lo aplica al store.

        Returns:
            Contenido del store después de la lectura. Si la lectura falla,
            el contenido previo sin cambios.
        """
        if self.offline:
            log_sync_event('SYNC', "Modo offline: usando datos locales")
            return self.store.snapshot()

        log_sync_event('SYNC', "Sincronizando datos...")
        try:
            payload = self._read_payload()
        except RemoteSyncError as e:
            log_sync_event('SYNC', f"No se pudo leer la nube, usando datos locales: {e}", level='WARNING')
            return self.store.snapshot()

        replaced = self.store.replace_all(normalize_snapshot(payload))
        self.store.persist()
        log_sync_event('SYNC', f"Datos sincronizados: {', '.join(replaced) or 'sin cambios'}")
        return self.store.snapshot()

    def _read_payload(self) -> Dict[str, Any]:
        """
        GET al endpoint con timeout acotado.

        Raises:
            RemoteSyncError: Por cualquier respuesta no utilizable
        """
        try:
            response = self.session.get(self.remote_url, timeout=self.read_timeout, allow_redirects=True)
        except requests.Timeout as e:
            raise RemoteSyncError(f"Timeout de {self.read_timeout:.0f}s") from e
        except requests.RequestException as e:
            raise RemoteSyncError(f"Error de red: {e}") from e

        if response.status_code == 404:
            self.offline = True
            raise RemoteSyncError("HTTP 404, activando MODO OFFLINE")
        if not 200 <= response.status_code < 300:
            raise RemoteSyncError(f"HTTP {response.status_code}")

        text = response.text or ''
        if self._looks_like_html(text):
            raise RemoteSyncError("El endpoint devolvió HTML en lugar de JSON")
        try:
            payload = json.loads(text)
        except ValueError as e:
            raise RemoteSyncError(f"Respuesta JSON inválida: {e}") from e
        if not isinstance(payload, dict):
            raise RemoteSyncError("Respuesta JSON sin estructura de objeto")
        return payload

    @classmethod
    def _looks_like_html(cls, text: str) -> bool:
        head = text.lstrip()[:64].lower()
        return head.startswith(cls.HTML_SIGNATURES)

    # =========================================================================
    # ESCRITURA
    # =========================================================================

    @profile_function(name='Enviar mutación')
    def send_mutation(self, action: MutationAction, collection: str, payload: Dict[str, Any]) -> Outcome:
        """
        Envía una mutación al endpoint. Nunca lanza.

        Args:
            action: create, updateStock o delete
            collection: Nombre de la hoja remota (Sales, Products, ...)
            payload: Fila a escribir

        Returns:
            DELIVERED, DELIVERY_UNKNOWN, FAILED u OFFLINE
        """
        action = MutationAction(action)
        if self.offline:
            log_sync_event('SYNC', f"[Offline] Acción simulada: {action.value} en {collection}")
            return Outcome.OFFLINE

        body = json.dumps(
            {'action': action.value, 'sheet': collection, 'data': payload},
            ensure_ascii=False,
            default=str,
        )
        attempts = self.max_retries + 1
        error = ''

        for attempt in range(1, attempts + 1):
            try:
                # text/plain evita el preflight del endpoint
                response = self.session.post(
                    self.remote_url,
                    data=body.encode('utf-8'),
                    headers={'Content-Type': 'text/plain;charset=utf-8'},
                    timeout=self.read_timeout,
                )
            except requests.RequestException as e:
                error = f"Error de red: {e}"
            else:
                if not self.observe_writes:
                    return Outcome.DELIVERY_UNKNOWN
                if 200 <= response.status_code < 300:
                    return Outcome.DELIVERED
                error = f"HTTP {response.status_code}"
                if response.status_code < 500 and response.status_code != 429:
                    break

            if attempt < attempts:
                self._sleep(self.retry_backoff * (2 ** (attempt - 1)))

        log_sync_event('SYNC', f"Falló sync con nube ({action.value} en {collection}): {error}", level='WARNING')
        return Outcome.FAILED
