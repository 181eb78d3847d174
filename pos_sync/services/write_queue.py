# ==============================================================================
# COLA DE ESCRITURA - Mutaciones salientes hacia la nube
# ==============================================================================
# El endpoint remoto no soporta escrituras concurrentes ni transacciones,
# así que las mutaciones salen de a una:
#
# - FIFO, una sola petición en vuelo
# - Pausa fija entre peticiones (no saturar el endpoint)
# - enqueue() retorna de inmediato; nadie espera la entrega
# - Un único thread de escritura que arranca con el primer enqueue, termina
#   cuando la cola queda vacía y vuelve a arrancar con el siguiente
# - Un item que falla se registra y se descarta; la cola sigue
# ==============================================================================

import itertools
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from queue import Empty, Queue
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple

from pos_sync.models import MutationAction, Outcome
from pos_sync.repositories.interfaces import IMutationSender
from pos_sync.sync_logger import log_sync_event


@dataclass(frozen=True)
class Mutation:
    """Escritura pendiente hacia una hoja remota."""
    seq: int
    action: MutationAction
    collection: str
    payload: Dict[str, Any] = field(default_factory=dict)

    def describe(self) -> str:
        return f"#{self.seq} {self.action.value} {self.collection}"


class WriteQueue:
    """
    Cola de escritura con un thread de fondo (write-behind).

    Uso:
        queue = WriteQueue(sync_client, delay=0.3)
        queue.enqueue(MutationAction.CREATE, 'Sales', row)   # no bloquea
    """

    HISTORY_SIZE = 200

    def __init__(
        self,
        sender: IMutationSender,
        delay: float = 0.3,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Args:
            sender: Quien entrega cada mutación (RemoteSyncClient)
            delay: Pausa en segundos después de cada petición
            sleep: Función de espera (inyectable para tests)
        """
        self.sender = sender
        self.delay = delay
        self._sleep = sleep
        self._queue: Queue = Queue()
        self._lock = threading.Lock()
        self._writer_thread: Optional[threading.Thread] = None
        self._running = False
        self._idle = threading.Event()
        self._idle.set()
        self._seq = itertools.count(1)
        self.history: Deque[Tuple[Mutation, Outcome]] = deque(maxlen=self.HISTORY_SIZE)

    # =========================================================================
    # API PÚBLICA
    # =========================================================================

    def enqueue(self, action: MutationAction, collection: str, payload: Dict[str, Any]) -> Outcome:
        """
        Encola una mutación y retorna sin esperar la entrega.

        Returns:
            Outcome.QUEUED
        """
        mutation = Mutation(next(self._seq), MutationAction(action), collection, dict(payload))
        with self._lock:
            self._queue.put(mutation)
            self._idle.clear()
            self._start_writer()
        return Outcome.QUEUED

    def pending(self) -> int:
        """Cantidad de mutaciones esperando (sin contar la que está en vuelo)."""
        return self._queue.qsize()

    @property
    def is_running(self) -> bool:
        return self._running

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Bloquea hasta que la cola se vacíe y el thread termine.

        Returns:
            True si quedó vacía dentro del timeout
        """
        return self._idle.wait(timeout)

    def stop(self, timeout: float = 5.0) -> bool:
        """Espera a que se entreguen las mutaciones pendientes (al cerrar la app)."""
        drained = self.wait_idle(timeout)
        if not drained:
            log_sync_event('QUEUE', f"Cierre con {self.pending()} mutaciones sin enviar", level='WARNING')
        return drained

    def recent(self, limit: int = 20) -> List[Dict[str, Any]]:
        """Últimas mutaciones procesadas con su resultado (diagnóstico)."""
        items = list(self.history)[-limit:]
        return [
            {
                'seq': m.seq,
                'action': m.action.value,
                'sheet': m.collection,
                'outcome': outcome.value,
            }
            for m, outcome in items
        ]

    # =========================================================================
    # THREAD DE ESCRITURA
    # =========================================================================

    def _start_writer(self) -> None:
        """Inicia el thread de escritura si no está corriendo (llamar con lock)."""
        if not self._running:
            self._running = True
            self._writer_thread = threading.Thread(
                target=self._writer_loop, name='pos-sync-writer', daemon=True
            )
            self._writer_thread.start()

    def _writer_loop(self) -> None:
        """Procesa de a una mutación hasta vaciar la cola."""
        while True:
            with self._lock:
                try:
                    mutation = self._queue.get_nowait()
                except Empty:
                    self._running = False
                    self._idle.set()
                    return

            self._process(mutation)
            self._sleep(self.delay)

    def _process(self, mutation: Mutation) -> None:
        try:
            outcome = self.sender.send_mutation(mutation.action, mutation.collection, mutation.payload)
        except Exception as e:
            # Un item roto no bloquea los siguientes
            log_sync_event('QUEUE', f"Mutación {mutation.describe()} descartada: {e}", level='ERROR')
            outcome = Outcome.FAILED
        else:
            if outcome == Outcome.FAILED:
                log_sync_event('QUEUE', f"Mutación {mutation.describe()} descartada tras reintentos", level='WARNING')
            else:
                log_sync_event('QUEUE', f"Mutación {mutation.describe()}: {outcome.value}")
        self.history.append((mutation, outcome))
