# ==============================================================================
# INTERFACES - Contratos entre capas
# ==============================================================================
# Los servicios dependen de estos protocolos, no de implementaciones:
# en tests se reemplazan por dobles sin red ni disco.
# ==============================================================================

from typing import Any, Dict, Optional, Protocol, runtime_checkable

from pos_sync.models import MutationAction, Outcome


@runtime_checkable
class ISnapshotRepository(Protocol):
    """Slot persistente del snapshot local."""

    def load(self) -> Optional[Dict[str, Any]]:
        """Snapshot crudo o None."""
        ...

    def save(self, data: Dict[str, Any]) -> None:
        """Reemplaza el snapshot."""
        ...


@runtime_checkable
class IMutationSender(Protocol):
    """Quien entrega una mutación al endpoint remoto."""

    def send_mutation(self, action: MutationAction, collection: str, payload: Dict[str, Any]) -> Outcome:
        ...


@runtime_checkable
class IWriteQueue(Protocol):
    """Cola de salida de mutaciones."""

    def enqueue(self, action: MutationAction, collection: str, payload: Dict[str, Any]) -> Outcome:
        ...
