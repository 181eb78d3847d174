# ==============================================================================
# STORE LOCAL - Caché en memoria de todas las colecciones
# ==============================================================================
# Es la fuente de verdad cuando la nube no responde.
#
# - Lecturas instantáneas desde memoria (se entregan copias)
# - Cada mutación es un único paso síncrono protegido por lock
# - replace_all() nunca vacía una colección con una lista vacía entrante
# - persist()/load_persisted() guardan y recuperan el snapshot en disco
# ==============================================================================

import copy
import threading
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Union

from pos_sync.models import (
    AppData,
    COLLECTIONS,
    Customer,
    ExternalApp,
    Product,
    Purchase,
    Sale,
    User,
    UserRole,
)
from pos_sync.models.normalizer import normalize_snapshot
from pos_sync.repositories.interfaces import ISnapshotRepository
from pos_sync.sync_logger import log_sync_event


def demo_data() -> AppData:
    """Datos iniciales para que la app no arranque vacía (modo desarrollo)."""
    return AppData(
        products=[
            Product('1', 'IPHONE 14 PRO MAX', Decimal('1200.00'), 10, 'PROD-001', 'Celulares'),
            Product('2', 'CARGADOR 20W ORIGINAL', Decimal('25.00'), 50, 'ACC-001', 'Accesorios'),
            Product('3', 'FORRO SILICONE CASE', Decimal('10.00'), 100, 'ACC-002', 'Accesorios'),
            Product('4', 'REDMI NOTE 12', Decimal('180.00'), 15, 'PROD-002', 'Celulares'),
            Product('5', 'MICA CERAMICA', Decimal('5.00'), 200, 'ACC-003', 'Accesorios'),
        ],
        customers=[
            Customer('V-12345678', 'Cliente Mostrador', phone='000-0000000'),
        ],
        users=[
            User('admin', 'Administrador', 'admin', UserRole.ADMIN, '123'),
            User('vendedor', 'Vendedor 1', 'vendedor', UserRole.SELLER, '123'),
        ],
    )


class LocalCacheStore:
    """
    Espejo en memoria del snapshot remoto.

    Se crea una sola vez en el AppContainer y se inyecta en los servicios;
    no hay estado global de módulo.
    """

    def __init__(
        self,
        snapshot_repo: Optional[ISnapshotRepository] = None,
        initial: Optional[AppData] = None
    ):
        """
        Args:
            snapshot_repo: Slot persistente (opcional)
            initial: Datos de arranque (por ejemplo demo_data())
        """
        self.snapshot_repo = snapshot_repo
        self._lock = threading.RLock()
        self._data = initial if initial is not None else AppData()

    @contextmanager
    def locked(self):
        """
        Retiene el lock del store durante una lectura-modificación-escritura.

        Uso:
            with store.locked():
                stock = store.get_product(pid).stock
                store.apply_stock_delta(pid, stock - 1)
        """
        with self._lock:
            yield self

    # =========================================================================
    # LECTURAS
    # =========================================================================

    def snapshot(self) -> AppData:
        """Copia completa e independiente del estado actual."""
        with self._lock:
            return copy.deepcopy(self._data)

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        with self._lock:
            return self._data.to_dict()

    def get_all(self, collection: str) -> List[Any]:
        with self._lock:
            return copy.deepcopy(getattr(self._data, collection))

    def get_product(self, product_id: str) -> Optional[Product]:
        with self._lock:
            product = self._find_product(product_id)
            return copy.copy(product) if product else None

    def get_customer(self, customer_id: str) -> Optional[Customer]:
        with self._lock:
            for customer in self._data.customers:
                if customer.id == customer_id:
                    return copy.copy(customer)
            return None

    def _find_product(self, product_id: str) -> Optional[Product]:
        for product in self._data.products:
            if product.id == product_id:
                return product
        return None

    # =========================================================================
    # REEMPLAZO COMPLETO
    # =========================================================================

    def replace_all(self, data: Union[AppData, Mapping[str, Optional[List[Any]]]]) -> List[str]:
        """
        Reemplaza las colecciones con un snapshot recién normalizado.

        Solo sobrescribe una colección si la lista entrante no está vacía:
        una respuesta parcial o un fallo transitorio nunca borra datos buenos.

        Returns:
            Nombres de las colecciones reemplazadas
        """
        if isinstance(data, AppData):
            incoming = {name: getattr(data, name) for name in COLLECTIONS}
        else:
            incoming = data

        replaced = []
        with self._lock:
            for name in COLLECTIONS:
                records = incoming.get(name)
                if records:
                    setattr(self._data, name, list(records))
                    replaced.append(name)
        return replaced

    # =========================================================================
    # MUTACIONES
    # =========================================================================

    def apply_stock_delta(self, product_id: str, new_stock: int) -> Optional[Product]:
        """
        Fija el stock de un producto, nunca por debajo de cero.

        Returns:
            Copia del producto actualizado, o None si no existe
        """
        with self._lock:
            product = self._find_product(product_id)
            if product is None:
                return None
            product.stock = max(0, int(new_stock))
            return copy.copy(product)

    def append_sale(self, sale: Sale) -> None:
        with self._lock:
            self._data.sales.append(sale)

    def append_purchase(self, purchase: Purchase) -> None:
        with self._lock:
            self._data.purchases.append(purchase)

    def upsert_customer(self, customer: Customer) -> bool:
        """
        Agrega el cliente si su id no existe.

        Returns:
            True si se insertó, False si ya existía
        """
        with self._lock:
            if any(c.id == customer.id for c in self._data.customers):
                return False
            self._data.customers.append(customer)
            return True

    def append_user(self, user: User) -> None:
        with self._lock:
            self._data.users.append(user)

    def append_app(self, app: ExternalApp) -> None:
        with self._lock:
            self._data.apps.append(app)

    def remove_app(self, app_id: str) -> bool:
        """Returns: True si la app existía."""
        with self._lock:
            before = len(self._data.apps)
            self._data.apps = [a for a in self._data.apps if a.id != app_id]
            return len(self._data.apps) != before

    # =========================================================================
    # PERSISTENCIA
    # =========================================================================

    def persist(self) -> bool:
        """
        Guarda el snapshot actual en el slot persistente.

        Returns:
            True si se guardó; un error de disco se registra y no se propaga
        """
        if self.snapshot_repo is None:
            return False
        data = self.to_dict()
        try:
            self.snapshot_repo.save(data)
        except OSError as e:
            log_sync_event('STORE', f"No se pudo guardar el snapshot local: {e}", level='ERROR')
            return False
        return True

    def load_persisted(self) -> bool:
        """
        Carga el snapshot persistido (se llama al arrancar, antes de la red).

        Returns:
            True si había un snapshot y se aplicó
        """
        if self.snapshot_repo is None:
            return False
        raw = self.snapshot_repo.load()
        if not raw:
            return False
        replaced = self.replace_all(normalize_snapshot(raw))
        log_sync_event('STORE', f"Snapshot local cargado: {', '.join(replaced) or 'sin datos'}")
        return bool(replaced)
