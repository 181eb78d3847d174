# ==============================================================================
# SERVICIO DE TRANSACCIONES - Ventas, compras y altas con actualización optimista
# ==============================================================================
# Cada operación sigue el mismo patrón:
#   1. Validar (si falla: no se toca nada y se retorna {'ok': False, 'error'})
#   2. Aplicar el cambio en el store local (la UI lo ve de inmediato)
#   3. Encolar las mutaciones remotas (nadie espera su entrega)
#
# Flujo de una venta:
#   BUILDING → SUBMITTED → LOCALLY_COMMITTED → REMOTE_QUEUED → DONE
# No hay estado "confirmado en la nube": la entrega no se espera.
# ==============================================================================

import threading
import time
from collections import OrderedDict
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Mapping, Optional

from pos_sync.models import (
    Customer,
    ExternalApp,
    MutationAction,
    Outcome,
    PaymentType,
    Purchase,
    PurchaseItem,
    Sale,
    SaleItem,
    SaleState,
    SHEET_APPS,
    SHEET_CUSTOMERS,
    SHEET_PRODUCTS,
    SHEET_PURCHASES,
    SHEET_SALES,
    SHEET_USERS,
    StockPolicy,
    User,
)
from pos_sync.models.normalizer import normalize_role, parse_number
from pos_sync.repositories.cache_store import LocalCacheStore
from pos_sync.repositories.interfaces import IWriteQueue
from pos_sync.sync_logger import log_sync_event


DEFAULT_PAYMENT_METHOD = 'Efectivo $'


def _clean(value: Any) -> str:
    return str(value or '').strip()


def _quantity(value: Any) -> Optional[int]:
    """Entero exacto o None. Nunca trunca 2.9 a 2 ni convierte basura en 0."""
    if isinstance(value, bool):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if isinstance(value, (float, Decimal)) and number != value:
        return None
    return number


class TransactionService:
    """
    Orquestador de transacciones locales-luego-remotas.

    Responsabilidades:
    - Checkout de ventas (stock + venta + cliente nuevo)
    - Recepción de compras
    - Ajustes manuales de stock
    - Altas de clientes, usuarios y apps; baja de apps
    """

    def __init__(
        self,
        store: LocalCacheStore,
        write_queue: IWriteQueue,
        stock_policy: StockPolicy = StockPolicy.CLAMP,
        purchase_increases_stock: bool = True,
        clock: Callable[[], float] = time.time
    ):
        """
        Args:
            store: Store local (dueño de los datos)
            write_queue: Cola de mutaciones remotas
            stock_policy: CLAMP vende y deja stock en 0; STRICT rechaza
            purchase_increases_stock: Si una compra suma stock
            clock: Reloj para IDs (inyectable para tests)
        """
        self.store = store
        self.write_queue = write_queue
        self.stock_policy = stock_policy
        self.purchase_increases_stock = purchase_increases_stock
        self._clock = clock
        self._id_lock = threading.Lock()
        self._last_id = 0

    # =========================================================================
    # UTILIDADES
    # =========================================================================

    def _next_id(self) -> str:
        """ID derivado de la hora en milisegundos, único aunque se llame dos veces en el mismo ms."""
        with self._id_lock:
            candidate = int(self._clock() * 1000)
            if candidate <= self._last_id:
                candidate = self._last_id + 1
            self._last_id = candidate
            return str(candidate)

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()

    @staticmethod
    def _reject(error: str) -> Dict[str, Any]:
        log_sync_event('TRANSACCION', f"Operación rechazada: {error}")
        return {'ok': False, 'error': error, 'state': SaleState.REJECTED}

    def _enqueue(self, action: MutationAction, sheet: str, payload: Dict[str, Any]) -> Outcome:
        return self.write_queue.enqueue(action, sheet, payload)

    # =========================================================================
    # VENTAS
    # =========================================================================

    def checkout(
        self,
        cart: List[Mapping[str, Any]],
        payment_method: str = DEFAULT_PAYMENT_METHOD,
        payment_type: Any = PaymentType.CONTADO,
        customer: Optional[Mapping[str, Any]] = None,
        exchange_rate: Any = None
    ) -> Dict[str, Any]:
        """
        Registra una venta desde el carrito.

        Args:
            cart: Líneas [{'productId': str, 'quantity': int}, ...]
            payment_method: Texto libre (Efectivo $, Zelle, Pago Móvil...)
            payment_type: 'contado' o 'credito'
            customer: {'id', 'name', 'phone', 'email', 'address'} (opcional)
            exchange_rate: Tasa de cambio del día (opcional)

        Returns:
            Dict con resultado:
            - ok: True/False
            - error: mensaje si falló
            - sale: Sale creada
            - state: SaleState final
            - transitions: estados recorridos, de BUILDING a DONE
            - mutations: cantidad de mutaciones encoladas
            - outcome: Outcome.QUEUED
            - customer_created: si se dio de alta un cliente nuevo
        """
        # --- BUILDING: validaciones sin tocar el estado ---
        transitions = [SaleState.BUILDING]
        if not cart:
            return self._reject('El carrito está vacío')
        if not isinstance(cart, (list, tuple)) or not all(isinstance(line, Mapping) for line in cart):
            return self._reject('Formato de carrito inválido')

        try:
            raw_type = _clean(getattr(payment_type, 'value', payment_type)).lower().replace('é', 'e')
            payment_type = PaymentType(raw_type or 'contado')
        except ValueError:
            return self._reject('Tipo de pago inválido')

        customer = customer or {}
        if not isinstance(customer, Mapping):
            return self._reject('Datos del cliente inválidos')
        customer_id = _clean(customer.get('id'))
        customer_name = _clean(customer.get('name'))
        if payment_type == PaymentType.CREDITO and not customer_name:
            return self._reject('Para ventas a crédito debe indicar el nombre del cliente')

        # Lectura del stock, commit local y encolado en una sola sección crítica:
        # dos ventas simultáneas no pueden partir del mismo stock
        with self.store.locked():
            return self._commit_checkout(
                cart, payment_method, payment_type, customer, exchange_rate, transitions
            )

    def _commit_checkout(
        self,
        cart: List[Mapping[str, Any]],
        payment_method: str,
        payment_type: PaymentType,
        customer: Mapping[str, Any],
        exchange_rate: Any,
        transitions: List[SaleState]
    ) -> Dict[str, Any]:
        """Pasos SUBMITTED → DONE de checkout(). Se llama con el store bloqueado."""
        customer_id = _clean(customer.get('id'))
        customer_name = _clean(customer.get('name'))

        # --- SUBMITTED: construir líneas con el snapshot previo a la transacción ---
        transitions.append(SaleState.SUBMITTED)
        products = {p.id: p for p in self.store.snapshot().products}
        items = []
        sold = OrderedDict()
        errors = []

        for line in cart:
            pid = _clean(line.get('productId') or line.get('product_id'))
            qty = _quantity(line.get('quantity'))
            product = products.get(pid)
            if product is None:
                errors.append(f"Producto {pid} no encontrado")
                continue
            if qty is None or qty < 1:
                errors.append(f"Cantidad inválida para {product.name}")
                continue
            items.append(SaleItem(product.id, qty, product.price, product.name))
            sold[pid] = sold.get(pid, 0) + qty

        if errors:
            return self._reject('; '.join(errors))

        if self.stock_policy == StockPolicy.STRICT:
            short = [
                f"Stock insuficiente para {products[pid].name}. "
                f"Solicitado: {qty}, Disponible: {products[pid].stock}"
                for pid, qty in sold.items() if qty > products[pid].stock
            ]
            if short:
                return self._reject('; '.join(short))

        new_stocks = OrderedDict(
            (pid, max(0, products[pid].stock - qty)) for pid, qty in sold.items()
        )

        rate = parse_number(exchange_rate)
        sale = Sale(
            id=self._next_id(),
            date=self._now(),
            items=tuple(items),
            payment_method=_clean(payment_method) or DEFAULT_PAYMENT_METHOD,
            payment_type=payment_type,
            customer_id=customer_id or None,
            customer_name=customer_name or None,
            exchange_rate=rate if rate > 0 else None,
        )

        # --- LOCALLY_COMMITTED: todo en memoria antes de cualquier I/O ---
        for pid, stock in new_stocks.items():
            self.store.apply_stock_delta(pid, stock)
        self.store.append_sale(sale)

        new_customer = None
        if customer_id and customer_name:
            candidate = Customer(
                id=customer_id,
                name=customer_name,
                email=_clean(customer.get('email')),
                phone=_clean(customer.get('phone')),
                address=_clean(customer.get('address')),
            )
            if self.store.upsert_customer(candidate):
                new_customer = candidate
        self.store.persist()
        transitions.append(SaleState.LOCALLY_COMMITTED)

        # --- REMOTE_QUEUED: venta, stock por producto, cliente ---
        mutations = 0
        self._enqueue(MutationAction.CREATE, SHEET_SALES, sale.to_sheet_row())
        mutations += 1
        for pid, stock in new_stocks.items():
            self._enqueue(MutationAction.UPDATE_STOCK, SHEET_PRODUCTS, {'id': pid, 'stock': stock})
            mutations += 1
        if new_customer is not None:
            self._enqueue(MutationAction.CREATE, SHEET_CUSTOMERS, new_customer.to_dict())
            mutations += 1
        transitions.append(SaleState.REMOTE_QUEUED)
        transitions.append(SaleState.DONE)

        log_sync_event(
            'VENTA',
            f"Venta {sale.id} registrada: total {sale.total}, {mutations} mutaciones encoladas "
            f"({' → '.join(state.value for state in transitions)})"
        )
        return {
            'ok': True,
            'sale': sale,
            'state': SaleState.DONE,
            'transitions': list(transitions),
            'mutations': mutations,
            'outcome': Outcome.QUEUED,
            'customer_created': new_customer is not None,
        }

    # =========================================================================
    # COMPRAS
    # =========================================================================

    def record_purchase(self, supplier: str, items: List[Mapping[str, Any]]) -> Dict[str, Any]:
        """
        Registra la recepción de mercancía de un proveedor.

        Si purchase_increases_stock está activo, suma la cantidad recibida al
        stock de los productos que existen en el catálogo.

        Args:
            supplier: Nombre del proveedor
            items: Líneas [{'productId', 'quantity', 'cost', 'name'}, ...]

        Returns:
            Dict con ok, error, purchase, restocked {pid: stock}, mutations
        """
        supplier = _clean(supplier)
        if not items:
            return self._reject('Agregue al menos un producto a la compra')
        if not isinstance(items, (list, tuple)) or not all(isinstance(line, Mapping) for line in items):
            return self._reject('Formato de compra inválido')
        if not supplier:
            return self._reject('Indique el proveedor')

        lines = []
        for line in items:
            qty = _quantity(line.get('quantity'))
            name = _clean(line.get('name'))
            if qty is None or qty < 1:
                return self._reject(f"Cantidad inválida para {name or 'el producto'}")
            lines.append(PurchaseItem(
                product_id=_clean(line.get('productId') or line.get('product_id')),
                quantity=qty,
                cost=max(Decimal('0'), parse_number(line.get('cost'))),
                name=name,
            ))

        purchase = Purchase(id=self._next_id(), date=self._now(), supplier=supplier, items=tuple(lines))

        restocked = OrderedDict()
        mutations = 1
        with self.store.locked():
            if self.purchase_increases_stock:
                products = {p.id: p for p in self.store.snapshot().products}
                for item in lines:
                    product = products.get(item.product_id)
                    if product is None:
                        continue
                    current = restocked.get(item.product_id, product.stock)
                    restocked[item.product_id] = current + item.quantity

            self.store.append_purchase(purchase)
            for pid, stock in restocked.items():
                self.store.apply_stock_delta(pid, stock)
            self.store.persist()

            self._enqueue(MutationAction.CREATE, SHEET_PURCHASES, purchase.to_sheet_row())
            for pid, stock in restocked.items():
                self._enqueue(MutationAction.UPDATE_STOCK, SHEET_PRODUCTS, {'id': pid, 'stock': stock})
                mutations += 1

        log_sync_event('COMPRA', f"Compra {purchase.id} de {supplier} registrada: total {purchase.total}")
        return {
            'ok': True,
            'purchase': purchase,
            'restocked': dict(restocked),
            'mutations': mutations,
            'outcome': Outcome.QUEUED,
        }

    # =========================================================================
    # STOCK MANUAL
    # =========================================================================

    def update_stock(self, product_id: str, new_stock: Any) -> Dict[str, Any]:
        """
        Ajuste manual de stock (conteo, corrección). Nunca queda negativo.

        Un valor ausente o que no es un entero exacto se rechaza sin tocar nada.
        """
        stock = _quantity(new_stock)
        if stock is None:
            return self._reject('Stock inválido')

        with self.store.locked():
            product = self.store.apply_stock_delta(_clean(product_id), stock)
            if product is None:
                return self._reject('Producto no encontrado')
            self.store.persist()
            outcome = self._enqueue(
                MutationAction.UPDATE_STOCK, SHEET_PRODUCTS, {'id': product.id, 'stock': product.stock}
            )
        return {'ok': True, 'product': product, 'outcome': outcome}

    # =========================================================================
    # CLIENTES, USUARIOS, APPS
    # =========================================================================

    def add_customer(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """Alta de cliente. Si el id ya existe no se duplica ni se envía."""
        customer = Customer(
            id=_clean(data.get('id')),
            name=_clean(data.get('name')),
            email=_clean(data.get('email')),
            phone=_clean(data.get('phone')),
            address=_clean(data.get('address')),
        )
        if not customer.id or not customer.name:
            return self._reject('El cliente necesita cédula/RIF y nombre')

        if not self.store.upsert_customer(customer):
            return {'ok': True, 'customer': customer, 'created': False, 'outcome': None}
        self.store.persist()
        outcome = self._enqueue(MutationAction.CREATE, SHEET_CUSTOMERS, customer.to_dict())
        return {'ok': True, 'customer': customer, 'created': True, 'outcome': outcome}

    def add_user(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        username = _clean(data.get('username'))
        name = _clean(data.get('name'))
        if not username or not name:
            return self._reject('El usuario necesita nombre y usuario')
        if any(u.username == username for u in self.store.get_all('users')):
            return self._reject(f"El usuario '{username}' ya existe")

        user = User(
            id=_clean(data.get('id')) or username,
            name=name,
            username=username,
            role=normalize_role(data.get('role')),
            password=str(data.get('password') or ''),
        )
        self.store.append_user(user)
        self.store.persist()
        outcome = self._enqueue(MutationAction.CREATE, SHEET_USERS, user.to_dict())
        return {'ok': True, 'user': user, 'outcome': outcome}

    def add_app(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        name = _clean(data.get('name'))
        url = _clean(data.get('url'))
        if not name or not url:
            return self._reject('La app necesita nombre y URL')

        app = ExternalApp(
            id=_clean(data.get('id')) or self._next_id(),
            name=name,
            url=url,
            description=_clean(data.get('description')),
            icon_name=_clean(data.get('iconName')),
        )
        self.store.append_app(app)
        self.store.persist()
        outcome = self._enqueue(MutationAction.CREATE, SHEET_APPS, app.to_dict())
        return {'ok': True, 'app': app, 'outcome': outcome}

    def remove_app(self, app_id: str) -> Dict[str, Any]:
        app_id = _clean(app_id)
        if not self.store.remove_app(app_id):
            return self._reject('App no encontrada')
        self.store.persist()
        outcome = self._enqueue(MutationAction.DELETE, SHEET_APPS, {'id': app_id})
        return {'ok': True, 'outcome': outcome}
