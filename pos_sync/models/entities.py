# ==============================================================================
# ENTIDADES DEL DOMINIO - Definiciones de dataclasses
# ==============================================================================
# Cada entidad representa un concepto del negocio.
# Diseñadas para ser independientes del mecanismo de persistencia:
# la hoja remota, el snapshot local en JSON y la API usan el mismo to_dict().
# ==============================================================================

import json
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class PosSyncError(Exception):
    """Excepción base del núcleo de sincronización."""
    pass


class ValidationError(PosSyncError):
    """Datos inválidos detectados antes de tocar el estado local."""
    pass


# ==============================================================================
# ENUMERACIONES - Estados y tipos válidos
# ==============================================================================

class PaymentType(str, Enum):
    """Modalidad de pago de una venta."""
    CONTADO = "contado"
    CREDITO = "credito"


class UserRole(str, Enum):
    """Roles de usuario. Solo definen navegación, no son un límite de seguridad."""
    ADMIN = "admin"
    SELLER = "seller"
    WAREHOUSE = "warehouse"


class MutationAction(str, Enum):
    """Acciones aceptadas por el endpoint remoto en el POST."""
    CREATE = "create"
    UPDATE_STOCK = "updateStock"
    DELETE = "delete"


class Outcome(str, Enum):
    """
    Resultado de una escritura remota.

    QUEUED: aceptada por la cola local (lo que recibe quien encola).
    DELIVERED: el endpoint respondió 2xx.
    DELIVERY_UNKNOWN: enviada sin observar la respuesta (modo fire-and-forget).
    FAILED: reintentos agotados.
    OFFLINE: el cliente está en modo offline, no se envió nada.
    """
    QUEUED = "queued"
    DELIVERED = "delivered"
    DELIVERY_UNKNOWN = "delivery_unknown"
    FAILED = "failed"
    OFFLINE = "offline"

    @property
    def accepted(self) -> bool:
        return self in (Outcome.QUEUED, Outcome.DELIVERED, Outcome.DELIVERY_UNKNOWN)


class SaleState(str, Enum):
    """Estados del flujo de venta. No existe un estado 'confirmado remoto'."""
    BUILDING = "building"
    SUBMITTED = "submitted"
    LOCALLY_COMMITTED = "locally_committed"
    REMOTE_QUEUED = "remote_queued"
    DONE = "done"
    REJECTED = "rejected"


class StockPolicy(str, Enum):
    """CLAMP vende igual y deja el stock en cero; STRICT rechaza la venta."""
    CLAMP = "clamp"
    STRICT = "strict"


class CountStatus(str, Enum):
    """Estado de un producto en el conteo físico de inventario."""
    MATCHED = "matched"
    MISSING = "missing"
    SURPLUS = "surplus"


# Nombres de hoja (colección) en el endpoint remoto
SHEET_PRODUCTS = 'Products'
SHEET_SALES = 'Sales'
SHEET_CUSTOMERS = 'Customers'
SHEET_USERS = 'Users'
SHEET_APPS = 'Apps'
SHEET_PURCHASES = 'Purchases'


def _money(value: Decimal) -> float:
    return float(value)


# ==============================================================================
# INVENTARIO
# ==============================================================================

@dataclass
class Product:
    """
    Producto del catálogo.

    Attributes:
        id: IMEI/serial si existe, si no un código genérico
        name: Nombre visible
        price: Precio de venta (>= 0)
        stock: Existencia (nunca negativa)
        sku: Código de barras / IMEI
        category: Categoría ('General' por defecto)
    """
    id: str
    name: str
    price: Decimal = Decimal('0')
    stock: int = 0
    sku: str = ''
    category: str = 'General'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'price': _money(self.price),
            'stock': self.stock,
            'sku': self.sku,
            'category': self.category,
        }


# ==============================================================================
# VENTAS
# ==============================================================================

@dataclass(frozen=True)
class SaleItem:
    """Línea de venta. El precio queda congelado al momento de vender."""
    product_id: str
    quantity: int
    price_at_sale: Decimal
    name: str = ''

    def __post_init__(self):
        if self.quantity < 1:
            raise ValidationError(f"Cantidad inválida para {self.name or self.product_id}")

    @property
    def line_total(self) -> Decimal:
        return self.price_at_sale * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            'productId': self.product_id,
            'quantity': self.quantity,
            'priceAtSale': _money(self.price_at_sale),
            'name': self.name,
        }


@dataclass(frozen=True)
class Sale:
    """
    Venta registrada. Inmutable una vez creada.

    El total se calcula con Decimal a partir de las líneas, así
    total == sum(priceAtSale * quantity) sin deriva de redondeo.
    """
    id: str
    date: str
    items: Tuple[SaleItem, ...]
    payment_method: str
    payment_type: PaymentType = PaymentType.CONTADO
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    exchange_rate: Optional[Decimal] = None
    total: Decimal = field(default=None)

    def __post_init__(self):
        object.__setattr__(self, 'items', tuple(self.items))
        if self.total is None:
            object.__setattr__(self, 'total', sum((i.line_total for i in self.items), Decimal('0')))

    def to_dict(self) -> Dict[str, Any]:
        """Forma local/API: items como lista."""
        return {
            'id': self.id,
            'date': self.date,
            'items': [i.to_dict() for i in self.items],
            'total': _money(self.total),
            'paymentMethod': self.payment_method,
            'paymentType': self.payment_type.value,
            'customerId': self.customer_id or '',
            'customerName': self.customer_name or '',
            'exchangeRate': _money(self.exchange_rate) if self.exchange_rate is not None else 0,
        }

    def to_sheet_row(self) -> Dict[str, Any]:
        """Forma de la hoja remota: los items viajan como texto JSON en una celda."""
        row = self.to_dict()
        row['items'] = json.dumps(row['items'], ensure_ascii=False)
        return row


# ==============================================================================
# COMPRAS
# ==============================================================================

@dataclass(frozen=True)
class PurchaseItem:
    """Línea de compra a proveedor."""
    product_id: str
    quantity: int
    cost: Decimal
    name: str = ''

    def __post_init__(self):
        if self.quantity < 1:
            raise ValidationError(f"Cantidad inválida para {self.name or self.product_id}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'productId': self.product_id,
            'quantity': self.quantity,
            'cost': _money(self.cost),
            'name': self.name,
        }


@dataclass(frozen=True)
class Purchase:
    """Recepción de mercancía de un proveedor."""
    id: str
    date: str
    supplier: str
    items: Tuple[PurchaseItem, ...]
    total: Decimal = field(default=None)

    def __post_init__(self):
        object.__setattr__(self, 'items', tuple(self.items))
        if self.total is None:
            object.__setattr__(
                self, 'total', sum((i.cost * i.quantity for i in self.items), Decimal('0'))
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'date': self.date,
            'supplier': self.supplier,
            'items': [i.to_dict() for i in self.items],
            'total': _money(self.total),
        }

    def to_sheet_row(self) -> Dict[str, Any]:
        row = self.to_dict()
        row['items'] = json.dumps(row['items'], ensure_ascii=False)
        return row


# ==============================================================================
# CLIENTES, USUARIOS Y APPS
# ==============================================================================

@dataclass
class Customer:
    """Cliente. El id (cédula/RIF) es la clave de deduplicación."""
    id: str
    name: str
    email: str = ''
    phone: str = ''
    address: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'address': self.address,
        }


@dataclass
class User:
    """
    Usuario del sistema.

    La contraseña se guarda y compara en texto plano, igual que en la hoja remota.
    """
    id: str
    name: str
    username: str
    role: UserRole = UserRole.SELLER
    password: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'username': self.username,
            'role': self.role.value,
            'password': self.password,
        }


@dataclass
class ExternalApp:
    """Acceso directo a una aplicación externa (solo datos de referencia)."""
    id: str
    name: str
    url: str = ''
    description: str = ''
    icon_name: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'url': self.url,
            'description': self.description,
            'iconName': self.icon_name,
        }


# ==============================================================================
# SNAPSHOT COMPLETO
# ==============================================================================

COLLECTIONS = ('products', 'sales', 'customers', 'users', 'apps', 'purchases')


@dataclass
class AppData:
    """Copia completa de todas las colecciones en un instante dado."""
    products: List[Product] = field(default_factory=list)
    sales: List[Sale] = field(default_factory=list)
    customers: List[Customer] = field(default_factory=list)
    users: List[User] = field(default_factory=list)
    apps: List[ExternalApp] = field(default_factory=list)
    purchases: List[Purchase] = field(default_factory=list)

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {name: [record.to_dict() for record in getattr(self, name)] for name in COLLECTIONS}
