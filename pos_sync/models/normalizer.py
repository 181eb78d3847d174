# ==============================================================================
# NORMALIZADOR DE REGISTROS REMOTOS
# ==============================================================================
# La hoja remota no tiene esquema fijo: el mismo campo puede llegar como
# "NOMBRE DEL PRODUCTO", "NOMBRE", "Nombre" o "name", y los números pueden
# venir como 1200, "1.200,00", "$1,200.00" o "Bs. 45,5".
#
# Este módulo convierte cualquier registro crudo en una entidad canónica.
# Las variantes de cada campo viven en tablas de alias declarativas
# (PRODUCT_FIELDS, SALE_FIELDS, ...) resueltas por orden de prioridad.
#
# REGLAS:
# - Nunca lanza excepciones: un campo ilegible toma su valor por defecto
# - Idempotente: normalizar la salida canónica no la modifica
# ==============================================================================

import hashlib
import json
import math
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from pos_sync.models import (
    AppData,
    COLLECTIONS,
    Customer,
    ExternalApp,
    PaymentType,
    Product,
    Purchase,
    PurchaseItem,
    Sale,
    SaleItem,
    User,
    UserRole,
)


@dataclass(frozen=True)
class FieldSpec:
    """Alias aceptados para un campo canónico, en orden de prioridad."""
    keys: Tuple[str, ...]
    default: Any = ''


# ==============================================================================
# TABLAS DE ALIAS
# ==============================================================================
# La clave canónica siempre está incluida para que normalizar dos veces
# devuelva lo mismo.

PRODUCT_FIELDS: Dict[str, FieldSpec] = {
    # Identificador físico (IMEI/serial) antes que el id genérico
    'id': FieldSpec(('IMEI', 'Imei', 'imei', 'SERIAL', 'Serial', 'serial',
                     'ID', 'Id', 'id', 'CODIGO', 'Codigo', 'Código', 'codigo')),
    'name': FieldSpec(('NOMBRE DEL PRODUCTO', 'NOMBRE', 'Nombre', 'name', 'DESCRIPCION', 'Descripcion'),
                      'Producto Sin Nombre'),
    'price': FieldSpec(('Precio', 'PRECIO', 'PRECIO DE VENTA', 'price'), 0),
    'stock': FieldSpec(('Stock', 'STOCK', 'CANTIDAD', 'Cantidad', 'stock'), 0),
    'sku': FieldSpec(('sku', 'SKU', 'Imei', 'IMEI', 'imei', 'Codigo', 'CODIGO', 'Código')),
    'category': FieldSpec(('CATEGORIA', 'Categoria', 'Categoría', 'category'), 'General'),
}

SALE_FIELDS: Dict[str, FieldSpec] = {
    'id': FieldSpec(('id', 'ID', 'Id', 'FACTURA', 'Factura')),
    'date': FieldSpec(('date', 'FECHA', 'Fecha')),
    'items': FieldSpec(('items', 'ITEMS', 'Items', 'PRODUCTOS', 'Productos'), None),
    'total': FieldSpec(('total', 'TOTAL', 'Total'), None),
    'paymentMethod': FieldSpec(('paymentMethod', 'METODO DE PAGO', 'Metodo de Pago', 'Método de Pago', 'METODO')),
    'paymentType': FieldSpec(('paymentType', 'TIPO DE PAGO', 'Tipo de Pago', 'TIPO'), 'contado'),
    'customerId': FieldSpec(('customerId', 'CEDULA', 'Cedula', 'Cédula', 'ID CLIENTE'), None),
    'customerName': FieldSpec(('customerName', 'CLIENTE', 'Cliente'), None),
    'exchangeRate': FieldSpec(('exchangeRate', 'TASA', 'Tasa'), None),
}

SALE_ITEM_FIELDS: Dict[str, FieldSpec] = {
    'productId': FieldSpec(('productId', 'ID PRODUCTO', 'IMEI', 'id')),
    'quantity': FieldSpec(('quantity', 'CANTIDAD', 'Cantidad', 'qty'), 0),
    'priceAtSale': FieldSpec(('priceAtSale', 'PRECIO', 'Precio', 'price'), 0),
    'name': FieldSpec(('name', 'NOMBRE', 'Nombre')),
}

PURCHASE_FIELDS: Dict[str, FieldSpec] = {
    'id': FieldSpec(('id', 'ID', 'Id', 'FACTURA', 'Factura')),
    'date': FieldSpec(('date', 'FECHA', 'Fecha')),
    'supplier': FieldSpec(('supplier', 'PROVEEDOR', 'Proveedor')),
    'items': FieldSpec(('items', 'ITEMS', 'Items'), None),
    'total': FieldSpec(('total', 'TOTAL', 'Total'), None),
}

PURCHASE_ITEM_FIELDS: Dict[str, FieldSpec] = {
    'productId': FieldSpec(('productId', 'IMEI', 'Imei', 'id')),
    'quantity': FieldSpec(('quantity', 'CANTIDAD', 'Cantidad'), 0),
    'cost': FieldSpec(('cost', 'COSTO', 'Costo'), 0),
    'name': FieldSpec(('name', 'DESCRIPCION', 'Descripcion', 'Descripción', 'NOMBRE')),
}

CUSTOMER_FIELDS: Dict[str, FieldSpec] = {
    'id': FieldSpec(('id', 'ID', 'CEDULA', 'Cedula', 'Cédula', 'RIF', 'Rif')),
    'name': FieldSpec(('name', 'NOMBRE', 'Nombre', 'CLIENTE', 'Cliente'), 'Cliente Sin Nombre'),
    'email': FieldSpec(('email', 'EMAIL', 'Email', 'CORREO', 'Correo')),
    'phone': FieldSpec(('phone', 'TELEFONO', 'Telefono', 'Teléfono')),
    'address': FieldSpec(('address', 'DIRECCION', 'Direccion', 'Dirección')),
}

USER_FIELDS: Dict[str, FieldSpec] = {
    'id': FieldSpec(('id', 'ID', 'Id')),
    'name': FieldSpec(('name', 'NOMBRE', 'Nombre')),
    'username': FieldSpec(('username', 'USUARIO', 'Usuario', 'user')),
    'role': FieldSpec(('role', 'ROL', 'Rol'), 'seller'),
    'password': FieldSpec(('password', 'CLAVE', 'Clave', 'PASSWORD', 'Contraseña')),
}

APP_FIELDS: Dict[str, FieldSpec] = {
    'id': FieldSpec(('id', 'ID', 'Id')),
    'name': FieldSpec(('name', 'NOMBRE', 'Nombre'), 'App'),
    'url': FieldSpec(('url', 'URL', 'Url', 'ENLACE', 'Enlace')),
    'description': FieldSpec(('description', 'DESCRIPCION', 'Descripcion', 'Descripción')),
    'iconName': FieldSpec(('iconName', 'ICONO', 'Icono', 'icon')),
}

# Sinónimos de rol aceptados en la hoja
ROLE_ALIASES = {
    'admin': UserRole.ADMIN,
    'administrador': UserRole.ADMIN,
    'administrator': UserRole.ADMIN,
    'seller': UserRole.SELLER,
    'vendedor': UserRole.SELLER,
    'ventas': UserRole.SELLER,
    'warehouse': UserRole.WAREHOUSE,
    'almacen': UserRole.WAREHOUSE,
    'almacén': UserRole.WAREHOUSE,
    'deposito': UserRole.WAREHOUSE,
    'depósito': UserRole.WAREHOUSE,
}


# ==============================================================================
# PRIMITIVAS
# ==============================================================================

_NON_NUMERIC = re.compile(r'[^0-9.,\-]')
_NUMBER_PREFIX = re.compile(r'-?(\d+(\.\d*)?|\.\d+)')


def _resolve_separators(text: str) -> str:
    """Deja un solo '.' como separador decimal; descarta separadores de miles."""
    last_dot = text.rfind('.')
    last_comma = text.rfind(',')
    if last_dot >= 0 and last_comma >= 0:
        if last_comma > last_dot:
            # 1.234,56
            return text.replace('.', '').replace(',', '.')
        # 1,234.56
        return text.replace(',', '')
    if last_comma >= 0:
        if text.count(',') == 1:
            return text.replace(',', '.')
        return text.replace(',', '')
    if text.count('.') > 1:
        return text.replace('.', '')
    return text


def parse_number(value: Any) -> Decimal:
    """
    Convierte un valor numérico en cualquier formato a Decimal.

    Acepta números nativos, montos con símbolo de moneda y separador de miles
    ("$1,200.00", "Bs. 1.234,50") y decimales con coma ("45,5").
    Si no se puede interpretar (o viene vacío) retorna 0. Nunca lanza.
    """
    if value is None or isinstance(value, bool):
        return Decimal('0')
    if isinstance(value, Decimal):
        return value if value.is_finite() else Decimal('0')
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return Decimal('0')
        return Decimal(str(value))

    text = _NON_NUMERIC.sub('', str(value))
    if not text:
        return Decimal('0')
    match = _NUMBER_PREFIX.match(_resolve_separators(text))
    if not match:
        return Decimal('0')
    try:
        return Decimal(match.group(0))
    except InvalidOperation:
        return Decimal('0')


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def resolve_field(raw: Mapping[str, Any], alias: FieldSpec) -> Any:
    """
    Obtiene el valor de un campo según su tabla de alias.

    Primero busca coincidencia exacta en orden de prioridad; luego repite la
    búsqueda ignorando mayúsculas y espacios. Los valores vacíos no cuentan.
    """
    for key in alias.keys:
        value = raw.get(key)
        if not _is_blank(value):
            return value

    folded = {}
    for key, value in raw.items():
        if isinstance(key, str):
            folded.setdefault(key.strip().casefold(), value)
    for key in alias.keys:
        value = folded.get(key.strip().casefold())
        if not _is_blank(value):
            return value

    return alias.default


def _text(raw: Mapping[str, Any], alias: FieldSpec) -> str:
    value = resolve_field(raw, alias)
    if value is None:
        return ''
    if isinstance(value, float) and value.is_integer():
        # Los IDs numéricos de la hoja llegan como 1234.0
        value = int(value)
    return str(value).strip()


def _optional_text(raw: Mapping[str, Any], alias: FieldSpec) -> Optional[str]:
    text = _text(raw, alias)
    return text or None


def _non_negative(value: Decimal) -> Decimal:
    return value if value > 0 else Decimal('0')


def _temporary_id(raw: Mapping[str, Any]) -> str:
    """
    ID temporario para registros sin identificador.

    Se deriva del contenido (no de la hora) para que el mismo registro
    produzca siempre el mismo ID.
    """
    payload = json.dumps(raw, sort_keys=True, default=str, ensure_ascii=False)
    return 'TMP-' + hashlib.sha1(payload.encode('utf-8')).hexdigest()[:12]


def _load_items(value: Any) -> List[Mapping[str, Any]]:
    """Los items llegan como lista o como texto JSON guardado en una celda."""
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return []
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, Mapping)]


# ==============================================================================
# NORMALIZADORES POR ENTIDAD
# ==============================================================================

def normalize_product(raw: Mapping[str, Any]) -> Product:
    f = PRODUCT_FIELDS
    return Product(
        id=_text(raw, f['id']) or _temporary_id(raw),
        name=_text(raw, f['name']),
        price=_non_negative(parse_number(resolve_field(raw, f['price']))),
        stock=max(0, int(parse_number(resolve_field(raw, f['stock'])))),
        sku=_text(raw, f['sku']),
        category=_text(raw, f['category']) or 'General',
    )


def _normalize_sale_item(raw: Mapping[str, Any]) -> Optional[SaleItem]:
    f = SALE_ITEM_FIELDS
    quantity = int(parse_number(resolve_field(raw, f['quantity'])))
    if quantity < 1:
        return None
    return SaleItem(
        product_id=_text(raw, f['productId']),
        quantity=quantity,
        price_at_sale=_non_negative(parse_number(resolve_field(raw, f['priceAtSale']))),
        name=_text(raw, f['name']),
    )


def _payment_type(value: Any) -> PaymentType:
    text = str(value or '').strip().casefold()
    if text in ('credito', 'crédito', 'credit'):
        return PaymentType.CREDITO
    return PaymentType.CONTADO


def normalize_sale(raw: Mapping[str, Any]) -> Sale:
    """
    Normaliza una venta.

    El total se recalcula desde las líneas cuando existen; el total remoto
    solo se usa para filas antiguas sin detalle de items.
    """
    f = SALE_FIELDS
    items = [item for item in map(_normalize_sale_item, _load_items(resolve_field(raw, f['items']))) if item]
    total = None
    if not items:
        total = _non_negative(parse_number(resolve_field(raw, f['total'])))

    rate = parse_number(resolve_field(raw, f['exchangeRate']))
    return Sale(
        id=_text(raw, f['id']) or _temporary_id(raw),
        date=_text(raw, f['date']),
        items=tuple(items),
        payment_method=_text(raw, f['paymentMethod']),
        payment_type=_payment_type(resolve_field(raw, f['paymentType'])),
        customer_id=_optional_text(raw, f['customerId']),
        customer_name=_optional_text(raw, f['customerName']),
        exchange_rate=rate if rate > 0 else None,
        total=total,
    )


def _normalize_purchase_item(raw: Mapping[str, Any]) -> Optional[PurchaseItem]:
    f = PURCHASE_ITEM_FIELDS
    quantity = int(parse_number(resolve_field(raw, f['quantity'])))
    if quantity < 1:
        return None
    return PurchaseItem(
        product_id=_text(raw, f['productId']),
        quantity=quantity,
        cost=_non_negative(parse_number(resolve_field(raw, f['cost']))),
        name=_text(raw, f['name']),
    )


def normalize_purchase(raw: Mapping[str, Any]) -> Purchase:
    f = PURCHASE_FIELDS
    items = [item for item in map(_normalize_purchase_item, _load_items(resolve_field(raw, f['items']))) if item]
    total = None
    if not items:
        total = _non_negative(parse_number(resolve_field(raw, f['total'])))
    return Purchase(
        id=_text(raw, f['id']) or _temporary_id(raw),
        date=_text(raw, f['date']),
        supplier=_text(raw, f['supplier']),
        items=tuple(items),
        total=total,
    )


def normalize_customer(raw: Mapping[str, Any]) -> Customer:
    f = CUSTOMER_FIELDS
    return Customer(
        id=_text(raw, f['id']) or _temporary_id(raw),
        name=_text(raw, f['name']),
        email=_text(raw, f['email']),
        phone=_text(raw, f['phone']),
        address=_text(raw, f['address']),
    )


def normalize_role(value: Any) -> UserRole:
    """Acepta distintas grafías y sinónimos; por defecto 'seller'."""
    return ROLE_ALIASES.get(str(value or '').strip().casefold(), UserRole.SELLER)


def normalize_user(raw: Mapping[str, Any]) -> User:
    f = USER_FIELDS
    username = _text(raw, f['username'])
    user_id = _text(raw, f['id']) or username or _temporary_id(raw)
    return User(
        id=user_id,
        name=_text(raw, f['name']) or username,
        username=username or user_id,
        role=normalize_role(resolve_field(raw, f['role'])),
        password=_text(raw, f['password']),
    )


def normalize_app(raw: Mapping[str, Any]) -> ExternalApp:
    f = APP_FIELDS
    return ExternalApp(
        id=_text(raw, f['id']) or _temporary_id(raw),
        name=_text(raw, f['name']),
        url=_text(raw, f['url']),
        description=_text(raw, f['description']),
        icon_name=_text(raw, f['iconName']),
    )


NORMALIZERS: Dict[str, Callable[[Mapping[str, Any]], Any]] = {
    'products': normalize_product,
    'sales': normalize_sale,
    'customers': normalize_customer,
    'users': normalize_user,
    'apps': normalize_app,
    'purchases': normalize_purchase,
}


def normalize_collection(name: str, records: List[Any]) -> List[Any]:
    """Normaliza una colección completa, ignorando filas que no son objetos."""
    normalizer = NORMALIZERS[name]
    return [normalizer(record) for record in records if isinstance(record, Mapping)]


def normalize_snapshot(payload: Mapping[str, Any]) -> Dict[str, Optional[List[Any]]]:
    """
    Normaliza la respuesta completa del endpoint.

    Retorna {coleccion: lista} y None para las colecciones ausentes o con
    forma inválida, de modo que el store no las confunda con listas vacías.
    """
    result: Dict[str, Optional[List[Any]]] = {}
    for name in COLLECTIONS:
        records = payload.get(name)
        result[name] = normalize_collection(name, records) if isinstance(records, list) else None
    return result


def to_app_data(normalized: Mapping[str, Optional[List[Any]]]) -> AppData:
    """Convierte el resultado de normalize_snapshot en AppData (ausentes = vacías)."""
    return AppData(**{name: list(normalized.get(name) or []) for name in COLLECTIONS})
