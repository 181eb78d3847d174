import json
from decimal import Decimal

from pos_sync.models import PaymentType, UserRole
from pos_sync.models.normalizer import (
    normalize_customer,
    normalize_product,
    normalize_role,
    normalize_sale,
    normalize_snapshot,
    normalize_user,
    parse_number,
    to_app_data,
)


def test_parse_number_formats():
    assert parse_number(1200) == Decimal('1200')
    assert parse_number(12.5) == Decimal('12.5')
    assert parse_number('$1,200.00') == Decimal('1200.00')
    assert parse_number('Bs. 1.234,50') == Decimal('1234.50')
    assert parse_number('45,5') == Decimal('45.5')
    assert parse_number('1.000.000') == Decimal('1000000')
    assert parse_number('-3') == Decimal('-3')


def test_parse_number_never_raises():
    for value in (None, '', 'abc', '--', '.', True, float('nan'), float('inf'), [], {}):
        assert parse_number(value) == Decimal('0')


def test_product_aliases_spanish_headers():
    raw = {'NOMBRE DEL PRODUCTO': 'CARGADOR 20W', 'Precio': '$25,50', 'STOCK': '7', 'IMEI': 356789}
    product = normalize_product(raw)
    assert product.name == 'CARGADOR 20W'
    assert product.price == Decimal('25.50')
    assert product.stock == 7
    assert product.id == '356789'
    assert product.sku == '356789'
    assert product.category == 'General'


def test_product_alias_priority_and_case():
    # IMEI gana sobre el id genérico; las claves se comparan sin importar mayúsculas
    product = normalize_product({'ID': 'row-9', 'IMEI': 'IMEI-1', 'nombre': 'Forro', 'cantidad ': 3})
    assert product.id == 'IMEI-1'
    assert product.name == 'Forro'
    assert product.stock == 3


def test_product_defaults_and_clamps():
    product = normalize_product({'Precio': '-5', 'Stock': '-2'})
    assert product.name == 'Producto Sin Nombre'
    assert product.price == Decimal('0')
    assert product.stock == 0
    assert product.id.startswith('TMP-')


def test_temporary_id_is_stable():
    raw = {'NOMBRE': 'Sin id', 'Precio': 3}
    assert normalize_product(raw).id == normalize_product(dict(raw)).id


def test_normalize_is_idempotent():
    product = normalize_product({'NOMBRE': 'Mica', 'PRECIO': '5,00', 'Stock': 2.0, 'Codigo': 'ACC-3'})
    assert normalize_product(product.to_dict()) == product

    sale = normalize_sale({
        'ID': 77,
        'FECHA': '2024-01-01',
        'ITEMS': json.dumps([{'productId': 'P1', 'quantity': 2, 'priceAtSale': '10'}]),
        'TOTAL': 'basura',
    })
    assert normalize_sale(sale.to_dict()) == sale
    assert normalize_sale(sale.to_sheet_row()) == sale


def test_sale_total_recomputed_from_items():
    sale = normalize_sale({
        'id': 'S1',
        'items': [{'productId': 'P1', 'quantity': 2, 'priceAtSale': 10}, {'productId': 'P2', 'quantity': 0}],
        'total': 999,
        'paymentType': 'Crédito',
        'exchangeRate': '0',
        'customerName': '',
    })
    assert sale.total == Decimal('20')
    assert len(sale.items) == 1
    assert sale.payment_type == PaymentType.CREDITO
    assert sale.exchange_rate is None
    assert sale.customer_name is None


def test_sale_without_items_keeps_remote_total():
    sale = normalize_sale({'id': 'OLD', 'items': 'no es json', 'TOTAL': '1.500,00'})
    assert sale.items == ()
    assert sale.total == Decimal('1500.00')


def test_customer_and_user():
    customer = normalize_customer({'CEDULA': 'V-1', 'NOMBRE': 'Ana', 'TELEFONO': 4121234567.0})
    assert customer.id == 'V-1'
    assert customer.phone == '4121234567'

    user = normalize_user({'USUARIO': 'maria', 'ROL': 'Almacén', 'CLAVE': 1234})
    assert user.id == 'maria'
    assert user.name == 'maria'
    assert user.role == UserRole.WAREHOUSE
    assert user.password == '1234'


def test_role_synonyms_default_to_seller():
    assert normalize_role('ADMINISTRADOR') == UserRole.ADMIN
    assert normalize_role('Vendedor') == UserRole.SELLER
    assert normalize_role('desconocido') == UserRole.SELLER
    assert normalize_role(None) == UserRole.SELLER


def test_snapshot_marks_missing_collections():
    normalized = normalize_snapshot({'products': [{'NOMBRE': 'A'}, 'fila rota'], 'sales': 'x'})
    assert len(normalized['products']) == 1
    assert normalized['sales'] is None
    assert normalized['users'] is None

    data = to_app_data(normalized)
    assert data.sales == []
    assert data.products[0].name == 'A'
