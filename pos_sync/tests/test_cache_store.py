import json
from decimal import Decimal

from pos_sync.models import AppData, Customer, ExternalApp, Product, Sale, SaleItem
from pos_sync.repositories import LocalCacheStore, SnapshotRepository, demo_data


def test_reads_are_copies(store):
    snap = store.snapshot()
    snap.products[0].stock = 999
    assert store.get_product('P1').stock == 5

    product = store.get_product('P1')
    product.stock = 0
    assert store.get_product('P1').stock == 5


def test_replace_all_keeps_collections_on_empty_lists(store):
    replaced = store.replace_all({
        'products': [],
        'customers': [Customer('V-9', 'Nuevo')],
        'sales': None,
    })
    assert replaced == ['customers']
    assert [p.id for p in store.get_all('products')] == ['P1', 'P2']
    assert [c.id for c in store.get_all('customers')] == ['V-9']


def test_replace_all_accepts_app_data(store):
    store.replace_all(AppData(products=[Product('X', 'Otro', Decimal('1'), 1)]))
    assert [p.id for p in store.get_all('products')] == ['X']
    # las colecciones vacías del AppData no borran nada
    assert store.get_all('users')


def test_stock_never_negative(store):
    product = store.apply_stock_delta('P1', -4)
    assert product.stock == 0
    assert store.get_product('P1').stock == 0
    assert store.apply_stock_delta('NOPE', 3) is None


def test_upsert_customer_deduplicates(store):
    assert store.upsert_customer(Customer('V-1', 'Otro nombre')) is False
    assert store.upsert_customer(Customer('V-2', 'Pedro')) is True
    assert [c.id for c in store.get_all('customers')] == ['V-1', 'V-2']
    assert store.get_customer('V-1').name == 'Cliente Mostrador'


def test_apps_add_and_remove(store):
    store.append_app(ExternalApp('A1', 'Banco', 'https://banco.example'))
    assert store.remove_app('A1') is True
    assert store.remove_app('A1') is False
    assert store.get_all('apps') == []


def test_persist_and_reload(store, snapshot_repo):
    store.append_sale(Sale('S1', '2024-01-01', (SaleItem('P1', 2, Decimal('10'), 'CARGADOR 20W'),), 'Efectivo $'))
    assert store.persist() is True

    with open(snapshot_repo.file_path, encoding='utf-8') as f:
        saved = json.load(f)
    assert saved['sales'][0]['total'] == 20.0

    fresh = LocalCacheStore(snapshot_repo)
    assert fresh.load_persisted() is True
    assert fresh.get_all('sales')[0].total == Decimal('20')
    assert fresh.get_product('P2').price == Decimal('2.5')


def test_load_persisted_without_file(tmp_path):
    store = LocalCacheStore(SnapshotRepository(str(tmp_path / 'vacio')), initial=demo_data())
    assert store.load_persisted() is False
    assert len(store.get_all('products')) == 5


def test_corrupt_snapshot_is_ignored(tmp_path):
    repo = SnapshotRepository(str(tmp_path))
    with open(repo.file_path, 'w', encoding='utf-8') as f:
        f.write('{no es json')
    assert repo.load() is None
    assert LocalCacheStore(repo).load_persisted() is False


def test_snapshot_with_invalid_utf8_is_ignored(tmp_path):
    repo = SnapshotRepository(str(tmp_path))
    with open(repo.file_path, 'wb') as f:
        f.write(b'{"products": [{"id": "\xff\xfe"}]}')

    store = LocalCacheStore(repo, initial=demo_data())
    assert repo.load() is None
    assert store.load_persisted() is False
    assert len(store.get_all('products')) == 5


def test_locked_allows_nested_store_calls(store):
    with store.locked() as locked_store:
        stock = locked_store.get_product('P1').stock
        locked_store.apply_stock_delta('P1', stock - 1)
    assert store.get_product('P1').stock == 4


def test_persist_without_repo():
    assert LocalCacheStore().persist() is False
