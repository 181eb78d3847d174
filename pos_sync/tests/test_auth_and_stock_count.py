from decimal import Decimal

from pos_sync.models import AppData, CountStatus, Product, User, UserRole
from pos_sync.repositories import LocalCacheStore
from pos_sync.services import AuthService, StockCountService, StockCountSession


# ---------------------------------------------------------------- login

def test_login_with_store_users(store):
    result = AuthService(store).login('admin', '123')
    assert result['ok'] is True
    assert result['view'] == 'dashboard'
    assert 'password' not in result['user']
    assert 'users' in result['views']


def test_login_rejects_bad_password(store):
    auth = AuthService(store)
    assert auth.login('admin', 'mala') == {'ok': False, 'error': 'Usuario o contraseña incorrectos'}
    assert auth.authenticate('', '') is None


def test_fallback_admin_when_no_users():
    auth = AuthService(LocalCacheStore())
    user = auth.authenticate('admin', '123')
    assert user.role == UserRole.ADMIN


def test_fallback_admin_not_used_once_users_exist(store):
    store.replace_all({'users': [User('u1', 'Caja', 'caja', UserRole.SELLER, 'abc')]})
    assert AuthService(store).authenticate('admin', '123') is None


def test_landing_view_and_navigation_by_role(store):
    auth = AuthService(store)
    assert auth.landing_view(UserRole.WAREHOUSE) == 'inventory'
    assert auth.landing_view(UserRole.SELLER) == 'sales'
    assert auth.can_access(UserRole.SELLER, 'sales')
    assert not auth.can_access(UserRole.SELLER, 'purchases')
    assert not auth.can_access(UserRole.WAREHOUSE, 'sales')
    assert auth.allowed_views(UserRole.WAREHOUSE) == frozenset(['inventory', 'apps'])


# ---------------------------------------------------------------- conteo físico

def test_session_counts_scans():
    session = StockCountSession()
    session.scan_many(['A', ' A ', 'B', ''])
    assert session.scanned == {'A': 2, 'B': 1}
    assert session.last_scanned == 'B'

    session.set_count('A', -1)
    assert session.scanned['A'] == 0


def test_report_classifies_and_orders(store):
    store.replace_all(AppData(products=[
        Product('P1', 'CARGADOR 20W', Decimal('10'), 2, 'ACC-001'),
        Product('P2', 'FORRO SILICONE', Decimal('2.5'), 1, 'ACC-002'),
        Product('P3', 'MICA', Decimal('1'), 3, 'ACC-003'),
    ]))
    session = StockCountSession()
    session.scan_many(['ACC-001', 'ACC-001', 'ACC-002', 'ACC-002', 'XYZ'])

    service = StockCountService(store)
    report = service.build_report(session)

    assert [(r['sku'], r['status']) for r in report] == [
        ('ACC-002', CountStatus.SURPLUS),
        ('XYZ', CountStatus.SURPLUS),
        ('ACC-003', CountStatus.MISSING),
        ('ACC-001', CountStatus.MATCHED),
    ]
    unknown = report[1]
    assert unknown['product'] is None
    assert unknown['difference'] == 1
    assert report[2]['difference'] == -3

    assert service.summarize(report) == {'matched': 1, 'missing': 1, 'surplus': 2, 'progress': 67}


def test_summary_with_empty_catalog():
    service = StockCountService(LocalCacheStore())
    session = StockCountSession()
    session.scan('XYZ')
    report = service.build_report(session)
    assert service.summarize(report)['progress'] == 0
