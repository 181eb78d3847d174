from decimal import Decimal

import pytest

from pos_sync import sync_logger
from pos_sync.app_container import AppContainer
from pos_sync.config import SyncSettings
from pos_sync.main import create_app
from pos_sync.models import AppData, Customer, Product, User, UserRole
from pos_sync.repositories import LocalCacheStore, SnapshotRepository
from pos_sync.tests.fakes import RecordingQueue


@pytest.fixture(autouse=True)
def _logs_in_tmp(tmp_path, monkeypatch):
    # keep test runs from writing into the package's logs/ folder
    monkeypatch.setattr(sync_logger, 'LOGS_DIR', str(tmp_path / 'logs'))


def sample_data():
    return AppData(
        products=[
            Product('P1', 'CARGADOR 20W', Decimal('10'), 5, 'ACC-001', 'Accesorios'),
            Product('P2', 'FORRO SILICONE', Decimal('2.50'), 10, 'ACC-002', 'Accesorios'),
        ],
        customers=[Customer('V-1', 'Cliente Mostrador')],
        users=[User('admin', 'Administrador', 'admin', UserRole.ADMIN, '123')],
    )


@pytest.fixture
def snapshot_repo(tmp_path):
    return SnapshotRepository(str(tmp_path / 'data'))


@pytest.fixture
def store(snapshot_repo):
    return LocalCacheStore(snapshot_repo, initial=sample_data())


@pytest.fixture
def queue():
    return RecordingQueue()


@pytest.fixture
def settings(tmp_path):
    return SyncSettings(
        data_dir=str(tmp_path / 'data'),
        remote_url='',
        write_delay=0.0,
        production_mode=False,
    )


@pytest.fixture
def container(settings):
    AppContainer.reset_instance()
    c = AppContainer(settings)
    c.bootstrap(sync=False)
    yield c
    AppContainer.reset_instance()


@pytest.fixture
def client(container):
    app = create_app(container)
    app.config['TESTING'] = True
    with app.test_client() as c:
        yield c
