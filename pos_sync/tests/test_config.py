import os

from pos_sync import sync_logger
from pos_sync.config import SyncSettings
from pos_sync.models import StockPolicy


def test_defaults_from_empty_env(monkeypatch, tmp_path):
    for name in list(os.environ):
        if name.startswith('POS_SYNC_') or name == 'PRODUCTION_MODE':
            monkeypatch.delenv(name, raising=False)

    settings = SyncSettings.from_env(str(tmp_path))

    assert settings.remote_url == ''
    assert settings.data_dir == os.path.join(str(tmp_path), 'data')
    assert settings.read_timeout == 8.0
    assert settings.write_delay == 0.3
    assert settings.stock_policy == StockPolicy.CLAMP
    assert settings.production_mode is True


def test_env_values_are_clamped(monkeypatch):
    monkeypatch.setenv('POS_SYNC_REMOTE_URL', ' https://script.example.com/exec ')
    monkeypatch.setenv('POS_SYNC_READ_TIMEOUT', '60')
    monkeypatch.setenv('POS_SYNC_WRITE_DELAY', '0')
    monkeypatch.setenv('POS_SYNC_MAX_RETRIES', 'muchos')
    monkeypatch.setenv('POS_SYNC_STOCK_POLICY', 'STRICT')
    monkeypatch.setenv('POS_SYNC_OBSERVE_WRITES', 'no')
    monkeypatch.setenv('PRODUCTION_MODE', 'false')

    settings = SyncSettings.from_env()

    assert settings.remote_url == 'https://script.example.com/exec'
    assert settings.read_timeout == 10.0
    assert settings.write_delay == 0.1
    assert settings.max_retries == 2
    assert settings.stock_policy == StockPolicy.STRICT
    assert settings.observe_writes is False
    assert settings.production_mode is False


def test_unknown_stock_policy_falls_back_to_clamp(monkeypatch):
    monkeypatch.setenv('POS_SYNC_STOCK_POLICY', 'magia')
    assert SyncSettings.from_env().stock_policy == StockPolicy.CLAMP


def test_sync_events_are_written_to_log(monkeypatch):
    monkeypatch.setattr(sync_logger, 'ENABLE_SYNC_LOG', True)
    sync_logger.log_sync_event('SYNC', 'prueba de log', level='WARNING')
    with open(os.path.join(sync_logger.LOGS_DIR, sync_logger.SYNC_LOG), encoding='utf-8') as f:
        content = f.read()
    assert '[WARNING] [SYNC] prueba de log' in content


def test_profile_function_collects_stats():
    sync_logger.reset_stats()

    @sync_logger.profile_function(name='tarea')
    def task(x):
        return x * 2

    assert task(2) == 4
    assert task(3) == 6
    assert sync_logger.get_function_stats()['tarea']['calls'] == 2
