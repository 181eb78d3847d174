import json
from unittest import mock

import requests

from pos_sync.models import MutationAction, Outcome
from pos_sync.services import RemoteSyncClient
from pos_sync.tests.fakes import RecordingSleep, fake_response

URL = 'https://script.example.com/exec'


def make_client(store, session, **kwargs):
    kwargs.setdefault('sleep', RecordingSleep())
    return RemoteSyncClient(store, remote_url=URL, session=session, **kwargs)


def test_fetch_applies_remote_snapshot(store, snapshot_repo):
    session = mock.Mock()
    session.get.return_value = fake_response(200, {
        'products': [{'ID': 'R1', 'NOMBRE': 'Remoto', 'PRECIO': '3,5', 'STOCK': 4}],
        'sales': [],
    })
    client = make_client(store, session, read_timeout=7.0)

    data = client.fetch_snapshot()

    session.get.assert_called_once_with(URL, timeout=7.0, allow_redirects=True)
    assert [p.id for p in data.products] == ['R1']
    # lista vacía remota no borra las ventas/clientes locales
    assert [c.id for c in data.customers] == ['V-1']
    assert snapshot_repo.load()['products'][0]['id'] == 'R1'


def test_fetch_timeout_keeps_local_data(store):
    session = mock.Mock()
    session.get.side_effect = requests.Timeout('lento')
    client = make_client(store, session)

    data = client.fetch_snapshot()

    assert [p.id for p in data.products] == ['P1', 'P2']
    assert client.offline is False


def test_fetch_html_error_page_keeps_local_data(store):
    session = mock.Mock()
    session.get.return_value = fake_response(200, text='<!DOCTYPE html><html><body>Error</body></html>')
    client = make_client(store, session)

    data = client.fetch_snapshot()

    assert [p.id for p in data.products] == ['P1', 'P2']


def test_fetch_non_object_json_keeps_local_data(store):
    session = mock.Mock()
    session.get.return_value = fake_response(200, text='[1, 2]')
    assert len(make_client(store, session).fetch_snapshot().products) == 2


def test_fetch_404_switches_to_offline(store):
    session = mock.Mock()
    session.get.return_value = fake_response(404, text='Not Found')
    client = make_client(store, session)

    client.fetch_snapshot()
    assert client.offline is True

    # en offline ni lecturas ni escrituras tocan la red
    client.fetch_snapshot()
    assert client.send_mutation(MutationAction.CREATE, 'Sales', {'id': '1'}) == Outcome.OFFLINE
    assert session.get.call_count == 1
    session.post.assert_not_called()

    assert client.go_online() is True
    assert client.offline is False


def test_without_url_is_offline(store):
    session = mock.Mock()
    client = RemoteSyncClient(store, remote_url='', session=session)
    assert client.offline is True
    assert client.go_online() is False
    assert len(client.fetch_snapshot().products) == 2
    session.get.assert_not_called()


def test_send_mutation_wire_format(store):
    session = mock.Mock()
    session.post.return_value = fake_response(200, {'status': 'success'})
    client = make_client(store, session, read_timeout=6.0)

    outcome = client.send_mutation(MutationAction.UPDATE_STOCK, 'Products', {'id': 'P1', 'stock': 3})

    assert outcome == Outcome.DELIVERED
    args, kwargs = session.post.call_args
    assert args == (URL,)
    assert kwargs['headers'] == {'Content-Type': 'text/plain;charset=utf-8'}
    assert kwargs['timeout'] == 6.0
    assert json.loads(kwargs['data'].decode('utf-8')) == {
        'action': 'updateStock',
        'sheet': 'Products',
        'data': {'id': 'P1', 'stock': 3},
    }


def test_send_mutation_retries_with_backoff(store):
    session = mock.Mock()
    session.post.side_effect = [
        fake_response(500),
        requests.ConnectionError('caído'),
        fake_response(200),
    ]
    sleep = RecordingSleep()
    client = make_client(store, session, max_retries=2, retry_backoff=0.5, sleep=sleep)

    assert client.send_mutation('create', 'Sales', {'id': 'S1'}) == Outcome.DELIVERED
    assert session.post.call_count == 3
    assert sleep.delays == [0.5, 1.0]


def test_send_mutation_gives_up(store):
    session = mock.Mock()
    session.post.return_value = fake_response(503)
    sleep = RecordingSleep()
    client = make_client(store, session, max_retries=1, retry_backoff=0.2, sleep=sleep)

    assert client.send_mutation('create', 'Sales', {'id': 'S1'}) == Outcome.FAILED
    assert session.post.call_count == 2
    assert sleep.delays == [0.2]


def test_outcome_accepted():
    assert Outcome.QUEUED.accepted
    assert Outcome.DELIVERY_UNKNOWN.accepted
    assert not Outcome.FAILED.accepted
    assert not Outcome.OFFLINE.accepted


def test_client_error_is_not_retried(store):
    session = mock.Mock()
    session.post.return_value = fake_response(400)
    client = make_client(store, session, max_retries=3)

    assert client.send_mutation('delete', 'Apps', {'id': 'A1'}) == Outcome.FAILED
    assert session.post.call_count == 1


def test_fire_and_forget_reports_unknown(store):
    session = mock.Mock()
    session.post.return_value = fake_response(500)
    client = make_client(store, session, observe_writes=False)

    assert client.send_mutation('create', 'Sales', {'id': 'S1'}) == Outcome.DELIVERY_UNKNOWN
    assert session.post.call_count == 1
