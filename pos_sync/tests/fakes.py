"""Dobles de test para la cola y el endpoint remoto."""

import json
import threading
from unittest import mock

from pos_sync.models import Outcome


class RecordingQueue:
    """Cola que solo anota lo encolado (no hay thread ni red)."""

    def __init__(self):
        self.items = []

    def enqueue(self, action, collection, payload):
        self.items.append((action, collection, payload))
        return Outcome.QUEUED


class RecordingSender:
    """Sender que anota cada mutación; los números de llamada en fail_on lanzan."""

    def __init__(self, fail_on=(), outcome=Outcome.DELIVERED):
        self.calls = []
        self.fail_on = set(fail_on)
        self.outcome = outcome
        self._lock = threading.Lock()

    def send_mutation(self, action, collection, payload):
        with self._lock:
            self.calls.append((action, collection, payload))
            number = len(self.calls)
        if number in self.fail_on:
            raise RuntimeError(f"fallo simulado en la llamada {number}")
        return self.outcome


class RecordingSleep:
    def __init__(self):
        self.delays = []

    def __call__(self, seconds):
        self.delays.append(seconds)


def fake_response(status_code=200, body=None, text=None):
    response = mock.Mock()
    response.status_code = status_code
    if text is None:
        text = json.dumps(body) if body is not None else ''
    response.text = text
    return response
