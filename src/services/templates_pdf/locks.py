import threading
from contextlib import contextmanager
from typing import Dict


class TemplateLocks:
    """Un RLock por plantilla: serializa las mutaciones de boxes y campos."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[int, threading.RLock] = {}

    def get(self, template_id: int) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(template_id)
            if lock is None:
                lock = self._locks[template_id] = threading.RLock()
            return lock

    @contextmanager
    def hold(self, template_id: int):
        with self.get(template_id):
            yield

    def discard(self, template_id: int) -> None:
        with self._guard:
            self._locks.pop(template_id, None)
