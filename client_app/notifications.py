# client_app/notifications.py
import threading


class NotificationCenter:
    """Avisos na tela (em memória; somem ao recarregar).

    `dismiss(i)` remove exatamente a posição i. Os eventos chegam pela thread
    do realtime, por isso o acesso é serializado.
    """

    def __init__(self):
        self._items = []
        self._lock = threading.Lock()

    def push(self, message):
        with self._lock:
            self._items.append(message)

    @property
    def items(self):
        with self._lock:
            return list(self._items)

    def dismiss(self, index):
        with self._lock:
            if 0 <= index < len(self._items):
                del self._items[index]

    def clear(self):
        with self._lock:
            self._items.clear()

    def __len__(self):
        with self._lock:
            return len(self._items)
