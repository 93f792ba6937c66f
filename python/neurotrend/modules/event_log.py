import json
import logging
import os
from collections import deque

logger = logging.getLogger(__name__)


class EventLog:
    """
    Registro de eventos da sessão em JSON Lines (um evento por linha).
    Sem caminho, guarda em memória só os `max_events` mais recentes
    (útil para testes e para o dashboard em sessões longas).
    """
    def __init__(self, path=None, max_events=10000):
        self.path = path
        self.events = deque(maxlen=max_events)
        self._fh = None

        if path is not None:
            folder = os.path.dirname(os.path.abspath(path))
            if not os.path.exists(folder):
                os.makedirs(folder)
            self._fh = open(path, "a", encoding="utf-8")

    def log(self, event, timestamp, **payload):
        entry = {"event": event, "timestamp": timestamp}
        entry.update(payload)

        if self._fh is None:
            self.events.append(entry)
            return entry

        self._fh.write(json.dumps(entry, ensure_ascii=False, default=str) + "\n")
        self._fh.flush()
        return entry

    def close(self):
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
