# client_app/realtime.py
"""
Assinatura remota do change feed (SSE)
------------------------------------------------------------------------------
RemoteChangeFeed tem a mesma interface de services.realtime.ChangeFeed
(`subscribe(table, event, filter, callback)`), mas lê o stream
GET /api/realtime/orders numa thread por assinatura.

Se a conexão cair, a assinatura termina sem reconectar: eventos perdidos
só voltam na próxima recarga da lista via REST.
------------------------------------------------------------------------------
"""

import json
import logging
import threading
import requests
from services.realtime import ChangeEvent, RowFilter

log = logging.getLogger(__name__)

JOIN_TIMEOUT = 2.0


def iter_sse(lines):
    """Agrupa linhas SSE em (event, data). Comentários (':') são ignorados."""
    event, data = None, []
    for raw in lines:
        line = raw.decode("utf-8") if isinstance(raw, bytes) else raw
        if line == "":
            if data:
                yield event, "\n".join(data)
            event, data = None, []
        elif line.startswith(":"):
            continue
        elif line.startswith("event:"):
            event = line[len("event:"):].strip()
        elif line.startswith("data:"):
            data.append(line[len("data:"):].strip())


def to_change(event, data):
    payload = json.loads(data)
    return ChangeEvent(
        table=payload.get("table", "orders"),
        type=payload.get("type", event),
        new=payload.get("new") or {},
        old=payload.get("old") or {},
    )


class RemoteSubscription:
    """Depois de `close()` nenhum evento é entregue, nem os já lidos do socket."""

    def __init__(self, response, join_timeout=JOIN_TIMEOUT):
        self._response = response
        self._thread = None
        self.join_timeout = join_timeout
        self.closed = False

    def close(self):
        if self.closed:
            return
        self.closed = True
        self._response.close()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(self.join_timeout)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


class RemoteChangeFeed:
    def __init__(self, base_url, http=None, connect_timeout=10.0):
        self.base_url = base_url.rstrip("/")
        self.http = http or requests.Session()
        self.connect_timeout = connect_timeout

    def subscribe(self, table, event, row_filter, callback):
        if table != "orders":
            raise ValueError(f"Tabela sem stream: {table}")
        if isinstance(row_filter, RowFilter):
            row_filter = str(row_filter)

        response = self.http.get(
            f"{self.base_url}/api/realtime/orders",
            params={"event": event, "filter": row_filter},
            stream=True,
            timeout=(self.connect_timeout, None),
        )
        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError:
            response.close()
            raise

        sub = RemoteSubscription(response)

        def _reader():
            try:
                for ev, data in iter_sse(response.iter_lines(decode_unicode=True)):
                    if sub.closed:
                        break
                    callback(to_change(ev, data))
            # fechar a resposta no meio da leitura pode levantar AttributeError no urllib3
            except (requests.exceptions.RequestException, AttributeError, ValueError) as e:
                if not sub.closed:
                    log.warning("stream realtime encerrado: %s", e)
            log.info("stream realtime finalizado (%s %s)", event, row_filter)

        sub._thread = threading.Thread(target=_reader, name=f"realtime-{event}", daemon=True)
        sub._thread.start()
        return sub
