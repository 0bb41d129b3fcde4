# services/realtime.py
"""
Realtime (change feed de pedidos)
------------------------------------------------------------------------------
Publica eventos de linha (INSERT/UPDATE) da tabela `orders` para quem estiver
conectado, filtrados por coluna (ex.: `store_id=eq.5`).

Semântica:
- Entrega best-effort, no máximo uma vez por assinatura; sem fila offline
  e sem reenvio.
- A ordem de publicação é a ordem de commit (ver database.events).
- `Subscription` é um handle com escopo: `close()` (idempotente) ou `with`.

Falha em um callback é logada e não impede a entrega aos demais.
------------------------------------------------------------------------------
"""

import itertools
import logging
import threading
from dataclasses import dataclass, field

log = logging.getLogger(__name__)

EVENT_TYPES = ("INSERT", "UPDATE")


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    type: str
    new: dict
    old: dict = field(default_factory=dict)


@dataclass(frozen=True)
class RowFilter:
    column: str
    value: str

    def matches(self, row):
        return str(row.get(self.column)) == self.value

    def __str__(self):
        return f"{self.column}=eq.{self.value}"


def parse_filter(expr):
    """Interpreta `coluna=eq.valor`. Só o operador `eq` é suportado.

    Levanta:
        ValueError: expressão vazia ou fora do formato.
    """
    column, sep, rest = (expr or "").partition("=")
    op, dot, value = rest.partition(".")
    if not sep or not dot or op != "eq" or not column.strip() or value == "":
        raise ValueError(f"Filtro inválido: {expr!r} (use coluna=eq.valor)")
    return RowFilter(column.strip(), value)


class Subscription:
    """Handle de uma assinatura ativa."""

    def __init__(self, feed, sub_id, table, event, row_filter, callback):
        self._feed = feed
        self.id = sub_id
        self.table = table
        self.event = event
        self.row_filter = row_filter
        self.callback = callback
        self.closed = False

    def wants(self, change):
        return (
            not self.closed
            and change.table == self.table
            and change.type == self.event
            and self.row_filter.matches(change.new)
        )

    def close(self):
        if not self.closed:
            self.closed = True
            self._feed._remove(self.id)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


class ChangeFeed:
    """Registro de assinaturas e fan-out de eventos."""

    def __init__(self):
        self._subs = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def subscribe(self, table, event, row_filter, callback):
        if event not in EVENT_TYPES:
            raise ValueError(f"Evento inválido: {event}")
        if isinstance(row_filter, str):
            row_filter = parse_filter(row_filter)
        with self._lock:
            sub = Subscription(self, next(self._ids), table, event, row_filter, callback)
            self._subs[sub.id] = sub
        log.debug("assinatura #%s: %s %s %s", sub.id, table, event, row_filter)
        return sub

    def _remove(self, sub_id):
        with self._lock:
            self._subs.pop(sub_id, None)
        log.debug("assinatura #%s encerrada", sub_id)

    @property
    def active(self):
        with self._lock:
            return len(self._subs)

    def publish(self, change):
        """Entrega `change` às assinaturas compatíveis; retorna quantas receberam."""
        with self._lock:
            targets = [s for s in self._subs.values() if s.wants(change)]

        delivered = 0
        for sub in targets:
            try:
                sub.callback(change)
                delivered += 1
            except Exception:
                log.exception("callback da assinatura #%s falhou", sub.id)
        return delivered
