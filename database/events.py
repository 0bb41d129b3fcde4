# database/events.py
"""
Captura de mudanças da tabela `orders`
-------------------------------------------------------------------------------
- after_insert / after_update (mapper) enfileiram um ChangeEvent em
  `session.info` durante o flush.
- after_commit move a fila para `g` (contexto da aplicação atual).
- `publish_committed` (teardown do request) entrega a fila ao ChangeFeed
  (`current_app.extensions["change_feed"]`), na ordem do commit. Os
  callbacks rodam fora do commit e podem usar a sessão normalmente.
- after_rollback descarta a fila: transação desfeita não gera evento.

UPDATE só é emitido quando alguma coluna realmente mudou (o SQLAlchemy não
emite UPDATE para atribuição com o mesmo valor).
-------------------------------------------------------------------------------
"""

import logging
from datetime import datetime
from decimal import Decimal

from flask import current_app, g, has_app_context
from sqlalchemy import event, inspect
from sqlalchemy.orm import Session

from .models import Order
from services.realtime import ChangeEvent

log = logging.getLogger(__name__)

_PENDING_KEY = "pending_changes"
_COMMITTED_KEY = "committed_changes"


def _row(target):
    return target.to_dict()


def _jsonable(value):
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _old_row(target):
    """Linha nova com os valores anteriores das colunas alteradas."""
    old = _row(target)
    state = inspect(target)
    for attr in state.mapper.column_attrs:
        hist = state.attrs[attr.key].history
        if hist.deleted:
            old[attr.key] = _jsonable(hist.deleted[0])
    return old


@event.listens_for(Order, "after_insert")
def _order_inserted(mapper, connection, target):
    session = inspect(target).session
    if session is not None:
        session.info.setdefault(_PENDING_KEY, []).append(
            ChangeEvent("orders", "INSERT", _row(target))
        )


@event.listens_for(Order, "after_update")
def _order_updated(mapper, connection, target):
    session = inspect(target).session
    if session is None or not session.is_modified(target, include_collections=False):
        return
    session.info.setdefault(_PENDING_KEY, []).append(
        ChangeEvent("orders", "UPDATE", _row(target), _old_row(target))
    )


@event.listens_for(Session, "after_commit")
def _stash_committed(session):
    pending = session.info.pop(_PENDING_KEY, None)
    if pending and has_app_context():
        g.setdefault(_COMMITTED_KEY, []).extend(pending)


def publish_committed(exc=None):
    """Publica os eventos já commitados no contexto atual. Retorna quantos publicou."""
    pending = g.pop(_COMMITTED_KEY, None)
    if not pending:
        return 0
    feed = current_app.extensions.get("change_feed")
    if feed is None:
        return 0
    for change in pending:
        delivered = feed.publish(change)
        log.debug("evento %s pedido #%s entregue a %s assinatura(s)",
                  change.type, change.new.get("id"), delivered)
    return len(pending)


@event.listens_for(Session, "after_rollback")
def _discard_rolled_back(session):
    session.info.pop(_PENDING_KEY, None)
