# routes/realtime.py
"""
Stream de mudanças de pedidos (Server-Sent Events)
-------------------------------------------------------------------------------
GET /api/realtime/orders?event=INSERT&filter=store_id=eq.5

- Abre uma assinatura no ChangeFeed do app com o filtro informado quando o
  stream começa a ser lido.
- Cada evento vira um frame SSE:  "event: INSERT\\ndata: {...}\\n\\n".
- Comentários de heartbeat a cada REALTIME_HEARTBEAT_SECONDS mantêm a conexão.
- Quando o cliente desconecta, o gerador é fechado e a assinatura também.

Sem reenvio: quem estiver desconectado perde os eventos e deve recarregar
a lista via REST.
-------------------------------------------------------------------------------
"""

import json
import queue
import logging
from flask import Blueprint, Response, current_app, request
from services.realtime import EVENT_TYPES, parse_filter
from utils.responses import json_error

realtime_bp = Blueprint("realtime", __name__)
log = logging.getLogger(__name__)

# colunas que fazem sentido filtrar em `orders`
FILTER_COLUMNS = ("store_id", "client_id", "id")


def sse_frame(change):
    payload = {"table": change.table, "type": change.type, "new": change.new, "old": change.old}
    return f"event: {change.type}\ndata: {json.dumps(payload, ensure_ascii=False)}\n\n"


def _stream(feed, event, row_filter, heartbeat):
    inbox = queue.Queue()
    subscription = feed.subscribe("orders", event, row_filter, inbox.put)
    try:
        yield ": conectado\n\n"
        while True:
            try:
                change = inbox.get(timeout=heartbeat)
            except queue.Empty:
                yield ": ping\n\n"
                continue
            yield sse_frame(change)
    finally:
        subscription.close()


@realtime_bp.route("/orders", methods=["GET"])
def order_changes():
    event = (request.args.get("event") or "").upper()
    if event not in EVENT_TYPES:
        return json_error("event deve ser INSERT ou UPDATE.", 400)
    try:
        row_filter = parse_filter(request.args.get("filter"))
    except ValueError as e:
        return json_error(str(e), 400)
    if row_filter.column not in FILTER_COLUMNS:
        return json_error(f"Filtro não suportado: {row_filter.column}", 400)

    feed = current_app.extensions["change_feed"]
    heartbeat = current_app.config["REALTIME_HEARTBEAT_SECONDS"]
    log.info("stream aberto: %s %s", event, row_filter)

    return Response(
        _stream(feed, event, row_filter, heartbeat),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
