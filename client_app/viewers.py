# client_app/viewers.py
"""
Visões por papel (cliente x parceiro)
------------------------------------------------------------------------------
As duas variantes têm as mesmas capacidades:

- fetch_orders()                  -> lista de pedidos do papel
- subscribe_to_order_events(feed) -> Subscription (handle com close())

ClientViewer:  ouve UPDATE em orders com client_id=eq.<id do usuário>
               e avisa "Seu pedido #<id> está <status>".
PartnerViewer: ouve INSERT em orders com store_id=eq.<id da loja>
               e avisa "Novo pedido recebido! #<id>".

Cada evento recarrega a lista (repetir é seguro) e enfileira um aviso.
`viewer_for` escolhe a variante uma vez, quando a sessão é estabelecida
(parceiro sem loja fica sem variante e sem assinatura).
------------------------------------------------------------------------------
"""

import logging
from services.order_lifecycle import status_label

log = logging.getLogger(__name__)


class _Viewer:
    event = None

    def __init__(self, api, notifications, on_orders=None):
        self.api = api
        self.notifications = notifications
        self.on_orders = on_orders
        self.orders = []

    def row_filter(self):
        raise NotImplementedError

    def load_orders(self):
        raise NotImplementedError

    def message_for(self, row):
        raise NotImplementedError

    def fetch_orders(self):
        self.orders = self.load_orders()
        if self.on_orders:
            self.on_orders(self.orders)
        return self.orders

    def handle_event(self, change):
        try:
            self.fetch_orders()
        except Exception:
            # a lista atual continua valendo; o aviso ainda é mostrado
            log.exception("falha ao recarregar pedidos após evento %s", change.type)
        self.notifications.push(self.message_for(change.new))

    def subscribe_to_order_events(self, feed):
        return feed.subscribe("orders", self.event, self.row_filter(), self.handle_event)


class ClientViewer(_Viewer):
    event = "UPDATE"

    def __init__(self, api, notifications, user, on_orders=None):
        super().__init__(api, notifications, on_orders)
        self.user = user

    def row_filter(self):
        return f"client_id=eq.{self.user['id']}"

    def load_orders(self):
        return self.api.client_orders(self.user["id"])

    def message_for(self, row):
        return f"Seu pedido #{row.get('id')} está {status_label(row.get('status'))}"


class PartnerViewer(_Viewer):
    event = "INSERT"

    def __init__(self, api, notifications, store, on_orders=None):
        super().__init__(api, notifications, on_orders)
        self.store = store

    def row_filter(self):
        return f"store_id=eq.{self.store['id']}"

    def load_orders(self):
        return self.api.store_orders(self.store["id"])

    def message_for(self, row):
        return f"Novo pedido recebido! #{row.get('id')}"


def viewer_for(user, store, api, notifications, on_orders=None):
    """Escolhe a variante pelo papel do usuário.

    Parceiro sem loja associada não tem o que assinar: retorna None.
    """
    if user.get("role") == "partner":
        if not store:
            return None
        return PartnerViewer(api, notifications, store, on_orders)
    return ClientViewer(api, notifications, user, on_orders)
