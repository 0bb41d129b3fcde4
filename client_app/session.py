# client_app/session.py
"""
Sessão do app (estado local)
------------------------------------------------------------------------------
Guarda usuário, loja, carrinho, tela atual, pedidos e avisos.

Regra da assinatura realtime: existe no máximo uma, ligada ao contexto
(usuário + loja). Toda troca de contexto (login, restore, logout,
switch_context) fecha a assinatura anterior ANTES de abrir a nova; assim
filtros antigos não vazam eventos para outro usuário.

Persistência opcional de user/store num arquivo JSON (equivalente ao
localStorage do app web). Avisos não são persistidos.
------------------------------------------------------------------------------
"""

import json
import logging
import os

import requests

from .cart import Cart, checkout
from .notifications import NotificationCenter
from .viewers import viewer_for, PartnerViewer

log = logging.getLogger(__name__)

PARTNER_SECRET_CODE = "0382690@"

STORE_REQUIRED_FIELDS = ("name", "phone", "address")


def check_protocol(code):
    """Gate de cadastro de parceiro (só na UI; o servidor não valida)."""
    return code == PARTNER_SECRET_CODE


class AppSession:
    def __init__(self, api, feed, storage_path=None):
        self.api = api
        self.feed = feed
        self.storage_path = storage_path
        self.user = None
        self.store = None
        self.view = "home"
        self.cart = Cart()
        self.selected_store = None
        self.notifications = NotificationCenter()
        self.viewer = None
        self._subscription = None
        self.last_error = None

    # ---- contexto -----------------------------------------------------------
    @property
    def subscription(self):
        return self._subscription

    def _release(self):
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None
        self.viewer = None

    def _establish(self):
        self._release()
        if not self.user:
            return
        self.viewer = viewer_for(self.user, self.store, self.api, self.notifications)
        if self.viewer is None:
            log.warning("sessão: parceiro #%s sem loja, nada a assinar", self.user.get("id"))
            return
        try:
            self._subscription = self.viewer.subscribe_to_order_events(self.feed)
        except requests.exceptions.RequestException as e:
            # sem stream os avisos se perdem; a lista ainda vem pelo REST
            log.warning("sessão: realtime indisponível (%s)", e)
            return
        log.info("sessão: %s assinando %s", type(self.viewer).__name__, self.viewer.row_filter())

    def switch_context(self, user, store=None):
        """Troca usuário/loja: libera a assinatura atual e cria a nova."""
        self.user = user
        self.store = store
        self._establish()
        self._save()

    def login(self, phone, pin):
        user, store = self.api.login(phone, pin)
        self.switch_context(user, store)
        self.view = "partner_dashboard" if user.get("role") == "partner" else "home"
        return user

    def register_client(self, user_data):
        data = dict(user_data, role="client")
        user_id = self.api.register(data)
        user = {k: v for k, v in data.items() if k != "pin"}
        user["id"] = user_id
        self.switch_context(user, None)
        self.view = "home"
        return user

    def register_partner(self, user_data, store_data, protocol, files=None):
        """Cadastro de parceiro: gate do protocolo -> usuário -> loja."""
        if not check_protocol(protocol):
            raise PermissionError("Código de protocolo inválido. Entre em contato com o desenvolvedor.")
        missing = [f for f in STORE_REQUIRED_FIELDS if not str(store_data.get(f) or "").strip()]
        if missing:
            raise ValueError(f"Preencha os dados da loja: {', '.join(missing)}.")
        data = dict(user_data, role="partner")
        user_id = self.api.register(data)
        store = self.api.create_store(dict(store_data, owner_id=user_id), files=files)
        user = {k: v for k, v in data.items() if k != "pin"}
        user["id"] = user_id
        self.switch_context(user, store)
        self.view = "partner_dashboard"
        return user, store

    def logout(self):
        self._release()
        self.user = None
        self.store = None
        self.cart.clear()
        self.view = "home"
        self._save()

    def close(self):
        self._release()

    # ---- persistência -------------------------------------------------------
    def _save(self):
        if not self.storage_path:
            return
        with open(self.storage_path, "w", encoding="utf-8") as fh:
            json.dump({"user": self.user, "store": self.store}, fh, ensure_ascii=False)

    def restore(self):
        """Recarrega user/store salvos e reabre a assinatura."""
        if not self.storage_path or not os.path.isfile(self.storage_path):
            return False
        with open(self.storage_path, encoding="utf-8") as fh:
            saved = json.load(fh)
        if not saved.get("user"):
            return False
        self.switch_context(saved["user"], saved.get("store"))
        return True

    # ---- ações --------------------------------------------------------------
    @property
    def orders(self):
        return self.viewer.orders if self.viewer else []

    def refresh_orders(self):
        return self.viewer.fetch_orders() if self.viewer else []

    def open_store(self, store):
        """Seleciona a loja; o carrinho é de uma loja só."""
        if not self.selected_store or self.selected_store["id"] != store["id"]:
            self.cart.clear()
        self.selected_store = store
        self.view = "store"
        return self.api.products(store["id"])

    def place_order(self, payment_method, change_for=None):
        result = checkout(self.api, self.cart, self.user, self.selected_store, payment_method, change_for)
        self.view = "orders"
        self.refresh_orders()
        return result

    def _require_store(self):
        if not isinstance(self.viewer, PartnerViewer):
            raise PermissionError("Ação disponível só para parceiros com loja.")
        return self.store

    def toggle_store_status(self):
        self._require_store()
        new_status = "offline" if self.store.get("status") == "online" else "online"
        self.api.set_store_status(self.store["id"], new_status)
        self.store = dict(self.store, status=new_status)
        self._save()
        return new_status

    def update_order_status(self, order_id, status):
        self.api.set_order_status(order_id, status)
        return self.refresh_orders()

    def store_products(self):
        """Cardápio da loja do parceiro (só produtos disponíveis)."""
        return self.api.products(self._require_store()["id"])

    def add_product(self, product_data, photo=None):
        store = self._require_store()
        return self.api.create_product(dict(product_data, store_id=store["id"]), photo=photo)

    def delete_product(self, product_id):
        self._require_store()
        self.api.delete_product(product_id)
        return self.store_products()
