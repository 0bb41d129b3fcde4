# tests/test_client_app.py
from decimal import Decimal
from urllib.parse import unquote

import pytest
import requests

from client_app import (
    ApiError,
    ApiClient,
    AppSession,
    Cart,
    ClientViewer,
    NotificationCenter,
    PartnerViewer,
    checkout,
    viewer_for,
)


def test_notification_dismiss_removes_only_that_position():
    center = NotificationCenter()
    for msg in ("a", "b", "c"):
        center.push(msg)
    center.dismiss(1)
    assert center.items == ["a", "c"]
    center.dismiss(5)
    assert center.items == ["a", "c"]


def test_cart_add_remove_and_subtotal():
    cart = Cart()
    burger = {"id": 1, "name": "X-Burger", "price": 10.0}
    soda = {"id": 2, "name": "Refri", "price": 4.5}
    cart.add(burger)
    cart.add(burger)
    cart.add(soda)
    assert [(line.product["id"], line.quantity) for line in cart.lines] == [(1, 2), (2, 1)]
    assert cart.subtotal == Decimal("24.5")

    cart.remove(2)
    cart.remove(1)
    assert [(line.product["id"], line.quantity) for line in cart.lines] == [(1, 1)]


def test_viewer_for_picks_variant_by_role():
    notes = NotificationCenter()
    client = viewer_for({"id": 1, "role": "client"}, None, api=None, notifications=notes)
    partner = viewer_for({"id": 2, "role": "partner"}, {"id": 9}, api=None, notifications=notes)
    assert isinstance(client, ClientViewer) and client.row_filter() == "client_id=eq.1"
    assert isinstance(partner, PartnerViewer) and partner.row_filter() == "store_id=eq.9"
    assert viewer_for({"id": 3, "role": "partner"}, None, api=None, notifications=notes) is None


def test_scenario_client_orders_two_items(api, client, make_store, make_product, feed):
    store = make_store(delivery_fee=5.0)
    product = make_product(store["id"], price=10.0)

    session = AppSession(api, feed)
    session.register_client({"name": "Ana", "phone": "119999", "pin": "123456"})
    session.logout()
    user = session.login("119999", "123456")
    assert user["name"] == "Ana"
    assert session.view == "home"

    online = api.stores()
    assert all(s["status"] == "online" for s in online)
    shop = next(s for s in online if s["id"] == store["id"])

    products = session.open_store(shop)
    session.cart.add(products[0])
    session.cart.add(products[0])
    result = session.place_order("pix")

    assert result.total == Decimal("25.0")
    assert result.whatsapp_url.startswith("https://wa.me/98988887777?text=")
    assert "*TOTAL:* R$ 25.00" in unquote(result.whatsapp_url)
    assert session.cart.is_empty
    assert session.view == "orders"
    assert session.orders[0]["id"] == result.order_id
    assert session.orders[0]["total"] == 25.0

    from database import db
    from database.models import OrderItem
    with client.application.app_context():
        rows = db.session.query(OrderItem).filter_by(order_id=result.order_id).all()
        assert [(r.product_id, r.quantity, float(r.price)) for r in rows] == [(product["id"], 2, 10.0)]


def test_failed_checkout_keeps_cart():
    class Failing:
        def request(self, method, url, **kwargs):
            class Res:
                status_code = 500

                def json(self):
                    return {"error": "banco fora do ar"}
            return Res()

    cart = Cart()
    cart.add({"id": 1, "name": "Pão", "price": 2})
    store = {"id": 1, "phone": "98", "delivery_fee": 1}

    with pytest.raises(ApiError) as err:
        checkout(ApiClient("", http=Failing()), cart, {"id": 1}, store, "pix")
    assert err.value.status == 500
    assert err.value.message == "banco fora do ar"
    assert [line.quantity for line in cart.lines] == [1]


def test_empty_cart_checkout_is_refused(api):
    with pytest.raises(ValueError):
        checkout(api, Cart(), {"id": 1}, {"id": 1, "delivery_fee": 0}, "pix")


def test_partner_gets_notified_of_new_orders_and_client_of_status(api, client, feed, register, make_store):
    store = make_store(phone="889999", delivery_fee=0)
    partner = AppSession(api, feed)
    partner.login("889999", "0000")
    assert isinstance(partner.viewer, PartnerViewer)
    assert partner.view == "partner_dashboard"

    buyer = AppSession(api, feed)
    buyer.register_client({"name": "Ana", "phone": "119999", "pin": "123456"})
    buyer.selected_store = store
    buyer.cart.add({"id": 1, "name": "Pão", "price": 2})
    order_id = buyer.place_order("cash", change_for=10).order_id

    assert partner.notifications.items == [f"Novo pedido recebido! #{order_id}"]
    assert partner.orders[0]["id"] == order_id
    assert buyer.notifications.items == []

    partner.update_order_status(order_id, "out_for_delivery")
    assert buyer.notifications.items == [f"Seu pedido #{order_id} está Saiu para entrega"]
    assert buyer.orders[0]["status"] == "out_for_delivery"
    assert partner.notifications.items == [f"Novo pedido recebido! #{order_id}"]


def test_switching_context_releases_previous_subscription(api, feed, register, make_store):
    make_store(phone="889999")
    register(phone="119999")
    session = AppSession(api, feed)

    session.login("889999", "0000")
    first = session.subscription
    assert feed.active == 1

    session.login("119999", "123456")
    assert first.closed
    assert feed.active == 1
    assert isinstance(session.viewer, ClientViewer)

    session.logout()
    assert session.subscription is None
    assert feed.active == 0


def test_toggle_store_status_round_trip(api, feed, make_store):
    store = make_store(phone="889999")
    session = AppSession(api, feed)
    session.login("889999", "0000")

    assert session.toggle_store_status() == "offline"
    assert store["id"] not in [s["id"] for s in api.stores()]
    assert session.toggle_store_status() == "online"
    assert store["id"] in [s["id"] for s in api.stores()]


def test_partner_registration_requires_protocol_code(api, feed):
    session = AppSession(api, feed)
    store_data = {"name": "Loja", "phone": "98", "address": "Rua", "category": "Lojas", "delivery_fee": 0}
    with pytest.raises(PermissionError):
        session.register_partner({"name": "P", "phone": "55", "pin": "1"}, store_data, protocol="errado")

    user, store = session.register_partner({"name": "P", "phone": "55", "pin": "1"}, store_data, protocol="0382690@")
    assert store["owner_id"] == user["id"]
    assert isinstance(session.viewer, PartnerViewer)


def test_session_restore_reopens_subscription(api, feed, tmp_path, register):
    register(phone="119999")
    path = str(tmp_path / "session.json")
    first = AppSession(api, feed, storage_path=path)
    first.login("119999", "123456")
    first.close()
    assert feed.active == 0

    second = AppSession(api, feed, storage_path=path)
    assert second.restore() is True
    assert second.user["phone"] == "119999"
    assert feed.active == 1
    assert second.notifications.items == []


def test_partner_registration_checks_store_before_creating_user(api, feed):
    session = AppSession(api, feed)
    with pytest.raises(ValueError):
        session.register_partner({"name": "P", "phone": "55", "pin": "1"},
                                 {"phone": "98", "address": "Rua"}, protocol="0382690@")

    with pytest.raises(ApiError) as err:
        api.login("55", "1")
    assert err.value.status == 401
    assert session.user is None


def test_partner_without_store_can_log_in(api, feed, register):
    register(name="Parceiro", phone="77", pin="1", role="partner")
    session = AppSession(api, feed)

    user = session.login("77", "1")
    assert user["role"] == "partner"
    assert session.view == "partner_dashboard"
    assert session.viewer is None
    assert session.subscription is None
    assert feed.active == 0
    assert session.orders == []
    with pytest.raises(PermissionError):
        session.toggle_store_status()


def test_login_survives_realtime_failure(api, register, tmp_path):
    class DownFeed:
        def subscribe(self, table, event, row_filter, callback):
            raise requests.exceptions.ConnectionError("recusado")

    register(phone="119999")
    path = tmp_path / "session.json"
    session = AppSession(api, DownFeed(), storage_path=str(path))

    user = session.login("119999", "123456")
    assert session.user == user
    assert isinstance(session.viewer, ClientViewer)
    assert session.subscription is None
    assert session.refresh_orders() == []
    assert path.is_file()


def test_partner_manages_products_from_session(api, feed, make_store):
    make_store(phone="889999")
    session = AppSession(api, feed)
    session.login("889999", "0000")

    created = session.add_product({"name": "Coxinha", "price": 6.5, "category": "Salgados"})
    assert created["store_id"] == session.store["id"]
    assert [p["id"] for p in session.store_products()] == [created["id"]]

    assert session.delete_product(created["id"]) == []


def test_product_actions_require_a_partner_store(api, feed, register):
    register(phone="119999")
    session = AppSession(api, feed)
    session.login("119999", "123456")
    with pytest.raises(PermissionError):
        session.add_product({"name": "X", "price": 1})
