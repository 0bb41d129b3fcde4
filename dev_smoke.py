# dev_smoke.py
"""
Smoke test ponta a ponta contra um servidor rodando (BASE_URL).

Fluxo:
  1) /health
  2) parceiro registra, cria loja e produto (10.00, taxa 5.00)
  3) cliente registra, loga e vê a loja em /api/stores
  4) parceiro assina INSERT via SSE; cliente faz pedido 2x -> total 25.00
  5) parceiro recebe o aviso; muda o status; cliente recebe o aviso
  6) loja offline some de /api/stores e volta ao ficar online

Uso:
  BASE_URL=http://127.0.0.1:5000 python dev_smoke.py
"""
import os
import sys
import time
import requests

from client_app import ApiClient, AppSession, RemoteChangeFeed, PARTNER_SECRET_CODE

BASE = os.getenv("BASE_URL", "http://127.0.0.1:5000")


def assert_true(cond, msg):
    if not cond:
        print(f"[FALHA] {msg}")
        sys.exit(1)
    else:
        print(f"[OK] {msg}")


def wait_for(predicate, timeout=5.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.1)
    return False


def main():
    print(f"== Smoke test em {BASE} ==")
    suffix = str(int(time.time()))[-6:]

    r = requests.get(f"{BASE}/health", timeout=20)
    assert_true(r.status_code == 200 and r.json().get("status") == "ok", "/health OK")

    api = ApiClient(BASE)
    feed = RemoteChangeFeed(BASE)

    partner = AppSession(api, feed)
    _, store = partner.register_partner(
        {"name": "Parceiro", "phone": f"98{suffix}", "pin": "1234"},
        {"name": f"Loja {suffix}", "phone": "98 98888-7777", "address": "Rua A",
         "category": "Restaurantes", "delivery_fee": 5.0},
        protocol=PARTNER_SECRET_CODE,
    )
    product = api.create_product({"store_id": store["id"], "name": "X-Burger", "price": 10.0, "category": "Comida"})
    assert_true(product["available"], "produto criado e disponível")

    buyer = AppSession(api, feed)
    buyer.register_client({"name": "Ana", "phone": f"11{suffix}", "pin": "123456"})
    buyer.logout()
    buyer.login(f"11{suffix}", "123456")
    shop = next((s for s in api.stores() if s["id"] == store["id"]), None)
    assert_true(shop is not None, "loja aparece em /api/stores")

    buyer.open_store(shop)
    buyer.cart.add(product)
    buyer.cart.add(product)
    result = buyer.place_order("pix")
    assert_true(float(result.total) == 25.0, "total = 2 x 10.00 + 5.00")

    assert_true(wait_for(lambda: len(partner.notifications) == 1), "parceiro avisado do novo pedido")
    partner.update_order_status(result.order_id, "preparing")
    assert_true(wait_for(lambda: len(buyer.notifications) == 1), "cliente avisado da mudança de status")
    print(f"       {buyer.notifications.items[0]}")

    partner.toggle_store_status()
    assert_true(store["id"] not in [s["id"] for s in api.stores()], "loja offline some da lista")
    partner.toggle_store_status()
    assert_true(store["id"] in [s["id"] for s in api.stores()], "loja online volta para a lista")

    partner.close()
    buyer.close()
    print("== Smoke test finalizado com sucesso ==")


if __name__ == "__main__":
    try:
        main()
    except requests.exceptions.RequestException as e:
        print(f"[FALHA] Erro de rede: {e}")
        sys.exit(1)
