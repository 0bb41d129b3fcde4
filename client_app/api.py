# client_app/api.py
"""
Cliente HTTP da API Delivery Pira
------------------------------------------------------------------------------
Um método por rota REST. Respostas não-2xx viram ApiError com a mensagem
do campo "error". Sem retentativas: o erro sobe direto para quem chamou
(a única recuperação do app é mostrar a mensagem).
------------------------------------------------------------------------------
"""

import os
import logging
import requests
from requests.adapters import HTTPAdapter

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "30.0"))


class ApiError(Exception):
    def __init__(self, status, message):
        super().__init__(message)
        self.status = status
        self.message = message


class ApiClient:
    def __init__(self, base_url="", http=None, timeout=DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        if http is None:
            http = requests.Session()
            adapter = HTTPAdapter(pool_connections=5, pool_maxsize=5, max_retries=0)
            http.mount("https://", adapter)
            http.mount("http://", adapter)
            http.headers.update({"Accept": "application/json"})
        self.http = http

    def _request(self, method, path, **kwargs):
        try:
            res = self.http.request(method, f"{self.base_url}{path}", timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            log.error("API erro de rede em %s %s: %s", method, path, e)
            raise ApiError(None, f"Falha de conexão: {e}") from e

        try:
            body = res.json()
        except ValueError:
            raise ApiError(res.status_code, "O servidor retornou uma resposta inválida.")

        if not 200 <= res.status_code < 300:
            message = body.get("error") if isinstance(body, dict) else None
            raise ApiError(res.status_code, message or f"HTTP {res.status_code}")
        return body

    # ---- auth ---------------------------------------------------------------
    def register(self, user_data):
        return self._request("POST", "/api/auth/register", json=user_data)["id"]

    def login(self, phone, pin):
        body = self._request("POST", "/api/auth/login", json={"phone": phone, "pin": pin})
        return body["user"], body.get("store")

    # ---- vitrine ------------------------------------------------------------
    def stores(self):
        return self._request("GET", "/api/stores")

    def products(self, store_id):
        return self._request("GET", f"/api/stores/{store_id}/products")

    # ---- pedidos ------------------------------------------------------------
    def create_order(self, payload):
        return self._request("POST", "/api/orders", json=payload)["orderId"]

    def client_orders(self, client_id):
        return self._request("GET", f"/api/orders/client/{client_id}")

    def store_orders(self, store_id):
        return self._request("GET", f"/api/orders/store/{store_id}")

    def set_order_status(self, order_id, status):
        return self._request("PATCH", f"/api/orders/{order_id}/status", json={"status": status})

    # ---- parceiro -----------------------------------------------------------
    def create_store(self, store_data, files=None):
        if files:
            return self._request("POST", "/api/partner/store", data=store_data, files=files)
        return self._request("POST", "/api/partner/store", json=store_data)

    def create_product(self, product_data, photo=None):
        if photo:
            return self._request("POST", "/api/partner/products", data=product_data, files={"photo": photo})
        return self._request("POST", "/api/partner/products", json=product_data)

    def delete_product(self, product_id):
        return self._request("DELETE", f"/api/partner/products/{product_id}")

    def set_store_status(self, store_id, status):
        return self._request("PATCH", f"/api/partner/store/{store_id}/status", json={"status": status})
