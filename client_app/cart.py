# client_app/cart.py
"""
Carrinho e checkout
------------------------------------------------------------------------------
- subtotal = soma(preço x quantidade); total = subtotal + taxa de entrega.
- Um OrderItem por linha do carrinho, com o preço do momento.
- O carrinho só é limpo depois que a API confirma o pedido; em erro, nada
  muda e a ApiError sobe para a tela.
- O acerto do pagamento é feito pelo WhatsApp (link wa.me gerado aqui).
------------------------------------------------------------------------------
"""

import re
from dataclasses import dataclass
from decimal import Decimal
from urllib.parse import quote

PAYMENT_METHODS = ("pix", "card", "cash")


def money(value):
    return Decimal(str(value if value is not None else 0))


def brl(value):
    return f"R$ {money(value).quantize(Decimal('0.01'))}"


@dataclass
class CartLine:
    product: dict
    quantity: int = 1

    @property
    def price(self):
        return money(self.product["price"])

    @property
    def line_total(self):
        return self.price * self.quantity


class Cart:
    def __init__(self):
        self._lines = []

    @property
    def lines(self):
        return list(self._lines)

    @property
    def is_empty(self):
        return not self._lines

    def _find(self, product_id):
        return next((line for line in self._lines if line.product["id"] == product_id), None)

    def add(self, product):
        line = self._find(product["id"])
        if line:
            line.quantity += 1
        else:
            self._lines.append(CartLine(dict(product)))

    def remove(self, product_id):
        line = self._find(product_id)
        if line is None:
            return
        if line.quantity > 1:
            line.quantity -= 1
        else:
            self._lines.remove(line)

    def clear(self):
        self._lines.clear()

    @property
    def subtotal(self):
        return sum((line.line_total for line in self._lines), Decimal("0"))


@dataclass(frozen=True)
class CheckoutResult:
    order_id: int
    subtotal: Decimal
    total: Decimal
    whatsapp_url: str


def whatsapp_link(order_id, user, store, lines, subtotal, total, payment_method, change_for=None):
    """Link wa.me com a mensagem do pedido para o telefone da loja."""
    items_text = "\n".join(
        f"{line.quantity}x {line.product['name']} ({brl(line.price)})" for line in lines
    )
    change_text = f" (Troco para {brl(change_for)})" if change_for else ""
    message = (
        "*Novo Pedido no Delivery Pira!* 🚀\n\n"
        f"*Pedido:* #{order_id}\n"
        f"*Cliente:* {user.get('name')}\n"
        f"*Telefone:* {user.get('phone')}\n"
        f"*Endereço:* {user.get('address') or ''}\n"
        f"*Referência:* {user.get('reference') or ''}\n\n"
        f"*Itens:*\n{items_text}\n\n"
        f"*Subtotal:* {brl(subtotal)}\n"
        f"*Taxa de Entrega:* {brl(store.get('delivery_fee'))}\n"
        f"*TOTAL:* {brl(total)}\n\n"
        f"*Pagamento:* {payment_method.upper()}{change_text}"
    )
    phone = re.sub(r"\D", "", store.get("phone") or "")
    return f"https://wa.me/{phone}?text={quote(message)}"


def checkout(api, cart, user, store, payment_method, change_for=None):
    """Envia o pedido do carrinho para a loja selecionada.

    Levanta:
        ValueError: carrinho vazio ou forma de pagamento inválida.
        ApiError:   a API recusou o pedido (carrinho preservado).
    """
    if cart.is_empty:
        raise ValueError("Carrinho vazio.")
    if payment_method not in PAYMENT_METHODS:
        raise ValueError(f"Forma de pagamento inválida: {payment_method}")

    lines = cart.lines
    subtotal = cart.subtotal
    total = subtotal + money(store.get("delivery_fee"))
    if payment_method != "cash":
        change_for = None

    order_id = api.create_order({
        "client_id": user["id"],
        "store_id": store["id"],
        "items": [
            {"product_id": line.product["id"], "quantity": line.quantity, "price": float(line.price)}
            for line in lines
        ],
        "total": float(total),
        "payment_method": payment_method,
        "change_for": float(money(change_for)) if change_for else None,
    })

    cart.clear()
    return CheckoutResult(
        order_id=order_id,
        subtotal=subtotal,
        total=total,
        whatsapp_url=whatsapp_link(order_id, user, store, lines, subtotal, total, payment_method, change_for),
    )
