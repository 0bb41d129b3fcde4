# routes/orders.py
import logging
from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError
from database.models import Order, OrderItem, Store, User
from decorators.datastore_decorator import require_datastore
from services.order_lifecycle import InvalidTransition, set_status
from utils.responses import json_error, db_error_message, parse_money

# =============================================================================
# Pedidos
# -----------------------------------------------------------------------------
# - POST   /api/orders                 cria Order + OrderItems numa transação
# - GET    /api/orders/client/<id>     pedidos do cliente (+ store_name)
# - GET    /api/orders/store/<id>      pedidos da loja (+ dados do cliente)
# - PATCH  /api/orders/<id>/status     troca de status (política configurável)
#
# O total vem calculado do app e é gravado sem revalidação.
# Os commits disparam os eventos de realtime (database.events).
# =============================================================================

orders_bp = Blueprint("orders", __name__)
log = logging.getLogger(__name__)

PAYMENT_METHODS = ("pix", "card", "cash")


def _parse_items(raw_items):
    """Valida as linhas do carrinho: [{product_id, quantity, price}, ...]."""
    if not isinstance(raw_items, list) or not raw_items:
        raise ValueError("items deve ser uma lista não vazia.")
    items = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            raise ValueError("item inválido.")
        try:
            quantity = int(raw.get("quantity"))
        except (TypeError, ValueError):
            raise ValueError("quantity inválida.")
        if quantity < 1:
            raise ValueError("quantity deve ser >= 1.")
        items.append(OrderItem(
            product_id=raw.get("product_id"),
            quantity=quantity,
            price=parse_money(raw.get("price"), "price"),
        ))
    return items


@orders_bp.route("", methods=["POST"])
@require_datastore
def create_order():
    """Criar pedido (status inicial `pending`).

    Corpo JSON:
        {
          "client_id": 1, "store_id": 2,
          "items": [{"product_id": 10, "quantity": 2, "price": 10.0}],
          "total": 25.0,
          "payment_method": "pix" | "card" | "cash",
          "change_for": 50.0          # só considerado quando cash
        }

    Respostas:
      200: {"orderId": <id>}
      400: corpo inválido
      500: erro do banco (nada é gravado; pedido e itens são atômicos)
    """
    data = request.get_json(force=True, silent=True)
    if not isinstance(data, dict):
        return json_error("Corpo JSON inválido.", 400)

    payment_method = data.get("payment_method")
    payment_method = payment_method.strip().lower() if isinstance(payment_method, str) else ""
    if payment_method not in PAYMENT_METHODS:
        return json_error("payment_method deve ser pix, card ou cash.", 400)
    if data.get("client_id") is None or data.get("store_id") is None:
        return json_error("client_id e store_id são obrigatórios.", 400)

    try:
        items = _parse_items(data.get("items"))
        total = parse_money(data.get("total"), "total")
        change_for = None
        if payment_method == "cash":
            change_for = parse_money(data.get("change_for"), "change_for", required=False)
    except ValueError as e:
        return json_error(str(e), 400)

    session = request.datastore.session
    order = Order(
        client_id=data["client_id"],
        store_id=data["store_id"],
        total=total,
        payment_method=payment_method,
        change_for=change_for,
        items=items,
    )
    try:
        session.add(order)
        session.commit()
    except SQLAlchemyError as ex:
        session.rollback()
        log.error("Erro ao criar pedido: %s", ex.__class__.__name__)
        return json_error(db_error_message(ex), 500)

    log.info("pedido #%s criado (loja %s, %s itens)", order.id, order.store_id, len(items))
    return jsonify({"orderId": order.id}), 200


@orders_bp.route("/client/<int:client_id>", methods=["GET"])
@require_datastore
def client_orders(client_id):
    """Pedidos do cliente, mais recentes primeiro, com o nome da loja."""
    rows = (
        request.datastore.session.query(Order, Store.name)
        .outerjoin(Store, Store.id == Order.store_id)
        .filter(Order.client_id == client_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )
    result = []
    for order, store_name in rows:
        d = order.to_dict()
        d["store_name"] = store_name
        result.append(d)
    return jsonify(result)


@orders_bp.route("/store/<int:store_id>", methods=["GET"])
@require_datastore
def store_orders(store_id):
    """Pedidos da loja, mais recentes primeiro, com nome/telefone/endereço do cliente."""
    rows = (
        request.datastore.session.query(Order, User.name, User.phone, User.address)
        .outerjoin(User, User.id == Order.client_id)
        .filter(Order.store_id == store_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )
    result = []
    for order, name, phone, address in rows:
        d = order.to_dict()
        d.update(client_name=name, client_phone=phone, client_address=address)
        result.append(d)
    return jsonify(result)


@orders_bp.route("/<int:order_id>/status", methods=["PATCH"])
@require_datastore
def update_status(order_id):
    """Trocar o status do pedido.

    Com a política padrão (permissive) é uma sobrescrita cega: qualquer rótulo
    é gravado, sem checar avanço nem dono da loja. Com ORDER_STATUS_POLICY=strict,
    rótulo desconhecido ou retrocesso -> 400.
    """
    data = request.get_json(force=True, silent=True) or {}
    status = data.get("status")
    if not isinstance(status, str) or not status:
        return json_error("status é obrigatório.", 400)

    session = request.datastore.session
    policy = current_app.extensions["order_status_policy"]
    try:
        set_status(session, order_id, status, policy)
    except InvalidTransition as e:
        session.rollback()
        return json_error(str(e), 400)
    except SQLAlchemyError as ex:
        session.rollback()
        return json_error(db_error_message(ex), 500)

    return jsonify({"success": True})
