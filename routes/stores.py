# routes/stores.py
from flask import Blueprint, jsonify, request
from database.models import Store, Product
from decorators.datastore_decorator import require_datastore

# Vitrine pública: lojas online e produtos disponíveis.
stores_bp = Blueprint("stores", __name__)


@stores_bp.route("", methods=["GET"])
@require_datastore
def list_stores():
    """Lista somente lojas com status=online."""
    stores = (
        request.datastore.session.query(Store)
        .filter_by(status="online")
        .order_by(Store.id)
        .all()
    )
    return jsonify([s.to_dict() for s in stores])


@stores_bp.route("/<int:store_id>/products", methods=["GET"])
@require_datastore
def list_products(store_id):
    """Produtos da loja com available=True (loja inexistente -> lista vazia)."""
    products = (
        request.datastore.session.query(Product)
        .filter_by(store_id=store_id, available=True)
        .order_by(Product.id)
        .all()
    )
    return jsonify([p.to_dict() for p in products])
