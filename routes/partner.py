# routes/partner.py
import logging
from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError
from database.models import Store, Product
from decorators.datastore_decorator import require_datastore
from services.storage_service import StorageError
from utils.responses import json_error, db_error_message, parse_money, request_data

# =============================================================================
# Área do parceiro
# -----------------------------------------------------------------------------
# Loja (criação + status online/offline) e cardápio (criar/excluir produto).
# Aceita JSON ou multipart; fotos vão para o storage configurado
# (app.extensions["object_storage"]) e a URL pública fica na linha.
# Não há checagem de dono: o controle é feito pelo painel do parceiro.
# =============================================================================

partner_bp = Blueprint("partner", __name__)
log = logging.getLogger(__name__)

STORE_STATUSES = ("online", "offline")


def _upload(field):
    """Sobe o arquivo do campo multipart `field` (se houver) e devolve a URL."""
    file = request.files.get(field)
    if not file or not file.filename:
        return None
    return current_app.extensions["object_storage"].upload(file)


def _text(data, key):
    value = data.get(key)
    value = str(value).strip() if value is not None else ""
    return value or None


@partner_bp.route("/store", methods=["POST"])
@require_datastore
def create_store():
    """Criar a loja do parceiro.

    Campos: owner_id, name, phone, address, category, delivery_fee,
            min_free_delivery?, email?, whatsapp?
    Arquivos opcionais (multipart): parking, interior.

    Qualquer falha (validação, upload ou banco) responde 400 com a mensagem.
    """
    data = request_data()
    session = request.datastore.session
    try:
        delivery_fee = parse_money(data.get("delivery_fee"), "delivery_fee", required=False) or 0
        min_free = parse_money(data.get("min_free_delivery"), "min_free_delivery", required=False)

        store = Store(
            owner_id=data.get("owner_id"),
            name=_text(data, "name"),
            phone=_text(data, "phone"),
            address=_text(data, "address"),
            email=_text(data, "email"),
            whatsapp=_text(data, "whatsapp"),
            category=_text(data, "category"),
            delivery_fee=delivery_fee,
            min_free_delivery=min_free,
            parking_photo=_upload("parking"),
            interior_photo=_upload("interior"),
        )
        session.add(store)
        session.commit()
    except (ValueError, StorageError) as e:
        session.rollback()
        return json_error(str(e), 400)
    except SQLAlchemyError as ex:
        session.rollback()
        log.error("Erro ao criar loja: %s", ex.__class__.__name__)
        return json_error(db_error_message(ex), 400)

    log.info("loja #%s criada para o usuário %s", store.id, store.owner_id)
    return jsonify(store.to_dict()), 200


@partner_bp.route("/store/<int:store_id>/status", methods=["PATCH"])
@require_datastore
def set_store_status(store_id):
    """Colocar a loja online/offline. Loja inexistente: sucesso sem efeito."""
    data = request.get_json(force=True, silent=True) or {}
    status = data.get("status")
    if status not in STORE_STATUSES:
        return json_error("status deve ser online ou offline.", 400)

    session = request.datastore.session
    try:
        store = session.get(Store, store_id)
        if store is not None:
            store.status = status
            session.commit()
    except SQLAlchemyError as ex:
        session.rollback()
        return json_error(db_error_message(ex), 500)

    return jsonify({"success": True})


@partner_bp.route("/products", methods=["POST"])
@require_datastore
def create_product():
    """Criar produto no cardápio (foto opcional no campo multipart `photo`)."""
    data = request_data()
    session = request.datastore.session
    try:
        if data.get("store_id") is None or not _text(data, "name"):
            raise ValueError("store_id e name são obrigatórios.")
        product = Product(
            store_id=data.get("store_id"),
            name=_text(data, "name"),
            description=_text(data, "description"),
            price=parse_money(data.get("price"), "price"),
            category=_text(data, "category") or "Comida",
            photo=_upload("photo"),
        )
        session.add(product)
        session.commit()
    except ValueError as e:
        session.rollback()
        return json_error(str(e), 400)
    except StorageError as e:
        session.rollback()
        return json_error(str(e), 500)
    except SQLAlchemyError as ex:
        session.rollback()
        return json_error(db_error_message(ex), 500)

    return jsonify(product.to_dict()), 200


@partner_bp.route("/products/<int:product_id>", methods=["DELETE"])
@require_datastore
def delete_product(product_id):
    """Excluir produto. A foto no storage não é removida."""
    session = request.datastore.session
    try:
        session.query(Product).filter_by(id=product_id).delete()
        session.commit()
    except SQLAlchemyError as ex:
        session.rollback()
        return json_error(db_error_message(ex), 500)

    return jsonify({"success": True})
