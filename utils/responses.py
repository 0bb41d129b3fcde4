# utils/responses.py
"""Helpers de resposta/entrada compartilhados pelas rotas."""

from decimal import Decimal, InvalidOperation
from flask import jsonify, request


def json_error(message, status=400):
    """Payload de erro padrão da API: {"error": <mensagem>} + status."""
    return jsonify({"error": message}), status


def db_error_message(ex):
    """Mensagem crua do banco (sem o wrapper do SQLAlchemy quando houver)."""
    orig = getattr(ex, "orig", None)
    return str(orig) if orig is not None else str(ex)


def request_data():
    """Campos do corpo: multipart/form quando houver, senão JSON."""
    if request.mimetype in ("multipart/form-data", "application/x-www-form-urlencoded"):
        return request.form.to_dict()
    return request.get_json(force=True, silent=True) or {}


def parse_money(value, field, required=True):
    """Converte para Decimal (>= 0). Levanta ValueError com mensagem amigável."""
    if value is None or value == "":
        if required:
            raise ValueError(f"{field} é obrigatório.")
        return None
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(f"{field} inválido.")
    if not amount.is_finite() or amount < 0:
        raise ValueError(f"{field} inválido.")
    return amount
