# routes/auth.py
from flask import Blueprint, request, jsonify
from sqlalchemy.exc import SQLAlchemyError
from database.models import User, Store
from decorators.datastore_decorator import require_datastore
from utils.responses import json_error, db_error_message
import logging

# =============================================================================
# Módulo de Autenticação
# -----------------------------------------------------------------------------
# Cadastro e login por telefone + PIN.
# - Persistência: SQLAlchemy (tabelas users/stores)
# - PIN: guardado e comparado em texto puro (sem hardening, fora de escopo)
# - Sem token de sessão: o app guarda user/store localmente
# Convenção de erro: {"error": "<mensagem>"} com status adequado.
# =============================================================================

auth_bp = Blueprint("auth", __name__)
log = logging.getLogger(__name__)

ROLES = ("client", "partner")
INVALID_CREDENTIALS = "Credenciais inválidas"


def _clean(value):
    return str(value).strip() if value is not None else ""


@auth_bp.route("/register", methods=["POST"])
@require_datastore
def register():
    """Registrar novo usuário.

    Corpo JSON esperado:
        {
          "name": "Ana",            # obrigatório
          "phone": "119999",        # obrigatório (único)
          "pin": "123456",          # obrigatório (guardado como string)
          "role": "client",         # client | partner
          "email": "...", "address": "...", "reference": "..."   # opcionais
        }

    Respostas:
      200: {"id": <novo id>}
      400: campos ausentes/role inválido, telefone já cadastrado ou erro do banco
           (mensagem crua do banco).

    Observação:
      - O código de protocolo de parceiro é checado apenas no app cliente.
    """
    data = request.get_json(force=True, silent=True) or {}

    name  = _clean(data.get("name"))
    phone = _clean(data.get("phone"))
    pin   = _clean(data.get("pin"))
    role  = _clean(data.get("role")) or "client"

    if not name or not phone or not pin:
        return json_error("name, phone e pin são obrigatórios.", 400)
    if role not in ROLES:
        return json_error("role deve ser client ou partner.", 400)

    log.info("Tentativa de registro: name=%s phone=%s role=%s", name, phone, role)

    session = request.datastore.session
    user = User(
        name=name,
        phone=phone,
        pin=pin,
        role=role,
        email=_clean(data.get("email")) or None,
        address=_clean(data.get("address")) or None,
        reference=_clean(data.get("reference")) or None,
    )
    try:
        session.add(user)
        session.commit()
    except SQLAlchemyError as ex:
        session.rollback()
        log.error("Erro de banco no registro: %s", ex.__class__.__name__)
        return json_error(db_error_message(ex), 400)

    return jsonify({"id": user.id}), 200


@auth_bp.route("/login", methods=["POST"])
@require_datastore
def login():
    """Autenticar por telefone + PIN.

    Respostas:
      200: {"user": {...}, "store": {...} | null}
      401: "Credenciais inválidas" (mesma mensagem para telefone inexistente,
           PIN errado ou campos vazios; não revela qual falhou).
    """
    data = request.get_json(force=True, silent=True) or {}
    phone = _clean(data.get("phone"))
    pin   = _clean(data.get("pin"))

    if not phone or not pin:
        return json_error(INVALID_CREDENTIALS, 401)

    session = request.datastore.session
    user = session.query(User).filter_by(phone=phone, pin=pin).first()
    if not user:
        return json_error(INVALID_CREDENTIALS, 401)

    store = session.query(Store).filter_by(owner_id=user.id).first()
    return jsonify({
        "user": user.to_public_dict(),
        "store": store.to_dict() if store else None,
    }), 200
