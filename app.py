# app.py
import os
import logging
from urllib.parse import quote_plus
from datetime import datetime, timezone
from flask import Flask, jsonify, request, send_from_directory
from flask_cors import CORS
from flask_compress import Compress
from werkzeug.exceptions import HTTPException
from database.datastore import init_datastore
from services.order_lifecycle import policy_from_name
from services.realtime import ChangeFeed
from services.storage_service import LocalStorage, storage_from_env
from routes.auth import auth_bp
from routes.docs import docs_bp
from routes.orders import orders_bp
from routes.partner import partner_bp
from routes.realtime import realtime_bp
from routes.stores import stores_bp

# =============================================================================
# Delivery Pira: API
# -----------------------------------------------------------------------------
# create_app() monta a aplicação com as dependências explícitas em
# app.extensions:
#   - "datastore"           Datastore | UnavailableDatastore
#   - "object_storage"      SupabaseStorage | LocalStorage | UnavailableStorage
#   - "change_feed"         ChangeFeed (eventos de pedidos)
#   - "order_status_policy" PermissiveLifecycle | StrictLifecycle
# Execução: `flask --app app run` ou `gunicorn "app:create_app()"`.
# =============================================================================

# -----------------------------------------------------------------------------
# .env local (dev). Em produção o provedor injeta as ENVs.
# -----------------------------------------------------------------------------
def _load_env():
    """Carrega variáveis do .env em ambiente de desenvolvimento (sem erro se ausente)."""
    from dotenv import load_dotenv
    base_dir = os.path.abspath(os.path.dirname(__file__))
    env_path = os.path.join(base_dir, ".env")
    if os.path.isfile(env_path):
        load_dotenv(env_path, override=False)
    else:
        load_dotenv(override=False)


logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
log = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# DB URI (Railway MySQL ou DATABASE_URL)
# -----------------------------------------------------------------------------
def build_database_uri():
    """Monta a URI do banco a partir das ENVs; None quando nada está configurado."""
    if os.getenv("MYSQLHOST"):
        host = os.getenv("MYSQLHOST")
        user = os.getenv("MYSQLUSER")
        password = os.getenv("MYSQLPASSWORD")
        database = os.getenv("MYSQLDATABASE")
        port = os.getenv("MYSQLPORT", "3306")

        missing = [k for k, v in {
            "MYSQLHOST": host, "MYSQLUSER": user, "MYSQLPASSWORD": password, "MYSQLDATABASE": database
        }.items() if not v]
        if missing:
            raise RuntimeError(f"Variáveis de ambiente ausentes para o DB: {', '.join(missing)}")

        pwd = quote_plus(password)
        return f"mysql+mysqlconnector://{user}:{pwd}@{host}:{port}/{database}"

    return os.getenv("DATABASE_URL") or None


def _engine_options(uri):
    # pool_recycle/pre_ping só fazem sentido em servidor (não em SQLite)
    if not uri or uri.startswith("sqlite"):
        return {}
    return {"pool_pre_ping": True, "pool_recycle": 280}


def _mask(value, keep=10):
    return f"{value[:keep]}..." if value else "missing"


def create_app(overrides=None):
    """Fábrica da aplicação.

    `overrides` (dict) tem precedência sobre as ENVs. Chaves extras reconhecidas:
      DATABASE_URI, OBJECT_STORAGE, CHANGE_FEED, ORDER_STATUS_POLICY.
    """
    _load_env()
    overrides = dict(overrides or {})

    app = Flask(__name__)
    database_uri = overrides.pop("DATABASE_URI", None) or build_database_uri()
    storage = overrides.pop("OBJECT_STORAGE", None)
    feed = overrides.pop("CHANGE_FEED", None) or ChangeFeed()
    policy_name = overrides.pop("ORDER_STATUS_POLICY", None) or os.getenv("ORDER_STATUS_POLICY")

    app.config.update(
        SQLALCHEMY_TRACK_MODIFICATIONS=False,
        SQLALCHEMY_ENGINE_OPTIONS=_engine_options(database_uri),
        REALTIME_HEARTBEAT_SECONDS=float(os.getenv("REALTIME_HEARTBEAT_SECONDS", "15")),
        UPLOAD_DIR=os.getenv("UPLOAD_DIR") or os.path.join(app.root_path, "uploads"),
    )
    app.json.sort_keys = False
    app.json.ensure_ascii = False
    app.config.update(overrides)

    # -------------------------------------------------------------------------
    # CORS + Compress
    # -------------------------------------------------------------------------
    origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
    CORS(app, resources={r"/*": {"origins": origins}})
    app.config.setdefault("COMPRESS_MIMETYPES", ["application/json", "text/json", "text/plain"])
    Compress(app)

    # -------------------------------------------------------------------------
    # Dependências
    # -------------------------------------------------------------------------
    datastore = init_datastore(app, database_uri)
    app.extensions["object_storage"] = storage or storage_from_env(app.config["UPLOAD_DIR"])
    app.extensions["change_feed"] = feed
    app.extensions["order_status_policy"] = policy_from_name(policy_name)
    log.info(
        "app pronto: datastore=%r storage=%s policy=%s",
        datastore,
        type(app.extensions["object_storage"]).__name__,
        app.extensions["order_status_policy"].name,
    )

    if datastore.available and os.getenv("CREATE_SCHEMA") == "1":
        with app.app_context():
            datastore.db.create_all()
            log.info("Schema criado/validado.")

    # -------------------------------------------------------------------------
    # Blueprints
    # -------------------------------------------------------------------------
    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(stores_bp, url_prefix="/api/stores")
    app.register_blueprint(orders_bp, url_prefix="/api/orders")
    app.register_blueprint(partner_bp, url_prefix="/api/partner")
    app.register_blueprint(realtime_bp, url_prefix="/api/realtime")
    app.register_blueprint(docs_bp)

    # -------------------------------------------------------------------------
    # Rotas base e handlers
    # -------------------------------------------------------------------------
    @app.route("/health")
    def health():
        """Healthcheck simples para monitoramento."""
        return jsonify({"status": "ok"}), 200

    @app.route("/api/ping")
    def ping():
        """Diagnóstico de configuração (sem expor segredos)."""
        url = os.getenv("VITE_SUPABASE_URL") or os.getenv("SUPABASE_URL")
        key = os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("VITE_SUPABASE_ANON_KEY")
        return jsonify({
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "env": {
                "hasDatabase": app.extensions["datastore"].available,
                "hasSupabaseUrl": bool(url),
                "hasServiceKey": bool(os.getenv("SUPABASE_SERVICE_ROLE_KEY")),
                "urlPreview": _mask(url),
                "keyPreview": _mask(key, keep=5),
            },
            "storage": type(app.extensions["object_storage"]).__name__,
            "statusPolicy": app.extensions["order_status_policy"].name,
            "realtimeSubscriptions": app.extensions["change_feed"].active,
        }), 200

    @app.route("/uploads/<path:name>")
    def uploads(name):
        """Arquivos do LocalStorage (dev)."""
        storage = app.extensions["object_storage"]
        if not isinstance(storage, LocalStorage):
            return jsonify({"error": "Rota não encontrada."}), 404
        return send_from_directory(storage.directory, name)

    @app.errorhandler(404)
    def not_found(e):
        """Handler para rotas inexistentes (404)."""
        return jsonify({"error": "Rota não encontrada."}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Método não permitido."}), 405

    @app.errorhandler(Exception)
    def internal_error(e):
        """Handler global de exceções não tratadas, com log e resposta 500."""
        if isinstance(e, HTTPException):
            return jsonify({"error": e.description}), e.code
        log.exception("Erro interno não tratado em %s", request.path)
        return jsonify({"error": "Erro interno no servidor"}), 500

    return app


# -----------------------------------------------------------------------------
# Execução
# -----------------------------------------------------------------------------
if __name__ == "__main__":
    port = int(os.getenv("PORT", "5000"))
    debug = os.getenv("FLASK_DEBUG", "1") == "1"
    create_app().run(debug=debug, host="0.0.0.0", port=port, threaded=True)
