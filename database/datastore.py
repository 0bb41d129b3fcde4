# database/datastore.py
"""
Handle do banco de dados injetado na aplicação
-------------------------------------------------------------------------------
O handle é criado uma única vez em `init_datastore` e guardado em
`app.extensions["datastore"]`:

- Datastore:            configuração presente; expõe `session`.
- UnavailableDatastore: configuração ausente; `reason` explica o motivo.

As duas variantes têm o atributo `available`. As rotas não checam isso
diretamente: o decorator `require_datastore` faz a checagem e injeta o handle
em `request.datastore`.
-------------------------------------------------------------------------------
"""

import logging

from . import db

log = logging.getLogger(__name__)


class Datastore:
    available = True

    def __init__(self, database):
        self.db = database

    @property
    def session(self):
        return self.db.session

    def __repr__(self):
        return "<Datastore available>"


class UnavailableDatastore:
    available = False

    def __init__(self, reason):
        self.reason = reason

    def __repr__(self):
        return f"<Datastore unavailable: {self.reason}>"


def init_datastore(app, database_uri):
    """Liga o Flask-SQLAlchemy ao app quando há URI; senão registra a variante indisponível."""
    if not database_uri:
        log.error("Configuração do banco ausente: defina DATABASE_URL ou MYSQL*.")
        handle = UnavailableDatastore("DATABASE_URL/MYSQL* não configurados")
    else:
        app.config["SQLALCHEMY_DATABASE_URI"] = database_uri
        db.init_app(app)
        # registra os listeners de mudança de pedidos (import com efeito)
        from . import events
        app.teardown_request(events.publish_committed)
        app.teardown_appcontext(events.publish_committed)
        handle = Datastore(db)

    app.extensions["datastore"] = handle
    return handle
