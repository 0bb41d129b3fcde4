# decorators/datastore_decorator.py
"""
Decorator de injeção do banco de dados
-------------------------------------------------------------------------------
- Lê o handle registrado em `current_app.extensions["datastore"]`.
- Indisponível (configuração ausente): responde 500 com
  {"error": "Erro de configuração do banco de dados."} sem executar a view.
- Disponível: injeta `request.datastore` e chama a view.
-------------------------------------------------------------------------------
"""

from functools import wraps
from flask import current_app, request
from utils.responses import json_error

CONFIG_ERROR = "Erro de configuração do banco de dados."


def require_datastore(func):
    @wraps(func)
    def wrapper(*args, **kwargs):
        handle = current_app.extensions.get("datastore")
        if handle is None or not handle.available:
            return json_error(CONFIG_ERROR, 500)

        request.datastore = handle
        return func(*args, **kwargs)

    return wrapper
