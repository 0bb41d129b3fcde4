# routes/docs.py
"""
Documentação da API (OpenAPI 3)
- /openapi.yaml  arquivo na raiz do projeto
- /apidocs       Swagger UI via CDN apontando para /openapi.yaml
"""

import pathlib
from flask import Blueprint, Response, send_file

docs_bp = Blueprint("docs", __name__)

OPENAPI_PATH = pathlib.Path(__file__).resolve().parent.parent / "openapi.yaml"

_SWAGGER_HTML = """<!doctype html>
<html lang="pt-br">
<head>
  <meta charset="utf-8">
  <title>Delivery Pira API</title>
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <link rel="stylesheet" href="https://unpkg.com/swagger-ui-dist@5/swagger-ui.css">
</head>
<body style="margin:0">
  <div id="swagger-ui"></div>
  <script src="https://unpkg.com/swagger-ui-dist@5/swagger-ui-bundle.js"></script>
  <script>
    window.ui = SwaggerUIBundle({url: '/openapi.yaml', dom_id: '#swagger-ui'});
  </script>
</body>
</html>
"""


@docs_bp.get("/openapi.yaml")
def openapi_yaml():
    if not OPENAPI_PATH.exists():
        return Response("Arquivo openapi.yaml não encontrado.", status=404)
    return send_file(str(OPENAPI_PATH), mimetype="application/yaml")


@docs_bp.get("/apidocs")
def swagger_ui():
    return _SWAGGER_HTML, 200, {"Content-Type": "text/html; charset=utf-8"}
