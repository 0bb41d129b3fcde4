# tests/conftest.py
import pytest

from app import create_app
from database import db
from services.realtime import ChangeFeed
from services.storage_service import LocalStorage


@pytest.fixture
def feed():
    return ChangeFeed()


@pytest.fixture
def make_app(tmp_path, feed):
    def _make(**overrides):
        config = {
            "TESTING": True,
            "DATABASE_URI": f"sqlite:///{tmp_path / 'delivery.db'}",
            "OBJECT_STORAGE": LocalStorage(str(tmp_path / "uploads")),
            "CHANGE_FEED": feed,
        }
        config.update(overrides)
        app = create_app(config)
        if app.extensions["datastore"].available:
            with app.app_context():
                db.create_all()
        return app

    return _make


@pytest.fixture
def app(make_app):
    app = make_app()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def register(client):
    def _register(name="Ana", phone="119999", pin="123456", role="client", **extra):
        payload = {"name": name, "phone": phone, "pin": pin, "role": role, **extra}
        res = client.post("/api/auth/register", json=payload)
        assert res.status_code == 200, res.get_json()
        return res.get_json()["id"]

    return _register


@pytest.fixture
def make_store(client, register):
    def _make_store(phone="889999", delivery_fee=5.0, **extra):
        owner_id = register(name="Parceiro", phone=phone, pin="0000", role="partner")
        payload = {
            "owner_id": owner_id,
            "name": extra.pop("name", "Lanchonete"),
            "phone": "(98) 9 8888-7777",
            "address": "Rua A, 10",
            "category": "Restaurantes",
            "delivery_fee": delivery_fee,
            **extra,
        }
        res = client.post("/api/partner/store", json=payload)
        assert res.status_code == 200, res.get_json()
        return res.get_json()

    return _make_store


@pytest.fixture
def make_product(client):
    def _make_product(store_id, name="X-Burger", price=10.0, **extra):
        res = client.post(
            "/api/partner/products",
            json={"store_id": store_id, "name": name, "price": price, "category": "Comida", **extra},
        )
        assert res.status_code == 200, res.get_json()
        return res.get_json()

    return _make_product


class FlaskTransport:
    """Adapta o test client do Flask à interface `request()` do requests."""

    class _Response:
        def __init__(self, res):
            self.status_code = res.status_code
            self._body = res.get_json(silent=True)

        def json(self):
            if self._body is None:
                raise ValueError("sem JSON")
            return self._body

    def __init__(self, client):
        self.client = client

    def request(self, method, url, timeout=None, json=None, data=None, files=None):
        if files:
            form = dict(data or {})
            # requests usa (nome, arquivo, mimetype); o werkzeug usa (arquivo, nome)
            for field, (filename, fh, *_) in files.items():
                form[field] = (fh, filename)
            res = self.client.open(url, method=method, data=form, content_type="multipart/form-data")
        else:
            res = self.client.open(url, method=method, json=json)
        return self._Response(res)


@pytest.fixture
def api(client):
    from client_app import ApiClient
    return ApiClient("", http=FlaskTransport(client))
