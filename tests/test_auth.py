# tests/test_auth.py


def test_register_then_login_returns_submitted_fields(client, register):
    user_id = register(name="Ana", phone="119999", pin="123456", role="client",
                       email="ana@example.com", address="Rua B, 20", reference="Casa azul")

    res = client.post("/api/auth/login", json={"phone": "119999", "pin": "123456"})
    assert res.status_code == 200
    body = res.get_json()
    assert body["store"] is None
    user = body["user"]
    assert user["id"] == user_id
    assert user["name"] == "Ana"
    assert user["phone"] == "119999"
    assert user["role"] == "client"
    assert user["email"] == "ana@example.com"
    assert user["address"] == "Rua B, 20"
    assert user["reference"] == "Casa azul"
    assert "pin" not in user


def test_numeric_pin_is_stored_as_string(client, register):
    res = client.post("/api/auth/register", json={"name": "Bia", "phone": "1188", "pin": 4321, "role": "client"})
    assert res.status_code == 200

    res = client.post("/api/auth/login", json={"phone": "1188", "pin": "4321"})
    assert res.status_code == 200


def test_login_errors_do_not_reveal_which_field_failed(client, register):
    register(phone="119999", pin="123456")

    wrong_pin = client.post("/api/auth/login", json={"phone": "119999", "pin": "000000"})
    unknown_phone = client.post("/api/auth/login", json={"phone": "000", "pin": "123456"})
    empty = client.post("/api/auth/login", json={})

    for res in (wrong_pin, unknown_phone, empty):
        assert res.status_code == 401
        assert res.get_json() == {"error": "Credenciais inválidas"}


def test_partner_login_returns_store(client, make_store):
    store = make_store(phone="889999")

    res = client.post("/api/auth/login", json={"phone": "889999", "pin": "0000"})
    assert res.status_code == 200
    body = res.get_json()
    assert body["user"]["role"] == "partner"
    assert body["store"]["id"] == store["id"]


def test_register_requires_fields_and_valid_role(client):
    res = client.post("/api/auth/register", json={"name": "Ana", "phone": "1"})
    assert res.status_code == 400
    assert "error" in res.get_json()

    res = client.post("/api/auth/register", json={"name": "Ana", "phone": "1", "pin": "1", "role": "admin"})
    assert res.status_code == 400


def test_duplicate_phone_is_rejected_with_database_message(client, register):
    register(phone="119999")
    res = client.post("/api/auth/register", json={"name": "Outra", "phone": "119999", "pin": "1", "role": "client"})
    assert res.status_code == 400
    assert res.get_json()["error"]


def test_missing_database_configuration_is_a_500_on_every_data_route(make_app, monkeypatch):
    for var in ("DATABASE_URL", "MYSQLHOST"):
        monkeypatch.delenv(var, raising=False)
    app = make_app(DATABASE_URI=None)
    client = app.test_client()

    assert app.extensions["datastore"].available is False
    for method, path in [
        ("POST", "/api/auth/register"),
        ("POST", "/api/auth/login"),
        ("GET", "/api/stores"),
        ("GET", "/api/stores/1/products"),
        ("POST", "/api/orders"),
        ("GET", "/api/orders/client/1"),
        ("PATCH", "/api/orders/1/status"),
        ("DELETE", "/api/partner/products/1"),
    ]:
        res = client.open(path, method=method, json={})
        assert res.status_code == 500, path
        assert res.get_json() == {"error": "Erro de configuração do banco de dados."}

    assert client.get("/health").status_code == 200
