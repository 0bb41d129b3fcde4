# tests/test_catalog.py
import io


def test_stores_lists_only_online(client, make_store):
    online = make_store(phone="801", name="Aberta")
    offline = make_store(phone="802", name="Fechada")
    client.patch(f"/api/partner/store/{offline['id']}/status", json={"status": "offline"})

    ids = [s["id"] for s in client.get("/api/stores").get_json()]
    assert online["id"] in ids
    assert offline["id"] not in ids


def test_toggling_store_status_hides_and_shows_store(client, make_store):
    store = make_store()
    assert store["status"] == "online"

    res = client.patch(f"/api/partner/store/{store['id']}/status", json={"status": "offline"})
    assert res.get_json() == {"success": True}
    assert store["id"] not in [s["id"] for s in client.get("/api/stores").get_json()]

    client.patch(f"/api/partner/store/{store['id']}/status", json={"status": "online"})
    assert store["id"] in [s["id"] for s in client.get("/api/stores").get_json()]


def test_store_status_must_be_online_or_offline(client, make_store):
    store = make_store()
    res = client.patch(f"/api/partner/store/{store['id']}/status", json={"status": "closed"})
    assert res.status_code == 400


def test_products_lists_only_available(app, client, make_store, make_product):
    from database import db
    from database.models import Product

    store = make_store()
    visible = make_product(store["id"], name="Pizza")
    hidden = make_product(store["id"], name="Suco")
    with app.app_context():
        db.session.get(Product, hidden["id"]).available = False
        db.session.commit()

    products = client.get(f"/api/stores/{store['id']}/products").get_json()
    assert [p["id"] for p in products] == [visible["id"]]
    assert all(p["available"] for p in products)


def test_create_product_defaults_and_delete(client, make_store, make_product):
    store = make_store()
    product = make_product(store["id"], price="12.50")
    assert product["available"] is True
    assert product["price"] == 12.5
    assert product["photo"] is None

    res = client.delete(f"/api/partner/products/{product['id']}")
    assert res.get_json() == {"success": True}
    assert client.get(f"/api/stores/{store['id']}/products").get_json() == []


def test_create_product_rejects_negative_price(client, make_store):
    store = make_store()
    res = client.post("/api/partner/products", json={"store_id": store["id"], "name": "X", "price": -1})
    assert res.status_code == 400


def test_multipart_store_with_photos_gets_public_urls(app, client, register):
    owner_id = register(name="Dono", phone="7777", pin="1", role="partner")
    res = client.post(
        "/api/partner/store",
        data={
            "owner_id": str(owner_id),
            "name": "Bar do Zé",
            "phone": "98999",
            "address": "Praça",
            "category": "Bares e Bebidas",
            "delivery_fee": "3.5",
            "min_free_delivery": "50",
            "parking": (io.BytesIO(b"png"), "vaga frente.png"),
            "interior": (io.BytesIO(b"jpg"), "salao.jpg"),
        },
        content_type="multipart/form-data",
    )
    assert res.status_code == 200, res.get_json()
    store = res.get_json()
    assert store["delivery_fee"] == 3.5
    assert store["min_free_delivery"] == 50.0
    assert store["parking_photo"].startswith("/uploads/")
    assert store["parking_photo"].endswith("-vaga_frente.png")
    assert store["interior_photo"].endswith("-salao.jpg")

    photo = client.get(store["interior_photo"])
    assert photo.status_code == 200
    assert photo.data == b"jpg"


def test_store_creation_failure_is_400(client):
    res = client.post("/api/partner/store", json={"name": "Sem dono"})
    assert res.status_code == 400
    assert res.get_json()["error"]
