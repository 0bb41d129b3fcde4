# database/models.py
"""
Modelos de banco de dados (SQLAlchemy)
-------------------------------------------------------------------------------
Entidades persistentes do marketplace:

- User:      cliente ou parceiro (login por telefone + PIN).
- Store:     loja de um parceiro (exatamente uma por dono).
- Product:   item do cardápio de uma loja.
- Order:     pedido de um cliente em uma loja (status é o único campo mutável).
- OrderItem: linha do pedido; o preço é copiado do produto no momento do pedido.

Serialização:
- `to_dict()` devolve o formato usado pela API (decimais como float, datas ISO).
- `User.to_public_dict()` nunca expõe o PIN.

Defaults de `Order.status` e `Product.available` são aplicados no lado Python
para que os eventos de mudança (database.events) já os enxerguem no flush.
-------------------------------------------------------------------------------
"""

from datetime import datetime, timezone

from . import db
from services.order_lifecycle import INITIAL_STATUS


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


def _money(value):
    return float(value) if value is not None else None


class User(db.Model):
    """Usuário do app (role = client | partner).

    O PIN é um segredo curto comparado em texto puro (fora de escopo endurecer).
    """
    __tablename__ = "users"

    id        = db.Column(db.Integer, primary_key=True)
    name      = db.Column(db.String(120), nullable=False)
    phone     = db.Column(db.String(30),  unique=True, nullable=False, index=True)
    email     = db.Column(db.String(120), nullable=True)
    pin       = db.Column(db.String(20),  nullable=False)
    address   = db.Column(db.String(255), nullable=True)
    reference = db.Column(db.String(255), nullable=True)
    photo     = db.Column(db.String(500), nullable=True)
    role      = db.Column(db.String(20),  nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    store  = db.relationship("Store", backref="owner", uselist=False, lazy=True)
    orders = db.relationship("Order", backref="client", lazy=True)

    def to_public_dict(self):
        """Serialização para respostas públicas (sem pin)."""
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "reference": self.reference,
            "photo": self.photo,
            "role": self.role,
        }


class Store(db.Model):
    """Loja de um parceiro. `status` só é alterado pelo dono."""
    __tablename__ = "stores"

    id       = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), unique=True, nullable=False)

    name     = db.Column(db.String(120), nullable=False)
    phone    = db.Column(db.String(30),  nullable=False)
    address  = db.Column(db.String(255), nullable=False)
    email    = db.Column(db.String(120), nullable=True)
    whatsapp = db.Column(db.String(30),  nullable=True)
    category = db.Column(db.String(60),  nullable=False)

    delivery_fee      = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    min_free_delivery = db.Column(db.Numeric(10, 2), nullable=True)

    status = db.Column(db.String(20), nullable=False, default="online", index=True)

    parking_photo  = db.Column(db.String(500), nullable=True)
    interior_photo = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    products = db.relationship(
        "Product",
        backref="store",
        lazy=True,
        cascade="all, delete-orphan",
    )
    orders = db.relationship("Order", backref="store", lazy=True)

    def to_dict(self):
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "phone": self.phone,
            "address": self.address,
            "email": self.email,
            "whatsapp": self.whatsapp,
            "category": self.category,
            "delivery_fee": _money(self.delivery_fee),
            "min_free_delivery": _money(self.min_free_delivery),
            "status": self.status,
            "parking_photo": self.parking_photo,
            "interior_photo": self.interior_photo,
            "created_at": _iso(self.created_at),
        }


class Product(db.Model):
    """Produto do cardápio. Listagens públicas só trazem `available=True`."""
    __tablename__ = "products"

    id       = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    name        = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text,        nullable=True)
    price       = db.Column(db.Numeric(10, 2), nullable=False)
    category    = db.Column(db.String(60),  nullable=False)
    photo       = db.Column(db.String(500), nullable=True)
    available   = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "store_id": self.store_id,
            "name": self.name,
            "description": self.description,
            "price": _money(self.price),
            "category": self.category,
            "photo": self.photo,
            "available": self.available,
        }


class Order(db.Model):
    """Pedido. Criado uma vez no checkout; depois disso só `status` muda.

    O total é calculado pelo cliente e aceito sem revalidação.
    """
    __tablename__ = "orders"

    id        = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.Integer, db.ForeignKey("users.id"),  nullable=False, index=True)
    store_id  = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    total          = db.Column(db.Numeric(10, 2), nullable=False)
    payment_method = db.Column(db.String(10), nullable=False)
    change_for     = db.Column(db.Numeric(10, 2), nullable=True)
    status         = db.Column(db.String(30), nullable=False, default=INITIAL_STATUS)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, index=True)

    items = db.relationship(
        "OrderItem",
        backref="order",
        lazy=True,
        cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "client_id": self.client_id,
            "store_id": self.store_id,
            "status": self.status,
            "total": _money(self.total),
            "payment_method": self.payment_method,
            "change_for": _money(self.change_for),
            "created_at": _iso(self.created_at),
        }


class OrderItem(db.Model):
    """Linha imutável do pedido (snapshot de preço e quantidade)."""
    __tablename__ = "order_items"

    id         = db.Column(db.Integer, primary_key=True)
    order_id   = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    # produto pode ser excluído depois; o item do pedido permanece
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="SET NULL"),
        nullable=True,
    )
    quantity = db.Column(db.Integer, nullable=False)
    price    = db.Column(db.Numeric(10, 2), nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "price": _money(self.price),
        }
