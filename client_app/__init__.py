# client_app/__init__.py
"""Cliente Python do Delivery Pira (estado do app, carrinho, avisos, realtime)."""

from .api import ApiClient, ApiError
from .cart import Cart, CheckoutResult, checkout, whatsapp_link
from .notifications import NotificationCenter
from .realtime import RemoteChangeFeed
from .session import AppSession, PARTNER_SECRET_CODE, check_protocol
from .viewers import ClientViewer, PartnerViewer, viewer_for
