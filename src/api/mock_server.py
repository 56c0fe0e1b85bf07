# in-process stand-in for the REST backend, served through httpx.MockTransport
from __future__ import annotations

import copy
import hashlib
import hmac
import itertools
import json
import re
import secrets
from typing import Any, Dict, List, Optional, Tuple

import httpx

from db.models import NOTIFICATION_DEFAULTS
from utils.logger import get_logger

_logger = get_logger(__name__)

DEMO_PASSWORD = "demo"

SEED_USERS = [
    {"id": "1", "email": "customer@example.com", "role": "customer", "name": "Clara Silva"},
    {"id": "2", "email": "brand@example.com", "role": "brand", "name": "Atelier Aurora"},
]

SEED_PROFILES = [
    {"id": "1", "userId": "1", "name": "Clara Silva", "phone": "+34 600 000 001"},
    {
        "id": "2",
        "userId": "2",
        "name": "Atelier Aurora",
        "phone": "+34 600 000 002",
        "website": "",
        "industry": "",
        "companySize": "",
    },
]

SEED_CATEGORIES = [
    {"id": "1", "name": "Blouses", "nameEs": "Blusas", "description": "Silk blouses and tops."},
    {"id": "2", "name": "Dresses", "nameEs": "Vestidos", "description": "Silk dresses and gowns."},
    {"id": "3", "name": "Scarves", "nameEs": "Pañuelos", "description": "Silk scarves and wraps."},
    {"id": "4", "name": "Shirts", "nameEs": "Camisas", "description": "Silk shirts."},
    {"id": "5", "name": "Robes", "nameEs": "Batas", "description": "Silk robes and loungewear."},
    {"id": "6", "name": "Tops", "nameEs": "Tops", "description": "Silk tops."},
    {"id": "7", "name": "Pants", "nameEs": "Pantalones", "description": "Silk trousers and pants."},
]

SEED_PRODUCTS = [
    {
        "id": "1", "categoryId": "1",
        "name": "Silk Wrap Blouse", "nameEs": "Blusa Cruzada de Seda",
        "description": "Soft wrap blouse in lightweight silk, designed for everyday wear.",
        "descriptionEs": "Blusa cruzada en seda ligera, diseñada para el uso diario.",
        "price": 7500, "imageUrl": "/images/products/silk-wrap-blouse.jpg",
        "stock": 12, "tag": "bestseller",
    },
    {
        "id": "2", "categoryId": "2",
        "name": "Midnight Silk Dress", "nameEs": "Vestido de Seda Midnight",
        "description": "Bias-cut dress in deep ink silk with subtle shine.",
        "descriptionEs": "Vestido al bies en seda tinta profunda con brillo sutil.",
        "price": 12800, "imageUrl": "/images/products/midnight-silk-dress.jpg",
        "stock": 5, "tag": "new",
    },
    {
        "id": "3", "categoryId": "3",
        "name": "Handpainted Silk Scarf", "nameEs": "Pañuelo de Seda Pintado a Mano",
        "description": "Hand-painted 90x90 cm silk twill scarf.",
        "descriptionEs": "Pañuelo de seda twill 90x90 cm pintado a mano.",
        "price": 9500, "imageUrl": "/images/products/silk-scarf.jpg",
        "stock": 20, "tag": "new",
    },
    {
        "id": "4", "categoryId": "4",
        "name": "Classic Silk Shirt", "nameEs": "Camisa Clásica de Seda",
        "description": "Timeless silk shirt with mother-of-pearl buttons.",
        "descriptionEs": "Camisa de seda atemporal con botones de nácar.",
        "price": 16500, "imageUrl": "/images/products/classic-silk-shirt.jpg",
        "stock": 8, "tag": "bestseller",
    },
    {
        "id": "5", "categoryId": "5",
        "name": "Silk Lounge Robe", "nameEs": "Bata de Seda Loungewear",
        "description": "Relaxed kimono-style robe in pure charmeuse silk.",
        "descriptionEs": "Bata estilo kimono en seda charmeuse pura.",
        "price": 24500, "imageUrl": "/images/products/silk-robe.jpg",
        "stock": 6, "tag": "trending",
    },
    {
        "id": "6", "categoryId": "6",
        "name": "Structured Silk Top", "nameEs": "Top Estructurado de Seda",
        "description": "Sleeveless structured top with invisible side zip.",
        "descriptionEs": "Top sin mangas estructurado con cremallera lateral invisible.",
        "price": 13500, "imageUrl": "/images/products/silk-top.jpg",
        "stock": 14, "tag": "trending",
    },
    {
        "id": "7", "categoryId": "7",
        "name": "Wide-Leg Silk Trousers", "nameEs": "Pantalón de Seda Palazzo",
        "description": "Fluid wide-leg trousers in ivory silk.",
        "descriptionEs": "Pantalón palazzo fluido en seda marfil.",
        "price": 21000, "imageUrl": "/images/products/silk-trousers.jpg",
        "stock": 9, "tag": "new",
    },
    {
        "id": "8", "categoryId": "2",
        "name": "Draped Silk Evening Gown", "nameEs": "Vestido de Noche en Seda",
        "description": "Floor-length draped gown with cowl neckline.",
        "descriptionEs": "Vestido largo drapeado con escote vaca.",
        "price": 42000, "imageUrl": "/images/products/evening-gown.jpg",
        "stock": 0, "tag": "bestseller",
    },
]

SEED_ORDERS = [
    {"id": "1", "userId": "1", "orderDate": "2026-02-01T10:00:00Z", "status": "placed", "total": 20300},
]

SEED_ORDER_ITEMS = [
    {"id": "1", "orderId": "1", "productId": "1", "quantity": 1, "priceAtPurchase": 7500},
    {"id": "2", "orderId": "1", "productId": "2", "quantity": 1, "priceAtPurchase": 12800},
]

SEED_INQUIRIES = [
    {
        "id": "1", "userId": "2", "description": "50 silk blouses for AW capsule collection.",
        "status": "in_review", "createdAt": "2026-02-02T12:00:00Z",
        "quantity": 50, "deadline": "2026-03-01", "fabrics": "",
    },
    {
        "id": "2", "userId": "2", "description": "100 silk scarves with custom embroidery for SS25.",
        "status": "approved", "createdAt": "2026-02-05T09:30:00Z",
        "quantity": 100, "deadline": "2026-02-28", "fabrics": "",
    },
    {
        "id": "3", "userId": "2", "description": "25 silk dresses - bias cut, midnight navy.",
        "status": "production", "createdAt": "2026-01-28T14:20:00Z",
        "quantity": 25, "deadline": "2026-02-20", "fabrics": "",
    },
    {
        "id": "4", "userId": "2", "description": "200 silk shirts for corporate uniforms.",
        "status": "completed", "createdAt": "2026-01-15T11:00:00Z",
        "quantity": 200, "deadline": "2026-02-10", "fabrics": "",
    },
    {
        "id": "5", "userId": "2", "description": "75 silk pillowcases - hotel collection.",
        "status": "pending", "createdAt": "2026-02-07T16:45:00Z",
        "quantity": 75, "deadline": "2026-03-15", "fabrics": "",
    },
    {
        "id": "6", "userId": "2", "description": "30 silk robes for spa collection.",
        "status": "in_review", "createdAt": "2026-02-06T10:15:00Z",
        "quantity": 30, "deadline": "2026-03-05", "fabrics": "",
    },
]

# url path segment -> collection attribute
COLLECTIONS = {
    "users": "users",
    "profiles": "profiles",
    "categories": "categories",
    "products": "products",
    "orders": "orders",
    "orderItems": "order_items",
    "serviceInquiries": "inquiries",
}

_SECRET_FIELDS = ("passwordHash", "salt")


def hash_password(password: str, salt: Optional[str] = None) -> Tuple[str, str]:
    if salt is None:
        salt = secrets.token_hex(16)
    pwd_hash = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("utf-8"), 100000
    ).hex()
    return pwd_hash, salt


def verify_password(password: str, user: Dict[str, Any]) -> bool:
    if "salt" not in user or "passwordHash" not in user:
        return False
    pwd_hash, _ = hash_password(password, user["salt"])
    return hmac.compare_digest(pwd_hash, user["passwordHash"])


def _public(record: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in record.items() if k not in _SECRET_FIELDS}


def _ok(data: Any, status: int = 200) -> httpx.Response:
    return httpx.Response(status, json=data)


def _err(message: str, status: int = 400) -> httpx.Response:
    return httpx.Response(status, json={"message": message})


class MockBackend:
    """
    A json-server-like backend kept in memory. Mutations survive for the
    lifetime of the instance. Use with httpx.MockTransport(backend.handle).
    """

    def __init__(self) -> None:
        self.users: List[Dict[str, Any]] = []
        for user in copy.deepcopy(SEED_USERS):
            user["passwordHash"], user["salt"] = hash_password(DEMO_PASSWORD)
            self.users.append(user)
        self.profiles = copy.deepcopy(SEED_PROFILES)
        self.categories = copy.deepcopy(SEED_CATEGORIES)
        self.products = copy.deepcopy(SEED_PRODUCTS)
        self.orders = copy.deepcopy(SEED_ORDERS)
        self.order_items = copy.deepcopy(SEED_ORDER_ITEMS)
        self.inquiries = copy.deepcopy(SEED_INQUIRIES)
        self.notifications: Dict[str, Dict[str, bool]] = {}
        self.sessions: Dict[str, str] = {}  # token -> user id
        self.requests: List[httpx.Request] = []
        self._ids = itertools.count(1000)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def _new_id(self) -> str:
        return str(next(self._ids))

    def _session_user(self, request: httpx.Request) -> Optional[str]:
        auth = request.headers.get("Authorization", "")
        if not auth.startswith("Bearer "):
            return None
        return self.sessions.get(auth.split(" ", 1)[1])

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.rstrip("/") or "/"
        params = dict(request.url.params)
        body = json.loads(request.content) if request.content else None
        method = request.method.upper()
        _logger.debug(f"mock {method} {path} {params}")

        if path == "/auth/login" and method == "POST":
            return self._login(body or {})

        m = re.fullmatch(r"/users/(\w+)/password", path)
        if m and method == "PATCH":
            return self._change_password(request, m.group(1), body or {})

        m = re.fullmatch(r"/profiles/notifications/(\w+)", path)
        if m:
            return self._notifications(method, m.group(1), body or {})

        parts = path.strip("/").split("/")
        if not parts or parts[0] not in COLLECTIONS or len(parts) > 2:
            return _err(f"Unknown {method}: {path}", 404)
        collection: List[Dict[str, Any]] = getattr(self, COLLECTIONS[parts[0]])
        item_id = parts[1] if len(parts) == 2 else None

        if method == "GET":
            if item_id is None:
                rows = [
                    r
                    for r in collection
                    if all(str(r.get(k)) == str(v) for k, v in params.items())
                ]
                return _ok([_public(r) for r in rows])
            rec = self._find(collection, item_id)
            return _ok(_public(rec)) if rec else _err(f"{parts[0]} {item_id} not found", 404)

        if method == "POST" and item_id is None:
            return self._create(parts[0], collection, body or {})

        if item_id is None:
            return _err(f"Unknown {method}: {path}", 404)
        rec = self._find(collection, item_id)
        if rec is None:
            return _err(f"{parts[0]} {item_id} not found", 404)

        if method == "PATCH":
            rec.update({k: v for k, v in (body or {}).items() if k != "id"})
            return _ok(_public(rec))
        if method == "PUT":
            kept = {k: rec[k] for k in _SECRET_FIELDS if k in rec}
            rec.clear()
            rec.update({**(body or {}), **kept, "id": item_id})
            return _ok(_public(rec))
        if method == "DELETE":
            collection.remove(rec)
            return _ok({"success": True})
        return _err(f"Unknown {method}: {path}", 405)

    @staticmethod
    def _find(collection: List[Dict[str, Any]], item_id: str) -> Optional[Dict[str, Any]]:
        return next((r for r in collection if str(r.get("id")) == item_id), None)

    def _create(
        self, name: str, collection: List[Dict[str, Any]], data: Dict[str, Any]
    ) -> httpx.Response:
        rec = {"id": self._new_id()}
        if name == "users":
            if any(u["email"] == data.get("email") for u in self.users):
                return _err("Email already registered", 409)
            password = data.pop("password", None)
            if password:
                rec["passwordHash"], rec["salt"] = hash_password(password)
        elif name == "orders":
            rec.update({"status": "placed"})
        elif name == "serviceInquiries":
            rec.update({"status": "pending"})
        rec.update({k: v for k, v in data.items() if k != "id"})
        collection.append(rec)
        return _ok(_public(rec), 201)

    def _login(self, body: Dict[str, Any]) -> httpx.Response:
        user = next((u for u in self.users if u["email"] == body.get("email")), None)
        if user is None or not verify_password(str(body.get("password", "")), user):
            return _err("Invalid email or password", 401)
        token = secrets.token_urlsafe(32)
        self.sessions[token] = user["id"]
        return _ok({"token": token, "user": _public(user)})

    def _change_password(
        self, request: httpx.Request, user_id: str, body: Dict[str, Any]
    ) -> httpx.Response:
        if self._session_user(request) != user_id:
            return _err("Not authenticated", 401)
        user = self._find(self.users, user_id)
        if user is None:
            return _err("User not found", 404)
        if not verify_password(str(body.get("currentPassword", "")), user):
            return _err("Current password is incorrect", 403)
        user["passwordHash"], user["salt"] = hash_password(str(body["newPassword"]))
        return _ok({"success": True})

    def _notifications(
        self, method: str, user_id: str, body: Dict[str, Any]
    ) -> httpx.Response:
        prefs = self.notifications.setdefault(user_id, dict(NOTIFICATION_DEFAULTS))
        if method == "PATCH":
            prefs.update(body)
        elif method != "GET":
            return _err(f"Unknown {method}: notifications", 405)
        return _ok(prefs)
