# provide dataclass models, with converters from/to the backend's camelCase JSON
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional


def _parse_datetime(val) -> Optional[datetime]:
    if not val:
        return None
    if isinstance(val, datetime):
        parsed = val
    else:
        parsed = datetime.fromisoformat(str(val).replace("Z", "+00:00"))
    # naive timestamps are taken as UTC so they sort against aware ones
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_date(val) -> Optional[date]:
    if not val:
        return None
    if isinstance(val, date):
        return val
    return date.fromisoformat(str(val)[:10])


def _iso(val: Optional[datetime]) -> Optional[str]:
    if val is None:
        return None
    return val.isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class User:
    id: str
    email: str
    role: str  # "customer" or "brand"
    name: str

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> User:
        return cls(
            id=str(data["id"]),
            email=data.get("email", ""),
            role=data.get("role", "customer"),
            name=data.get("name", ""),
        )


@dataclass(frozen=True)
class Profile:
    id: str
    user_id: str
    name: str
    phone: str = ""
    # brand only
    website: str = ""
    industry: str = ""
    company_size: str = ""

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> Profile:
        return cls(
            id=str(data["id"]),
            user_id=str(data.get("userId", "")),
            name=data.get("name", ""),
            phone=data.get("phone") or "",
            website=data.get("website") or "",
            industry=data.get("industry") or "",
            company_size=data.get("companySize") or "",
        )


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    name_es: str = ""
    description: str = ""

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> Category:
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            name_es=data.get("nameEs") or "",
            description=data.get("description") or "",
        )


@dataclass(frozen=True)
class Product:
    id: str
    category_id: str
    name: str
    price: int  # cents
    stock: int
    name_es: str = ""
    description: str = ""
    description_es: str = ""
    image_url: str = ""
    tag: Optional[str] = None  # "bestseller" | "new" | "trending"

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> Product:
        return cls(
            id=str(data["id"]),
            category_id=str(data.get("categoryId", "")),
            name=data.get("name", ""),
            price=int(data.get("price") or 0),
            stock=max(int(data.get("stock") or 0), 0),
            name_es=data.get("nameEs") or "",
            description=data.get("description") or "",
            description_es=data.get("descriptionEs") or "",
            image_url=data.get("imageUrl") or "",
            tag=data.get("tag") or None,
        )


@dataclass(frozen=True)
class CartItem:
    product_id: str
    name: str
    price: int  # unit price in cents, snapshot taken when the line was added
    quantity: int
    selected_size: Optional[str] = None
    selected_color: Optional[str] = None

    @property
    def key(self) -> tuple:
        return (self.product_id, self.selected_size, self.selected_color)

    @property
    def line_total(self) -> int:
        return self.price * self.quantity

    @classmethod
    def from_product(
        cls,
        product: Product,
        quantity: int = 1,
        size: Optional[str] = None,
        color: Optional[str] = None,
    ) -> CartItem:
        return cls(
            product_id=product.id,
            name=product.name,
            price=product.price,
            quantity=quantity,
            selected_size=size,
            selected_color=color,
        )

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> CartItem:
        return cls(
            product_id=str(data["id"]),
            name=str(data.get("name", "")),
            price=int(data["price"]),
            quantity=int(data["quantity"]),
            selected_size=data.get("selectedSize"),
            selected_color=data.get("selectedColor"),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "id": self.product_id,
            "name": self.name,
            "price": self.price,
            "quantity": self.quantity,
            "selectedSize": self.selected_size,
            "selectedColor": self.selected_color,
        }


@dataclass(frozen=True)
class Order:
    id: str
    user_id: str
    order_date: Optional[datetime]
    status: str
    total: int  # cents
    shipping_info: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> Order:
        return cls(
            id=str(data["id"]),
            user_id=str(data.get("userId", "")),
            order_date=_parse_datetime(data.get("orderDate")),
            status=data.get("status", "placed"),
            total=int(data.get("total") or 0),
            shipping_info=dict(data.get("shippingInfo") or {}),
        )


@dataclass(frozen=True)
class OrderItem:
    id: str
    order_id: str
    product_id: str
    quantity: int
    price_at_purchase: int  # unit price in cents at time of order, never re-read
    selected_size: Optional[str] = None
    selected_color: Optional[str] = None

    @property
    def line_total(self) -> int:
        return self.price_at_purchase * self.quantity

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> OrderItem:
        return cls(
            id=str(data["id"]),
            order_id=str(data.get("orderId", "")),
            product_id=str(data.get("productId", "")),
            quantity=int(data.get("quantity") or 0),
            price_at_purchase=int(data.get("priceAtPurchase") or 0),
            selected_size=data.get("selectedSize"),
            selected_color=data.get("selectedColor"),
        )


@dataclass(frozen=True)
class ServiceInquiry:
    id: str
    user_id: str
    description: str
    quantity: int
    deadline: Optional[date]
    status: str
    created_at: Optional[datetime]
    fabrics: str = ""

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> ServiceInquiry:
        return cls(
            id=str(data["id"]),
            user_id=str(data.get("userId", "")),
            description=data.get("description", ""),
            quantity=int(data.get("quantity") or 0),
            deadline=_parse_date(data.get("deadline")),
            status=data.get("status", "pending"),
            created_at=_parse_datetime(data.get("createdAt")),
            fabrics=data.get("fabrics") or "",
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "description": self.description,
            "quantity": self.quantity,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "status": self.status,
            "createdAt": _iso(self.created_at),
            "fabrics": self.fabrics,
        }


NOTIFICATION_DEFAULTS: Dict[str, bool] = {
    "emailOrders": True,
    "emailMarketing": False,
    "emailQuotes": True,
    "emailProjects": True,
    "smsOrders": False,
    "smsQuotes": False,
    "smsMarketing": False,
}

# flags shown only to brand users
BRAND_NOTIFICATION_KEYS = {"emailQuotes", "emailProjects", "smsQuotes"}
