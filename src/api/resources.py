# typed request wrappers, one section per REST collection
from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar

from api.transport import ApiError, NotFoundError, request
from db import models
from utils.logger import get_logger

_logger = get_logger(__name__)

M = TypeVar("M")


def _one(model: Type[M], data: Any) -> M:
    """Decode one record; bad payloads surface as ApiError like any other failed call."""
    try:
        return model.from_json(data)
    except (ValueError, TypeError, KeyError) as e:
        _logger.warning(f"Malformed {model.__name__} payload: {e!r}")
        raise ApiError("Malformed response") from e


def _many(model: Type[M], rows: Any) -> List[M]:
    if not isinstance(rows, list):
        _logger.warning(f"Expected a list of {model.__name__}, got {type(rows).__name__}")
        raise ApiError("Malformed response")
    return [_one(model, row) for row in rows]


async def _get_or_none(path: str) -> Optional[Dict[str, Any]]:
    try:
        return await request("GET", path)
    except NotFoundError:
        return None


# ---------------------------
# Auth
# ---------------------------


async def login(email: str, password: str) -> Tuple[str, models.User]:
    """Verify credentials server-side; return (token, user)."""
    data = await request(
        "POST", "/auth/login", json={"email": email, "password": password}
    )
    if not isinstance(data, dict) or not data.get("token"):
        raise ApiError("Malformed response")
    return data["token"], _one(models.User, data.get("user"))


async def change_password(user_id: str, current: str, new: str) -> None:
    await request(
        "PATCH",
        f"/users/{user_id}/password",
        json={"currentPassword": current, "newPassword": new},
    )


# ---------------------------
# Users
# ---------------------------


async def get_users() -> List[models.User]:
    return _many(models.User, await request("GET", "/users"))


async def get_user(user_id: str) -> Optional[models.User]:
    data = await _get_or_none(f"/users/{user_id}")
    return _one(models.User, data) if data else None


async def create_user(data: Dict[str, Any]) -> models.User:
    return _one(models.User, await request("POST", "/users", json=data))


async def update_user(user_id: str, data: Dict[str, Any]) -> models.User:
    """Full replacement (PUT)."""
    return _one(models.User, await request("PUT", f"/users/{user_id}", json=data))


async def patch_user(user_id: str, data: Dict[str, Any]) -> models.User:
    return _one(models.User, await request("PATCH", f"/users/{user_id}", json=data))


async def delete_user(user_id: str) -> None:
    await request("DELETE", f"/users/{user_id}")


# ---------------------------
# Categories & Products
# ---------------------------


async def get_categories() -> List[models.Category]:
    return _many(models.Category, await request("GET", "/categories"))


async def get_category(category_id: str) -> Optional[models.Category]:
    data = await _get_or_none(f"/categories/{category_id}")
    return _one(models.Category, data) if data else None


async def get_products() -> List[models.Product]:
    return _many(models.Product, await request("GET", "/products"))


async def get_product(product_id: str) -> Optional[models.Product]:
    data = await _get_or_none(f"/products/{product_id}")
    return _one(models.Product, data) if data else None


async def get_products_by_category(category_id: str) -> List[models.Product]:
    rows = await request("GET", "/products", params={"categoryId": category_id})
    return _many(models.Product, rows)


async def update_product(product_id: str, data: Dict[str, Any]) -> models.Product:
    """Brand-side stock/price edit (PATCH)."""
    return _one(
        models.Product, await request("PATCH", f"/products/{product_id}", json=data)
    )


# ---------------------------
# Orders & Order Items
# ---------------------------


async def get_orders() -> List[models.Order]:
    return _many(models.Order, await request("GET", "/orders"))


async def get_orders_by_user(user_id: str) -> List[models.Order]:
    rows = await request("GET", "/orders", params={"userId": user_id})
    return _many(models.Order, rows)


async def get_order(order_id: str) -> Optional[models.Order]:
    data = await _get_or_none(f"/orders/{order_id}")
    return _one(models.Order, data) if data else None


async def create_order(data: Dict[str, Any]) -> models.Order:
    return _one(models.Order, await request("POST", "/orders", json=data))


async def update_order_status(order_id: str, status: str) -> models.Order:
    return _one(
        models.Order,
        await request("PATCH", f"/orders/{order_id}", json={"status": status}),
    )


async def get_order_items(order_id: str) -> List[models.OrderItem]:
    rows = await request("GET", "/orderItems", params={"orderId": order_id})
    return _many(models.OrderItem, rows)


async def create_order_item(data: Dict[str, Any]) -> models.OrderItem:
    return _one(models.OrderItem, await request("POST", "/orderItems", json=data))


# ---------------------------
# Service Inquiries
# ---------------------------


async def get_inquiries() -> List[models.ServiceInquiry]:
    return _many(models.ServiceInquiry, await request("GET", "/serviceInquiries"))


async def get_inquiries_by_user(user_id: str) -> List[models.ServiceInquiry]:
    """Server order is not guaranteed; callers sort."""
    rows = await request("GET", "/serviceInquiries", params={"userId": user_id})
    return _many(models.ServiceInquiry, rows)


async def get_inquiry(inquiry_id: str) -> Optional[models.ServiceInquiry]:
    data = await _get_or_none(f"/serviceInquiries/{inquiry_id}")
    return _one(models.ServiceInquiry, data) if data else None


async def create_inquiry(data: Dict[str, Any]) -> models.ServiceInquiry:
    return _one(
        models.ServiceInquiry, await request("POST", "/serviceInquiries", json=data)
    )


async def update_inquiry(
    inquiry_id: str, data: Dict[str, Any]
) -> models.ServiceInquiry:
    return _one(
        models.ServiceInquiry,
        await request("PATCH", f"/serviceInquiries/{inquiry_id}", json=data),
    )


async def delete_inquiry(inquiry_id: str) -> None:
    await request("DELETE", f"/serviceInquiries/{inquiry_id}")


# ---------------------------
# Profiles & Notifications
# ---------------------------


async def get_profile_by_user(user_id: str) -> Optional[models.Profile]:
    """Profiles are 1:1 with users; the collection query returns a list."""
    rows = _many(models.Profile, await request("GET", "/profiles", params={"userId": user_id}))
    return rows[0] if rows else None


async def get_profile(profile_id: str) -> Optional[models.Profile]:
    data = await _get_or_none(f"/profiles/{profile_id}")
    return _one(models.Profile, data) if data else None


async def create_profile(data: Dict[str, Any]) -> models.Profile:
    return _one(models.Profile, await request("POST", "/profiles", json=data))


async def update_profile(profile_id: str, data: Dict[str, Any]) -> models.Profile:
    return _one(
        models.Profile, await request("PATCH", f"/profiles/{profile_id}", json=data)
    )


async def get_notifications(user_id: str) -> Dict[str, Any]:
    return await request("GET", f"/profiles/notifications/{user_id}") or {}


async def save_notifications(user_id: str, prefs: Dict[str, bool]) -> Dict[str, Any]:
    return await request("PATCH", f"/profiles/notifications/{user_id}", json=prefs)
