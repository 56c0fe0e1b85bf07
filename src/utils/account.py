# profile, password and notification settings for the logged-in user
from __future__ import annotations

from typing import Dict, Mapping

import api.resources as resources
from db import models

MIN_PASSWORD_LENGTH = 8

BRAND_PROFILE_FIELDS = ("website", "industry", "companySize")


class PasswordChangeError(ValueError):
    pass


async def save_profile(user: models.User, fields: Mapping[str, str]) -> models.Profile:
    """
    Patch the user's profile, creating it on first save.
    Brand-only fields are dropped for customers.
    """
    payload = {"name": fields.get("name", user.name), "phone": fields.get("phone", "")}
    if user.role == "brand":
        payload.update({k: fields.get(k, "") for k in BRAND_PROFILE_FIELDS})

    if payload["name"] and payload["name"] != user.name:
        await resources.patch_user(user.id, {"name": payload["name"]})

    existing = await resources.get_profile_by_user(user.id)
    if existing:
        return await resources.update_profile(existing.id, payload)
    return await resources.create_profile({"userId": user.id, **payload})


def merge_notifications(stored: Mapping[str, object]) -> Dict[str, bool]:
    """Backend values over the defaults; unknown keys are dropped."""
    prefs = dict(models.NOTIFICATION_DEFAULTS)
    for key, val in (stored or {}).items():
        if key in prefs:
            prefs[key] = bool(val)
    return prefs


async def load_notifications(user_id: str) -> Dict[str, bool]:
    return merge_notifications(await resources.get_notifications(user_id))


async def save_notifications(user_id: str, prefs: Mapping[str, bool]) -> Dict[str, bool]:
    saved = await resources.save_notifications(user_id, merge_notifications(prefs))
    return merge_notifications(saved)


def check_new_password(new: str, confirm: str) -> None:
    if new != confirm:
        raise PasswordChangeError("New passwords do not match.")
    if len(new) < MIN_PASSWORD_LENGTH:
        raise PasswordChangeError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters."
        )


async def change_password(user_id: str, current: str, new: str, confirm: str) -> None:
    """Client-side rules first; the backend verifies the current password."""
    check_new_password(new, confirm)
    await resources.change_password(user_id, current, new)
