from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Literal, Optional, Tuple

import api.resources as resources
from api.transport import ApiError
from db import models, store
from utils.logger import get_logger

_logger = get_logger(__name__)

Role = Literal["customer", "brand"]

# synthetic identities for the demo entry buttons
DEMO_USERS: Dict[str, models.User] = {
    "customer": models.User(
        id="1", email="customer@example.com", role="customer", name="Clara Silva"
    ),
    "brand": models.User(
        id="2", email="brand@example.com", role="brand", name="Atelier Aurora"
    ),
}

LOGIN_MODE = "login"

# mode -> label, per role; the first entry is the role's home
ROLE_MODES: Dict[str, Dict[str, str]] = {
    "customer": {
        "catalog": "Catalog",
        "cart": "Cart",
        "orders": "My Orders",
        "quote": "Request a Quote",
        "settings": "Account Settings",
    },
    "brand": {
        "projects": "Projects",
        "quote": "New Quote Request",
        "catalog": "Catalog",
        "settings": "Account Settings",
    },
}


class AuthenticationError(Exception):
    pass


@dataclass
class GlobalState:
    """
    Session state owned by the application root and handed to screens.

    Fields:
      - user: current identity, None when logged out
      - token: bearer token when the backend verified the login

    The role is a UI hint for which views to show; the backend remains the
    authority on what the token may do.
    """

    user: Optional[models.User] = None
    token: Optional[str] = field(default=None, repr=False)

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def role(self) -> Optional[Role]:
        return self.user.role if self.user else None

    @property
    def uid(self) -> Optional[str]:
        return self.user.id if self.user else None

    async def login_as(self, role: Role) -> models.User:
        """
        Demo entry: adopt the synthetic identity for role, no credential check.
        A token left by an earlier verified session is dropped so it is never sent.
        """
        if role not in DEMO_USERS:
            raise ValueError(f"Unknown role: {role}")
        await store.clear_token()
        self.user = DEMO_USERS[role]
        self.token = None
        _logger.info(f"Demo login as {role}.")
        return self.user

    async def login(self, email: str, password: str) -> models.User:
        """Verified entry: the backend checks the credentials and issues a token."""
        email = (email or "").strip()
        if not email or not password:
            raise AuthenticationError("Email and password are required.")
        try:
            token, user = await resources.login(email, password)
        except ApiError as e:
            if e.status in (400, 401, 403):
                raise AuthenticationError("Invalid email or password.") from e
            raise
        await store.set_token(token)
        self.user, self.token = user, token
        _logger.info(f"User {user.id} logged in as {user.role}.")
        return user

    async def logout(self) -> None:
        """Forget identity and token. The cart is kept on purpose."""
        if self.user:
            _logger.info(f"User {self.user.id} logged out.")
        self.user = None
        self.token = None
        await store.clear_token()

    # ---------------------------
    # Role gates
    # ---------------------------

    def available_modes(self) -> Dict[str, str]:
        if not self.is_authenticated:
            return {}
        return ROLE_MODES.get(self.role, {})

    def home_mode(self) -> str:
        modes = self.available_modes()
        return next(iter(modes)) if modes else LOGIN_MODE

    def can_access(self, mode: str) -> bool:
        if mode == LOGIN_MODE:
            return True
        return mode in self.available_modes()

    def resolve_mode(self, mode: str) -> Tuple[str, bool]:
        """
        Map a navigation request to the mode actually shown.
        Returns (mode, redirected).
        """
        if self.can_access(mode):
            return mode, False
        if not self.is_authenticated:
            return LOGIN_MODE, True
        return self.home_mode(), True
