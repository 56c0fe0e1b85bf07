from typing import Dict

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, VerticalScroll
from textual.widgets import Button, Input, Label, Rule, Switch

import api.resources as resources
from api.transport import ApiError
from db.models import BRAND_NOTIFICATION_KEYS, NOTIFICATION_DEFAULTS
from utils import account
from utils.logger import get_logger
from views.base_screen import BaseScreen

_logger = get_logger(__name__)

NOTIFICATION_LABELS = {
    "emailOrders": "Email me about my orders",
    "emailMarketing": "Email me news and offers",
    "emailQuotes": "Email me about quote updates",
    "emailProjects": "Email me about production updates",
    "smsOrders": "Text me about my orders",
    "smsQuotes": "Text me about quote updates",
    "smsMarketing": "Text me news and offers",
}

# (field, label, brand only)
PROFILE_FIELDS = (
    ("name", "Full name", False),
    ("phone", "Phone", False),
    ("website", "Website", True),
    ("industry", "Industry", True),
    ("companySize", "Company size", True),
)


class SettingsScreen(BaseScreen):
    """Profile, password and notification preferences."""

    MODE = "settings"

    def __init__(self, state, cart):
        super().__init__(state, cart)
        self._is_brand = state.role == "brand"

    def _notification_keys(self):
        return [
            k
            for k in NOTIFICATION_DEFAULTS
            if self._is_brand or k not in BRAND_NOTIFICATION_KEYS
        ]

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with VerticalScroll(id="div-settings"):
            yield Label("Profile", classes="section-title")
            for key, label, brand_only in PROFILE_FIELDS:
                if brand_only and not self._is_brand:
                    continue
                yield Label(label)
                yield Input(id=f"input-profile-{key}")
            yield Button("Save Profile", id="btn-save-profile", variant="primary")
            yield Rule(line_style="dashed")

            yield Label("Password", classes="section-title")
            yield Input(placeholder="Current password", password=True, id="input-pwd-current")
            yield Input(placeholder="New password", password=True, id="input-pwd-new")
            yield Input(placeholder="Confirm new password", password=True, id="input-pwd-confirm")
            yield Button("Change Password", id="btn-change-pwd", variant="warning")
            yield Rule(line_style="dashed")

            yield Label("Notifications", classes="section-title")
            for key in self._notification_keys():
                with Horizontal(classes="hort-switch"):
                    yield Switch(value=NOTIFICATION_DEFAULTS[key], id=f"switch-{key}")
                    yield Label(NOTIFICATION_LABELS[key])
            yield Button("Save Preferences", id="btn-save-notif", variant="primary")

    def on_mount(self) -> None:
        self.load_settings()

    @work(exclusive=True)
    async def load_settings(self) -> None:
        user = self.state.user
        try:
            profile = await resources.get_profile_by_user(user.id)
            prefs = await account.load_notifications(user.id)
        except ApiError as e:
            _logger.warning(f"Loading settings failed: {e.message}")
            self.notify("Could not load your settings.", severity="error")
            return

        values = {"name": user.name}
        if profile:
            values.update(
                name=profile.name or user.name,
                phone=profile.phone,
                website=profile.website,
                industry=profile.industry,
                companySize=profile.company_size,
            )
        for field in self.query("Input"):
            if field.id and field.id.startswith("input-profile-"):
                field.value = values.get(field.id.removeprefix("input-profile-")) or ""
        for key in self._notification_keys():
            self.query_one(f"#switch-{key}", Switch).value = prefs[key]

    @on(Button.Pressed, "#btn-save-profile")
    @work(exclusive=True, group="profile")
    async def handle_save_profile(self) -> None:
        fields: Dict[str, str] = {
            field.id.removeprefix("input-profile-"): field.value.strip()
            for field in self.query("Input")
            if field.id and field.id.startswith("input-profile-")
        }
        if not fields.get("name"):
            self.query_one("#input-profile-name", Input).add_class("-invalid")
            self.notify("Name cannot be empty.", severity="error")
            return
        self.query_one("#input-profile-name", Input).remove_class("-invalid")

        try:
            await account.save_profile(self.state.user, fields)
        except ApiError as e:
            _logger.error(f"Saving profile failed: {e.message}")
            self.notify("Could not save your profile.", severity="error")
            return
        self.notify("Profile saved.")

    @on(Button.Pressed, "#btn-change-pwd")
    @work(exclusive=True, group="password")
    async def handle_change_password(self) -> None:
        inputs = [
            self.query_one(f"#input-pwd-{k}", Input) for k in ("current", "new", "confirm")
        ]
        current, new, confirm = (i.value for i in inputs)
        if not current:
            self.notify("Enter your current password.", severity="error")
            return
        try:
            await account.change_password(self.state.uid, current, new, confirm)
        except account.PasswordChangeError as e:
            self.notify(str(e), severity="error")
            return
        except ApiError as e:
            _logger.warning(f"Password change failed: {e.message}")
            msg = e.message if e.status in (400, 401, 403) else "Could not change password."
            self.notify(msg, severity="error")
            return

        for i in inputs:
            i.value = ""
        self.notify("Password updated.")

    @on(Button.Pressed, "#btn-save-notif")
    @work(exclusive=True, group="notifications")
    async def handle_save_notifications(self) -> None:
        prefs = {
            key: self.query_one(f"#switch-{key}", Switch).value
            for key in self._notification_keys()
        }
        try:
            await account.save_notifications(self.state.uid, prefs)
        except ApiError as e:
            _logger.error(f"Saving notifications failed: {e.message}")
            self.notify("Could not save your preferences.", severity="error")
            return
        self.notify("Preferences saved.")
