from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import Key, ScreenResume
from textual.widgets import Button, Input, Label, Rule

from api.transport import ApiError
from utils.logger import get_logger
from utils.messages import UserLoginMessage
from utils.state import AuthenticationError
from views.base_screen import BaseScreen
from views.modal_dialog import QuitDialogModal

_logger = get_logger(__name__)


class LoginScreen(BaseScreen):
    """
    Entry view. Posts UserLoginMessage once the session holds a user;
    the app then routes to the role's home mode.
    """

    MODE = "login"

    def __init__(self, state, cart):
        super().__init__(state, cart)
        self.configure(header_sub_title="Sign in", show_sidebar=False)

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical(id="div-login"):
            yield Label("Email")
            yield Input(placeholder="customer@example.com", id="input-login-email")
            yield Label("Password")
            yield Input(placeholder="*********", password=True, id="input-login-pwd")
            with Horizontal(id="div-login-btns"):
                yield Button("Quit", id="btn-quit")
                yield Button("Sign in", id="btn-login", variant="primary")
            yield Rule(line_style="dashed")
            yield Label("Or explore with a demo account")
            with Horizontal(id="div-demo-btns"):
                yield Button("Continue as customer", id="btn-demo-customer")
                yield Button("Continue as brand", id="btn-demo-brand")

    def on_mount(self):
        self.query_one("#input-login-email").focus()

    @on(ScreenResume)
    def handle_resume(self) -> None:
        pwd = self.query_one("#input-login-pwd", Input)
        pwd.value = ""
        pwd.remove_class("-invalid")

    def on_key(self, event: Key) -> None:
        if event.key == "enter" and self.focused == self.query_one("#input-login-pwd"):
            self.handle_login_submit()

    @on(Button.Pressed, "#btn-login")
    @work(exclusive=True)
    async def handle_login_submit(self) -> None:
        email = self.query_one("#input-login-email", Input).value.strip()
        input_pwd = self.query_one("#input-login-pwd", Input)

        if not email or not input_pwd.value:
            self.notify("Email or password cannot be empty!", severity="error")
            return

        try:
            user = await self.state.login(email, input_pwd.value)
        except AuthenticationError as e:
            self.notify(str(e), severity="error")
            input_pwd.value = ""
            input_pwd.focus()
            input_pwd.add_class("-invalid")
            return
        except ApiError as e:
            _logger.warning(f"Login request failed: {e.message}")
            self.notify("Could not reach the server. Please retry.", severity="error")
            return

        self.notify(f"Welcome, {user.name}!")
        self.post_message(UserLoginMessage())

    @on(Button.Pressed, "#btn-demo-customer")
    async def handle_demo_customer(self) -> None:
        await self.state.login_as("customer")
        self.post_message(UserLoginMessage())

    @on(Button.Pressed, "#btn-demo-brand")
    async def handle_demo_brand(self) -> None:
        await self.state.login_as("brand")
        self.post_message(UserLoginMessage())

    @on(Button.Pressed, "#btn-quit")
    def handle_quit_(self) -> None:
        self.app.push_screen(QuitDialogModal())
