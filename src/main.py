from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import LoadingIndicator

from api import transport
from api.mock_server import MockBackend
from utils import config
from utils.cart import Cart
from utils.logger import get_logger
from utils.messages import (
    InquirySubmittedMessage,
    NavigateMessage,
    OrderPlacedMessage,
    QuitRequestedMessage,
    UserLoginMessage,
    UserLogoutMessage,
)
from utils.state import LOGIN_MODE, GlobalState
from views.scr_cart import CartScreen
from views.scr_catalog import CatalogScreen
from views.scr_login import LoginScreen
from views.scr_orders import OrdersScreen
from views.scr_projects import ProjectsScreen
from views.scr_quote import QuoteScreen
from views.scr_settings import SettingsScreen

_logger = get_logger(__name__)


class SilkPortalApp(App):
    BINDINGS = [
        Binding("ctrl+t", "switch_light", "Toggle Theme", show=True),
    ]

    # screens of the logged-in user; rebuilt on every login so they bind to the new session
    SESSION_SCREENS = {
        "catalog": CatalogScreen,
        "cart": CartScreen,
        "orders": OrdersScreen,
        "projects": ProjectsScreen,
        "quote": QuoteScreen,
        "settings": SettingsScreen,
    }

    CSS_PATH = [
        "views/styles/index.tcss",
        "views/styles/login.tcss",
        "views/styles/catalog.tcss",
        "views/styles/cart.tcss",
        "views/styles/orders.tcss",
        "views/styles/projects.tcss",
        "views/styles/forms.tcss",
    ]

    state: GlobalState
    cart: Cart

    def __init__(self, state: GlobalState = None, cart: Cart = None):
        super().__init__()
        self.state = state or GlobalState()
        self.cart = cart
        self.add_mode(LOGIN_MODE, lambda: LoginScreen(self.state, self.cart))
        self._register_session_modes()

    def compose(self) -> ComposeResult:
        yield LoadingIndicator()

    async def on_mount(self) -> None:
        if config.API_BASE_URL is None:
            _logger.info("SILK_API_URL not set, using the in-process mock backend.")
            transport.use_transport(MockBackend().transport())
        if self.cart is None:
            self.cart = await Cart.load()
        await self.switch_mode(LOGIN_MODE)

    def _register_session_modes(self) -> None:
        for mode, screen_cls in self.SESSION_SCREENS.items():
            self.add_mode(mode, lambda cls=screen_cls: cls(self.state, self.cart))

    async def _reset_session_modes(self) -> None:
        for mode in self.SESSION_SCREENS:
            await self.remove_mode(mode)
        self._register_session_modes()

    def action_switch_light(self):
        if self.theme == "textual-dark":
            self.theme = "solarized-light"
        else:
            self.theme = "textual-dark"
        self.notify(f"Theme changed to {self.theme}")

    @on(UserLoginMessage)
    async def handle_user_login(self):
        await self.switch_mode(self.state.home_mode())

    @on(NavigateMessage)
    async def handle_navigate(self, message: NavigateMessage):
        mode, redirected = self.state.resolve_mode(message.mode)
        if redirected:
            _logger.info(f"Navigation to '{message.mode}' redirected to '{mode}'.")
            self.notify("That page is not available for your account.", severity="warning")
        if mode != self.current_mode:
            await self.switch_mode(mode)

    @on(UserLogoutMessage)
    @work(exclusive=True, group="session")
    async def handle_user_logout(self):
        await self.state.logout()
        await self.switch_mode(LOGIN_MODE)
        await self._reset_session_modes()
        self.notify("Logout successful.")

    @on(OrderPlacedMessage)
    def handle_order_placed(self, message: OrderPlacedMessage):
        _logger.info(f"Order {message.order_id} placed.")

    @on(InquirySubmittedMessage)
    def handle_inquiry_submitted(self, message: InquirySubmittedMessage):
        _logger.info(f"Inquiry {message.inquiry_id} submitted.")

    @on(QuitRequestedMessage)
    def handle_quit(self):
        self.exit()


def run():
    app = SilkPortalApp()
    app.run()


if __name__ == "__main__":
    run()
