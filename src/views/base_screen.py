from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.events import Resize, ScreenResume
from textual.screen import Screen
from textual.widgets import Button, Footer, Header, Label, ListItem, ListView, Markdown

from utils.cart import Cart
from utils.messages import NavigateMessage, UserLogoutMessage
from utils.pure import format_cents, generate_markdown_table
from utils.state import GlobalState
from views.modal_dialog import DialogModal, QuitDialogModal

MIN_WIDTH = 60
MIN_HEIGHT = 20


class Sidebar(Container):
    def __init__(self, state: GlobalState, cart: Cart, current_mode: str = ""):
        super().__init__()
        self.state = state
        self.cart = cart
        self.current_mode = current_mode

    def compose(self) -> ComposeResult:
        yield Label("User Info", id="label-info-1")
        yield Markdown("", id="md-userinfo")
        yield Button("Log out", id="btn-logout", variant="error")
        yield Label("Menu", id="label-info-2")
        yield ListView(id="list-menu")

    async def on_mount(self):
        await self.refresh_info()

        list_menu: ListView = self.query_one("#list-menu")
        await list_menu.clear()
        await list_menu.extend(
            [
                ListItem(Label(label), id="list-menu-item-" + mode)
                for mode, label in self.state.available_modes().items()
            ]
        )
        self.highlight_item(self.current_mode)

    async def refresh_info(self) -> None:
        user = self.state.user
        if user is None:
            await self.query_one(Markdown).update("")
            return
        rows = [["Name", user.name], ["Role", user.role.capitalize()]]
        if user.role == "customer":
            rows.append(
                [
                    "Cart",
                    f"{self.cart.get_cart_count()} item(s), "
                    f"{format_cents(self.cart.get_cart_total())}",
                ]
            )
        await self.query_one(Markdown).update(
            generate_markdown_table(None, rows, ["l", "l"])
        )

    def on_list_view_selected(self, event: ListView.Selected):
        selected_mode = event.item.id.removeprefix("list-menu-item-")
        self.highlight_item(self.current_mode)
        if selected_mode != self.current_mode:
            self.post_message(NavigateMessage(selected_mode))

    @on(Button.Pressed, "#btn-logout")
    @work()
    async def handle_logout(self):
        if not await self.app.push_screen_wait(
            DialogModal(
                "Are you sure you want to log out?",
                primary_text="Yes",
                secondary_text="No",
                tone="warning",
            )
        ):
            return

        self.post_message(UserLogoutMessage())

    def highlight_item(self, mode: str):
        list_menu = self.query_one("#list-menu")
        for item in list_menu.children:
            item.highlighted = item.id == "list-menu-item-" + mode


class BaseScreen(Screen):
    """
    Inherited by all screens, contains common elements like
    headers, footers, sidebar, and keybindings.
    Screens receive the session and cart handles from the app root.
    """

    BINDINGS = [
        Binding("ctrl+z", "quit", "Quit App", show=True),
    ]

    MODE = ""

    def __init__(self, state: GlobalState, cart: Cart):
        super().__init__()
        self.state = state
        self.cart = cart
        self.configure()

    def configure(
        self,
        header_sub_title: str = "",
        show_sidebar: bool = True,
    ) -> None:
        self.app.title = "Silk Portal"
        self.sub_title = header_sub_title or self.state.available_modes().get(
            self.MODE, ""
        )
        self._show_sidebar = show_sidebar

    def compose(self) -> ComposeResult:
        if self._show_sidebar:
            yield Sidebar(self.state, self.cart, self.MODE)
        yield Header()
        yield Footer(show_command_palette=False)

    async def on_resize(self, event: Resize) -> None:
        if event.size.width < MIN_WIDTH or event.size.height < MIN_HEIGHT:
            self.notify(
                f"Terminal is smaller than {MIN_WIDTH}x{MIN_HEIGHT}, content may be cut.",
                severity="warning",
            )

    @on(ScreenResume)
    async def handle_resume_sidebar(self) -> None:
        for sidebar in self.query(Sidebar):
            await sidebar.refresh_info()

    @work()
    async def action_quit(self):
        await self.app.push_screen_wait(QuitDialogModal())
