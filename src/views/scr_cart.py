from textual import on, work
from textual.app import ComposeResult
from textual.containers import Container, Horizontal, HorizontalGroup, VerticalScroll
from textual.events import ScreenResume
from textual.message import Message
from textual.widgets import Button, Label, Rule

from db.models import CartItem
from utils.cart import Cart
from utils.messages import CartChangedMessage, NavigateMessage, OrderPlacedMessage
from utils.pure import format_cents
from views.base_screen import BaseScreen
from views.modal_checkout import CheckoutModal
from views.modal_dialog import DialogModal


class CartLineChangedMessage(Message):
    bubble = True

    def __init__(self, key: tuple, quantity: int) -> None:
        super().__init__()
        self.key = key
        self.quantity = quantity


class CartItemWidget(HorizontalGroup):
    def __init__(self, item: CartItem):
        super().__init__()
        self.item = item

    def compose(self):
        variant = " / ".join(v for v in (self.item.selected_size, self.item.selected_color) if v)
        with Container(id="div-cart-item-group"):
            with Container(id="div-item"):
                yield Label(self.item.name, id="label-item-name")
                yield Label(variant or "-", id="label-item-variant")
                yield Label(format_cents(self.item.price), id="label-item-price")
            with Container(id="div-actions"):
                yield Button("-", id="btn-item-sub")
                yield Label(str(self.item.quantity), id="label-item-qty")
                yield Button("+", id="btn-item-add")
                yield Button("Remove", id="btn-item-remove", variant="error")
                yield Label(format_cents(self.item.line_total), id="label-item-total")

    @on(Button.Pressed, "#btn-item-add")
    def handle_add(self) -> None:
        self.post_message(CartLineChangedMessage(self.item.key, self.item.quantity + 1))

    @on(Button.Pressed, "#btn-item-sub")
    def handle_sub(self) -> None:
        # the cart screen never goes below one with this button; Remove deletes
        if self.item.quantity > 1:
            self.post_message(CartLineChangedMessage(self.item.key, self.item.quantity - 1))

    @on(Button.Pressed, "#btn-item-remove")
    def handle_remove(self) -> None:
        self.post_message(CartLineChangedMessage(self.item.key, 0))


class CartScreen(BaseScreen):
    """
    Cart lines with quantity controls, running total and checkout.
    """

    MODE = "cart"

    def __init__(self, state, cart: Cart) -> None:
        super().__init__(state, cart)

    def compose(self) -> ComposeResult:
        yield from super().compose()
        yield VerticalScroll(id="vertscroll-content")
        yield Label("Total: $0.00", id="label-cart-total")
        yield Rule(line_style="dashed")
        with Horizontal(id="hort-buttons"):
            yield Button("Clear Cart", id="btn-clear-cart")
            yield Button("Continue Shopping", id="btn-shop")
            yield Button("Checkout", id="btn-checkout", variant="primary")

    async def on_mount(self):
        self.handle_cart_change()

    @on(CartChangedMessage)
    @on(ScreenResume)
    @work(exclusive=True)  # must be exclusive, else the list may be mounted twice
    async def handle_cart_change(self):
        content = self.query_one("#vertscroll-content")
        items = self.cart.items
        shown = [c.item for c in content.children if isinstance(c, CartItemWidget)]
        if shown != items:
            await content.remove_children()
            await content.mount_all([CartItemWidget(item) for item in items])

        content.set_class(not items, "no-items")
        self.query_one("#label-cart-total", Label).update(
            f"Items: {self.cart.get_cart_count()}   "
            f"Total: {format_cents(self.cart.get_cart_total())}"
        )
        await self.handle_resume_sidebar()

    @on(CartLineChangedMessage)
    @work()
    async def handle_line_changed(self, message: CartLineChangedMessage) -> None:
        if message.quantity <= 0:
            if not await self.app.push_screen_wait(
                DialogModal(
                    "Do you really want to remove this item from cart?",
                    primary_text="Yes",
                    secondary_text="No",
                    tone="warning",
                )
            ):
                return
        await self.cart.update_quantity(message.key, message.quantity)
        self.post_message(CartChangedMessage())

    @on(Button.Pressed, "#btn-clear-cart")
    @work()
    async def handle_clear_cart(self) -> None:
        if not len(self.cart):
            self.app.notify("Cart is empty.", severity="warning")
            return

        if await self.app.push_screen_wait(
            DialogModal(
                "Do you really want to remove all items from cart?",
                primary_text="Yes",
                secondary_text="No",
                tone="error",
            )
        ):
            await self.cart.clear_cart()
            self.post_message(CartChangedMessage())

    @on(Button.Pressed, "#btn-shop")
    def handle_shop(self) -> None:
        self.post_message(NavigateMessage("catalog"))

    @on(Button.Pressed, "#btn-checkout")
    @work()
    async def handle_checkout(self) -> None:
        if not len(self.cart):
            self.app.notify("Cart is empty.", severity="warning")
            return

        order_id = await self.app.push_screen_wait(CheckoutModal(self.state, self.cart))
        if order_id:
            self.app.post_message(OrderPlacedMessage(order_id))
        self.post_message(CartChangedMessage())
