from typing import Optional

from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, MarkdownViewer

from api.transport import ApiError
from utils.cart import Cart, place_order
from utils.logger import get_logger
from utils.pure import format_cents, generate_markdown_table
from utils.state import GlobalState
from views.modal_dialog import DialogModal

_logger = get_logger(__name__)

SHIPPING_FIELDS = (
    ("name", "Full Name", "Clara Silva"),
    ("email", "Email", "customer@example.com"),
    ("phone", "Phone", "+1 555 0100"),
    ("address", "Shipping Address", "123 Main St, Anytown, ST 00000"),
)


class CheckoutModal(ModalScreen[Optional[str]]):
    """
    A modal screen for check out, including a table of all cart lines and the shipping form.
    Returns the new order id on success, None otherwise.
    """

    def __init__(self, state: GlobalState, cart: Cart):
        super().__init__()
        self.state = state
        self.cart = cart

    def compose(self) -> ComposeResult:
        with Vertical():
            yield MarkdownViewer("", show_table_of_contents=False)
            for key, label, placeholder in SHIPPING_FIELDS:
                yield Label(label)
                yield Input(placeholder=placeholder, id=f"input-ship-{key}")
            with Horizontal():
                yield Button("Go Back", id="btn-quit")
                yield Button("Place Order", id="btn-submit", variant="primary")

    async def on_mount(self):
        # generate the order summary
        headers = ["Product Name", "Variant", "Unit Price", "Quantity", "Total Price"]
        rows = [
            [
                item.name,
                " / ".join(v for v in (item.selected_size, item.selected_color) if v) or "-",
                format_cents(item.price),
                item.quantity,
                format_cents(item.line_total),
            ]
            for item in self.cart
        ]
        aligns = ["l", "l", "c", "c", "c"]
        header_md = "### Order Summary\n\n"
        md = generate_markdown_table(headers, rows, aligns)
        md += f"\n\n**Subtotal:** {format_cents(self.cart.get_cart_total())}"
        await self.query_one(MarkdownViewer).document.update(header_md + md)

        if self.state.user:
            self.query_one("#input-ship-name", Input).value = self.state.user.name
            self.query_one("#input-ship-email", Input).value = self.state.user.email
        self.query_one("#input-ship-address").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(None)

    @on(Button.Pressed, "#btn-submit")
    @work(exclusive=True)
    async def handle_submit(self):
        shipping_info = {}
        for key, label, _ in SHIPPING_FIELDS:
            field = self.query_one(f"#input-ship-{key}", Input)
            field.remove_class("-invalid")
            shipping_info[key] = field.value.strip()
            if not shipping_info[key]:
                field.focus()
                field.add_class("-invalid")
                self.notify(f"{label} is required.", severity="error")
                return

        if not await self.app.push_screen_wait(
            DialogModal(
                "Place order? This cannot be undone.",
                primary_text="Yes",
                secondary_text="No",
                tone="positive",
            )
        ):
            return

        try:
            order = await place_order(self.cart, self.state.uid, shipping_info)
        except ApiError as e:
            # the cart and the form stay as they are so the user can retry
            _logger.error(f"Checkout failed: {e.message}")
            self.notify("Could not place the order. Please retry.", severity="error")
            return

        self.notify(f"Order placed. Your order number is {order.id}.")
        self.dismiss(order.id)

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss(None)
