from typing import Optional

from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.validation import Number
from textual.widgets import Button, Input, Label, MarkdownViewer, Select

from db.models import Category, Product
from utils.cart import Cart
from utils.pure import format_cents, generate_markdown_table

SIZES = ("XS", "S", "M", "L", "XL")
COLORS = ("Ivory", "Midnight", "Blush", "Gold")


class ProdDetailModal(ModalScreen[bool]):
    """
    Product detail with size/color choice and quantity.
    Returns True if the cart changed.
    """

    CSS = """
    #input-order-qty {
        width: 10;
    }
    #btn-sub-qty, #btn-add-qty {
        min-width: 4;
    }
    """

    order_qty = reactive(1)

    def __init__(
        self,
        product: Product,
        cart: Cart,
        category: Optional[Category] = None,
        can_buy: bool = True,
    ) -> None:
        super().__init__()
        self._prod = product
        self._cart = cart
        self._category = category
        self._can_buy = can_buy

    def compose(self) -> ComposeResult:
        with Horizontal(id="hort-prod-detail"):
            yield MarkdownViewer("", show_table_of_contents=False)
            with Vertical():
                yield Label("Size")
                yield Select([(s, s) for s in SIZES], prompt="Select a size", id="select-size")
                yield Label("Colour")
                yield Select(
                    [(c, c) for c in COLORS],
                    value=COLORS[0],
                    allow_blank=False,
                    id="select-color",
                )
                yield Label("Quantity")
                with Horizontal():
                    yield Button("-", id="btn-sub-qty")
                    yield Input(value="1", id="input-order-qty", type="integer")
                    yield Button("+", id="btn-add-qty")
                with Horizontal():
                    yield Button("Go Back", id="btn-quit")
                    yield Button("Add to Cart", id="btn-addcart", variant="primary")

    async def on_mount(self):
        prod = self._prod
        rows = [
            ["Price", format_cents(prod.price)],
            ["Category", self._category.name if self._category else "-"],
            ["In stock", str(prod.stock)],
        ]
        if prod.tag:
            rows.append(["Tag", prod.tag])
        md = (
            f"### {prod.name}\n\n*{prod.name_es}*\n\n{prod.description}\n\n"
            + generate_markdown_table(["Attribute", "Value"], rows, ["l", "l"])
        )
        await self.query_one(MarkdownViewer).document.update(md)

        order_btn = self.query_one("#btn-addcart", Button)
        if not self._can_buy:
            order_btn.label = "Customers only"
            order_btn.disabled = True
        elif prod.stock < 1:
            order_btn.label = "Out of Stock"
            order_btn.disabled = True
            order_btn.variant = "warning"

        self.query_one("#input-order-qty").validators = [
            Number(minimum=1, maximum=max(prod.stock, 1))
        ]
        self.query_one("#select-size").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(False)

    def on_input_changed(self, message: Input.Changed) -> None:
        if (
            message.input.id == "input-order-qty"
            and message.input.is_valid
            and self.focused == message.input
        ):
            self.order_qty = int(message.value)

    def watch_order_qty(self, qty: int) -> None:
        self.query_one("#btn-sub-qty").disabled = qty <= 1
        self.query_one("#btn-add-qty").disabled = qty >= self._prod.stock
        self.query_one("#input-order-qty").value = str(qty)

    @on(Button.Pressed, "#btn-add-qty")
    def handle_add_qty(self):
        self.order_qty += 1

    @on(Button.Pressed, "#btn-sub-qty")
    def handle_sub_qty(self):
        self.order_qty -= 1

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss(False)

    @on(Button.Pressed, "#btn-addcart")
    @work(exclusive=True)
    async def handle_addcart(self):
        size_select = self.query_one("#select-size", Select)
        if size_select.value is Select.BLANK:
            size_select.focus()
            self.notify("Please select a size.", severity="error")
            return
        color = self.query_one("#select-color", Select).value

        await self._cart.add_to_cart(
            self._prod, size_select.value, color, quantity=self.order_qty
        )
        self.app.notify(f"{self._prod.name} added to cart.")
        self.dismiss(True)
