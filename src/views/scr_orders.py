import asyncio
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.reactive import reactive
from textual.widgets import Button, DataTable, Label, MarkdownViewer

import api.resources as resources
from api.transport import ApiError
from db.models import Order, OrderItem, Product
from utils.config import ORDERS_PAGE_SIZE
from utils.logger import get_logger
from utils.pure import format_cents, generate_markdown_table, page_count, paginate
from views.base_screen import BaseScreen

_logger = get_logger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)

DETAIL_HEADERS = ["Product", "Variant", "Qty", "Unit Price", "Line Total"]


def order_detail_markdown(
    order: Optional[Order],
    lines_with_prod: List[Tuple[OrderItem, Optional[Product]]],
) -> str:
    """Order header, item table at purchase prices, grand total."""
    if not order:
        return "### No orders yet.\n\nBrowse the catalog to place one."

    ship = order.shipping_info
    odate = order.order_date.strftime("%Y-%m-%d %H:%M") if order.order_date else "-"
    header = (
        f"### Order #{order.id}\n"
        f"Date: {odate}  \n"
        f"Status: {order.status.capitalize()}  \n"
        f"Ship To: {ship.get('name', '-')}, {ship.get('address', '-')}\n\n"
    )
    rows = []
    for item, prod in lines_with_prod:
        name = prod.name if prod else f"Product {item.product_id}"
        variant = " / ".join(v for v in (item.selected_size, item.selected_color) if v)
        rows.append(
            [
                name,
                variant or "-",
                item.quantity,
                format_cents(item.price_at_purchase),
                format_cents(item.line_total),
            ]
        )
    table = generate_markdown_table(DETAIL_HEADERS, rows, ["l", "l", "r", "r", "r"])
    return header + table + f"\n\n**Grand Total:** {format_cents(order.total)}"


class OrdersScreen(BaseScreen):
    """
    Customers can browse their past orders with pagination and view details.

    Layout:
    - Markdown detail view at the top, showing selected order details.
    - Orders table below (newest first), 5 per page with Prev/Next.

    Line prices come from the order items, so later catalog price changes
    never alter a past order.
    """

    MODE = "orders"

    # Show some hints in footer
    BINDINGS = [
        Binding("enter", "noop", "View Order Detail", show=True, key_display="⏎"),
    ]

    page_idx = reactive(1)
    page_cnt = reactive(1)

    def __init__(self, state, cart) -> None:
        super().__init__(state, cart)
        self._orders: List[Order] = []

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield MarkdownViewer(id="md-order-detail", show_table_of_contents=False)
            yield Label("", id="label-orders-count")
            yield DataTable(id="table-orders")
        with Horizontal(id="hort-table-control"):
            yield Button("Refresh", id="btn-refresh")
            yield Button("<", id="btn-prev")
            yield Label("1 / 1", id="label-page")
            yield Button(">", id="btn-next")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Order No", "Date", "Status", "Ship To", "Total")

    @on(Button.Pressed, "#btn-refresh")
    @on(ScreenResume)
    def handle_refresh(self):
        self._load_orders()

    @work(exclusive=True, group="orders")
    async def _load_orders(self) -> None:
        try:
            orders = await resources.get_orders_by_user(self.state.uid)
        except ApiError as e:
            _logger.warning(f"Loading orders failed: {e.message}")
            self.query_one("#label-orders-count", Label).update(
                "Could not load your orders. Press Refresh to retry."
            )
            return

        self._orders = sorted(orders, key=lambda o: o.order_date or _EPOCH, reverse=True)
        self.query_one("#label-orders-count", Label).update(
            f"{len(self._orders)} order(s)"
        )
        self.page_cnt = page_count(len(self._orders), ORDERS_PAGE_SIZE)
        if self.page_idx > self.page_cnt:
            self.page_idx = self.page_cnt  # watcher renders
        else:
            self._render_page()

    def watch_page_idx(self, old: int, new: int) -> None:
        if self.is_mounted:
            self._render_page()

    def _render_page(self) -> None:
        table = self.query_one(DataTable)
        table.clear()
        page = paginate(self._orders, ORDERS_PAGE_SIZE, self.page_idx)
        for o in page:
            table.add_row(
                o.id,
                o.order_date.strftime("%Y-%m-%d") if o.order_date else "-",
                o.status.capitalize(),
                o.shipping_info.get("address", "-"),
                format_cents(o.total),
                key=o.id,
            )
        self.query_one("#label-page", Label).update(f"{self.page_idx} / {self.page_cnt}")
        self.query_one("#btn-prev", Button).disabled = self.page_idx <= 1
        self.query_one("#btn-next", Button).disabled = self.page_idx >= self.page_cnt

        if page:
            table.move_cursor(row=0)
            self._load_and_render_detail(page[0])
        else:
            self._render_detail(None, [])

    @on(Button.Pressed, "#btn-prev")
    def handle_prev(self) -> None:
        if self.page_idx > 1:
            self.page_idx -= 1

    @on(Button.Pressed, "#btn-next")
    def handle_next(self) -> None:
        if self.page_idx < self.page_cnt:
            self.page_idx += 1

    @on(DataTable.RowHighlighted)
    def handle_row_highlight(self, event: DataTable.RowHighlighted) -> None:
        order = next((o for o in self._orders if o.id == event.row_key.value), None)
        if order:
            self._load_and_render_detail(order)

    @work(exclusive=True, group="order-detail")
    async def _load_and_render_detail(self, order: Order) -> None:
        try:
            items = await resources.get_order_items(order.id)
            # N requests, but a page shows one order
            prods = await asyncio.gather(*(resources.get_product(i.product_id) for i in items))
        except ApiError as e:
            _logger.warning(f"Loading order {order.id} failed: {e.message}")
            self.notify("Could not load order details.", severity="error")
            return
        self._render_detail(order, list(zip(items, prods)))

    def _render_detail(
        self,
        order: Optional[Order],
        lines_with_prod: List[Tuple[OrderItem, Optional[Product]]],
    ) -> None:
        viewer = self.query_one("#md-order-detail", MarkdownViewer)
        viewer.document.update(order_detail_markdown(order, lines_with_prod))
