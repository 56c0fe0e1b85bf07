from typing import Dict, List

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal
from textual.reactive import reactive
from textual.widgets import Button, DataTable, Input, Label, Select

import api.resources as resources
from api.transport import ApiError
from db.models import Category, Product
from utils.config import CATALOG_PAGE_SIZE
from utils.logger import get_logger
from utils.pure import (
    SORT_KEYS,
    filter_products,
    format_cents,
    page_count,
    paginate,
    sort_products,
)
from views.base_screen import BaseScreen
from views.modal_prod_detail import ProdDetailModal

_logger = get_logger(__name__)

SORT_LABELS = {
    "default": "Featured",
    "price_asc": "Price: low to high",
    "price_desc": "Price: high to low",
    "name_asc": "Name: A-Z",
}


class CatalogScreen(BaseScreen):
    """
    Product catalog with category filter, search and sort.
    Any change to search, category or sort goes back to page 1.
    """

    MODE = "catalog"

    page_idx = reactive(1)
    page_cnt = reactive(1)

    def __init__(self, state, cart):
        super().__init__(state, cart)
        self._products: List[Product] = []
        self._categories: Dict[str, Category] = {}
        self._filtered: List[Product] = []

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Horizontal(id="hort-catalog-filters"):
            yield Input(id="input-search", placeholder="Search the collection...")
            yield Select(
                [("All categories", "all")],
                value="all",
                allow_blank=False,
                id="select-category",
            )
            yield Select(
                [(SORT_LABELS[k], k) for k in SORT_KEYS],
                value="default",
                allow_blank=False,
                id="select-sort",
            )
        yield Label("", id="label-catalog-status")
        yield DataTable(id="table-products")
        with Horizontal(id="hort-table-control"):
            yield Button("Retry", id="btn-retry", classes="hidden")
            yield Button("<", id="btn-prev")
            yield Label("1 / 1", id="label-page")
            yield Button(">", id="btn-next")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Name", "Category", "Price", "Stock", "Tag")
        self.query_one("#input-search").focus()
        self.load_catalog()

    @on(Button.Pressed, "#btn-retry")
    @work(exclusive=True, group="catalog")
    async def load_catalog(self) -> None:
        status = self.query_one("#label-catalog-status", Label)
        status.update("Loading...")
        try:
            products = await resources.get_products()
            categories = await resources.get_categories()
        except ApiError as e:
            _logger.warning(f"Loading catalog failed: {e.message}")
            status.update("Could not load the catalog.")
            self.query_one("#btn-retry").remove_class("hidden")
            return

        self.query_one("#btn-retry").add_class("hidden")
        self._products = products
        self._categories = {c.id: c for c in categories}
        self.query_one("#select-category", Select).set_options(
            [("All categories", "all")] + [(c.name, c.id) for c in categories]
        )
        self.apply_filters()

    def apply_filters(self) -> None:
        category = self.query_one("#select-category", Select).value
        sort_key = self.query_one("#select-sort", Select).value
        search = self.query_one("#input-search", Input).value
        self._filtered = sort_products(
            filter_products(
                self._products,
                None if category in (Select.BLANK, "all") else category,
                search,
            ),
            "default" if sort_key is Select.BLANK else sort_key,
        )
        self.query_one("#label-catalog-status", Label).update(
            f"{len(self._filtered)} result(s)"
        )
        self.page_cnt = page_count(len(self._filtered), CATALOG_PAGE_SIZE)
        if self.page_idx != 1:
            self.page_idx = 1  # watcher renders
        else:
            self.render_page()

    def render_page(self) -> None:
        table = self.query_one(DataTable)
        table.clear()
        for p in paginate(self._filtered, CATALOG_PAGE_SIZE, self.page_idx):
            category = self._categories.get(p.category_id)
            table.add_row(
                p.name,
                category.name if category else "-",
                format_cents(p.price),
                str(p.stock) if p.stock else "Sold out",
                p.tag or "",
                key=p.id,
            )
        self.query_one("#label-page", Label).update(f"{self.page_idx} / {self.page_cnt}")
        self.query_one("#btn-prev", Button).disabled = self.page_idx <= 1
        self.query_one("#btn-next", Button).disabled = self.page_idx >= self.page_cnt

    def watch_page_idx(self, old: int, new: int) -> None:
        if self.is_mounted:
            self.render_page()

    @on(Input.Changed, "#input-search")
    @on(Select.Changed, "#select-category")
    @on(Select.Changed, "#select-sort")
    def handle_filter_change(self) -> None:
        self.apply_filters()

    @on(Button.Pressed, "#btn-prev")
    def handle_prev(self) -> None:
        if self.page_idx > 1:
            self.page_idx -= 1

    @on(Button.Pressed, "#btn-next")
    def handle_next(self) -> None:
        if self.page_idx < self.page_cnt:
            self.page_idx += 1

    @on(DataTable.RowSelected)
    @work()
    async def handle_row_selected(self, event: DataTable.RowSelected) -> None:
        product = next(
            (p for p in self._products if p.id == event.row_key.value), None
        )
        if product is None:
            return
        await self.app.push_screen_wait(
            ProdDetailModal(
                product,
                self.cart,
                self._categories.get(product.category_id),
                can_buy=self.state.role == "customer",
            )
        )
        await self.handle_resume_sidebar()
