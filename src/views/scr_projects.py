from typing import Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, Label, Markdown

from api.transport import ApiError
from db.models import ServiceInquiry
from utils.config import PROJECTS_PAGE_SIZE
from utils.lifecycle import FILTERS, PENDING, STATUS_LABELS, InquiryFeed, cancel_inquiry
from utils.logger import get_logger
from utils.messages import NavigateMessage
from views.base_screen import BaseScreen
from views.modal_dialog import DialogModal

_logger = get_logger(__name__)

FILTER_LABELS = {"all": "All", "pending": "Pending", **STATUS_LABELS}


class ProjectsScreen(BaseScreen):
    """
    Brand dashboard: quote requests with status filter, stats and pagination.
    """

    MODE = "projects"

    def __init__(self, state, cart) -> None:
        super().__init__(state, cart)
        self.feed = InquiryFeed(state.uid, page_size=PROJECTS_PAGE_SIZE)

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield Label("", id="label-stats")
            with Horizontal(id="hort-filters"):
                for group in FILTERS:
                    yield Button(FILTER_LABELS[group], id=f"btn-filter-{group}", classes="btn-filter")
            yield Label("", id="label-projects-status")
            yield DataTable(id="table-projects")
            yield Markdown("", id="md-project-detail")
        with Horizontal(id="hort-table-control"):
            yield Button("Retry", id="btn-retry", classes="hidden")
            yield Button("New Quote", id="btn-new-quote", variant="primary")
            yield Button("Cancel Request", id="btn-cancel", variant="error")
            yield Button("<", id="btn-prev")
            yield Label("1 / 1", id="label-page")
            yield Button(">", id="btn-next")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Ref", "Submitted", "Qty", "Deadline", "Status")

    @on(ScreenResume)
    @on(Button.Pressed, "#btn-retry")
    def handle_refresh(self) -> None:
        self.query_one("#label-projects-status", Label).update("Loading...")
        self.load_projects()

    @work(group="projects")
    async def load_projects(self) -> None:
        # not exclusive: the feed drops responses older than the latest load
        if not await self.feed.load():
            return
        self.render_feed()

    def render_feed(self) -> None:
        feed = self.feed
        stats = feed.stats
        self.query_one("#label-stats", Label).update(
            f"Total: {stats.total}   Pending: {stats.pending}   "
            f"Approved: {stats.approved}   Completed: {stats.completed}"
        )
        for group in FILTERS:
            btn = self.query_one(f"#btn-filter-{group}", Button)
            btn.variant = "primary" if group == feed.status_filter else "default"

        status = self.query_one("#label-projects-status", Label)
        retry = self.query_one("#btn-retry", Button)
        if feed.error:
            status.update(feed.error)
            retry.remove_class("hidden")
        else:
            retry.add_class("hidden")
            status.update(
                f"{len(feed.filtered)} request(s)"
                if feed.filtered
                else "No quote requests yet."
                if not feed.inquiries
                else "No requests match this filter."
            )

        table = self.query_one(DataTable)
        table.clear()
        for inq in feed.visible:
            table.add_row(
                f"#{inq.id}",
                inq.created_at.strftime("%Y-%m-%d") if inq.created_at else "-",
                str(inq.quantity),
                inq.deadline.isoformat() if inq.deadline else "-",
                STATUS_LABELS.get(inq.status, inq.status),
                key=inq.id,
            )
        self.query_one("#label-page", Label).update(f"{feed.page} / {feed.page_count}")
        self.query_one("#btn-prev", Button).disabled = feed.page <= 1
        self.query_one("#btn-next", Button).disabled = feed.page >= feed.page_count
        self._render_detail(feed.visible[0] if feed.visible else None)

    def _selected(self) -> Optional[ServiceInquiry]:
        table = self.query_one(DataTable)
        if table.row_count == 0:
            return None
        row_key = table.coordinate_to_cell_key(table.cursor_coordinate).row_key
        return next((i for i in self.feed.inquiries if i.id == row_key.value), None)

    def _render_detail(self, inq: Optional[ServiceInquiry]) -> None:
        self.query_one("#btn-cancel", Button).disabled = inq is None or inq.status != PENDING
        md = self.query_one("#md-project-detail", Markdown)
        if inq is None:
            md.update("")
            return
        md.update(
            f"**Request #{inq.id}** ({STATUS_LABELS.get(inq.status, inq.status)})\n\n"
            f"{inq.description}\n\n"
            f"Fabrics: {inq.fabrics or '-'}"
        )

    @on(DataTable.RowHighlighted)
    def handle_row_highlight(self) -> None:
        self._render_detail(self._selected())

    @on(Button.Pressed, ".btn-filter")
    def handle_filter(self, event: Button.Pressed) -> None:
        self.feed.set_filter(event.button.id.removeprefix("btn-filter-"))
        self.render_feed()

    @on(Button.Pressed, "#btn-prev")
    def handle_prev(self) -> None:
        self.feed.set_page(self.feed.page - 1)
        self.render_feed()

    @on(Button.Pressed, "#btn-next")
    def handle_next(self) -> None:
        self.feed.set_page(self.feed.page + 1)
        self.render_feed()

    @on(Button.Pressed, "#btn-new-quote")
    def handle_new_quote(self) -> None:
        self.post_message(NavigateMessage("quote"))

    @on(Button.Pressed, "#btn-cancel")
    @work()
    async def handle_cancel(self) -> None:
        inq = self._selected()
        if inq is None or inq.status != PENDING:
            return
        if not await self.app.push_screen_wait(
            DialogModal(
                f"Cancel quote request #{inq.id}?",
                primary_text="Yes",
                secondary_text="No",
                tone="error",
            )
        ):
            return
        try:
            await cancel_inquiry(inq.id)
        except ApiError as e:
            _logger.warning(f"Cancelling inquiry {inq.id} failed: {e.message}")
            self.notify("Could not cancel the request.", severity="error")
            return
        self.notify(f"Request #{inq.id} cancelled.")
        self.handle_refresh()
