from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, VerticalScroll
from textual.widgets import Button, Input, Label, Static, TextArea

from api.transport import ApiError
from utils.lifecycle import InquiryValidationError, create_inquiry
from utils.logger import get_logger
from utils.messages import InquirySubmittedMessage, NavigateMessage
from views.base_screen import BaseScreen

_logger = get_logger(__name__)

FORM_FIELDS = ("quantity", "description", "deadline", "fabrics")


class QuoteScreen(BaseScreen):
    """
    Quote request (RFQ) form. Field errors are shown inline; nothing is sent
    until every field is valid, and a failed submit keeps the form.
    """

    MODE = "quote"

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with VerticalScroll(id="div-quote"):
            yield Label("Quantity (pieces)")
            yield Input(placeholder="100", type="integer", id="input-quantity")
            yield Static("", id="error-quantity", classes="field-error")
            yield Label("Project description")
            yield TextArea(id="input-description")
            yield Static("", id="error-description", classes="field-error")
            yield Label("Deadline (YYYY-MM-DD)")
            yield Input(placeholder="2026-12-31", id="input-deadline")
            yield Static("", id="error-deadline", classes="field-error")
            yield Label("Preferred fabrics (optional)")
            yield Input(placeholder="Mulberry silk, charmeuse", id="input-fabrics")
            yield Static("", id="error-fabrics", classes="field-error")
            with Horizontal(id="div-quote-btns"):
                yield Button("Reset", id="btn-reset")
                yield Button("Submit Request", id="btn-submit", variant="primary")

    def on_mount(self) -> None:
        self.query_one("#input-quantity").focus()

    def _form(self) -> dict:
        return {
            "quantity": self.query_one("#input-quantity", Input).value,
            "description": self.query_one("#input-description", TextArea).text,
            "deadline": self.query_one("#input-deadline", Input).value,
            "fabrics": self.query_one("#input-fabrics", Input).value,
        }

    def _show_errors(self, errors: dict) -> None:
        for name in FORM_FIELDS:
            self.query_one(f"#error-{name}", Static).update(errors.get(name, ""))
            self.query_one(f"#input-{name}").set_class(name in errors, "-invalid")

    def _reset(self) -> None:
        for name in ("quantity", "deadline", "fabrics"):
            self.query_one(f"#input-{name}", Input).value = ""
        self.query_one("#input-description", TextArea).text = ""
        self._show_errors({})

    @on(Button.Pressed, "#btn-reset")
    def handle_reset(self) -> None:
        self._reset()

    @on(Button.Pressed, "#btn-submit")
    @work(exclusive=True)
    async def handle_submit(self) -> None:
        try:
            inquiry = await create_inquiry(self.state.uid, self._form())
        except InquiryValidationError as e:
            self._show_errors(e.errors)
            self.notify("Please fix the highlighted fields.", severity="error")
            return
        except ApiError as e:
            # keep what the user typed so they can resubmit
            _logger.error(f"Submitting inquiry failed: {e.message}")
            self._show_errors({})
            self.notify("Could not submit your request. Please retry.", severity="error")
            return

        self._reset()
        self.notify(f"Quote request #{inquiry.id} submitted.")
        self.app.post_message(InquirySubmittedMessage(inquiry.id))
        if self.state.role == "brand":
            self.post_message(NavigateMessage("projects"))
