"""
Quote inquiry (RFQ) lifecycle: statuses, validation, listing, filtering and stats.

The status field is declarative on the client. The pipeline below is used to
label and group inquiries; transition authority lives on the backend, so any
status value received is displayed as-is.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, Field, ValidationError, ValidationInfo, field_validator

import api.resources as resources
from api.transport import ApiError
from db.models import ServiceInquiry
from utils.logger import get_logger
from utils.pure import page_count, paginate

_logger = get_logger(__name__)

PENDING = "pending"
IN_REVIEW = "in_review"
APPROVED = "approved"
PRODUCTION = "production"
COMPLETED = "completed"
REJECTED = "rejected"

PIPELINE = (PENDING, IN_REVIEW, APPROVED, PRODUCTION, COMPLETED)
TERMINAL = frozenset({COMPLETED, REJECTED})

STATUS_LABELS = {
    PENDING: "Pending",
    IN_REVIEW: "In review",
    APPROVED: "Approved",
    PRODUCTION: "In production",
    COMPLETED: "Completed",
    REJECTED: "Rejected",
}

# filter buckets; a group may cover several raw statuses
STATUS_GROUPS: Dict[str, Optional[frozenset]] = {
    "all": None,
    "pending": frozenset({PENDING, IN_REVIEW}),
}
FILTERS = ("all", "pending", APPROVED, PRODUCTION, COMPLETED, REJECTED)


def is_terminal(status: str) -> bool:
    return status in TERMINAL


def next_status(status: str) -> Optional[str]:
    """Successor in the pipeline, None for terminal or unknown statuses."""
    if status not in PIPELINE or status in TERMINAL:
        return None
    return PIPELINE[PIPELINE.index(status) + 1]


def can_transition(current: str, target: str) -> bool:
    """True for the next pipeline step, or rejection of a non-terminal inquiry."""
    if current in TERMINAL:
        return False
    if target == REJECTED:
        return current in PIPELINE
    return next_status(current) == target


def filter_by_status_group(
    inquiries: Iterable[ServiceInquiry], group: str
) -> List[ServiceInquiry]:
    """Keep inquiries in the named group, preserving their order."""
    if group in STATUS_GROUPS:
        members = STATUS_GROUPS[group]
        if members is None:
            return list(inquiries)
        return [i for i in inquiries if i.status in members]
    return [i for i in inquiries if i.status == group]


_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def sort_newest_first(inquiries: Iterable[ServiceInquiry]) -> List[ServiceInquiry]:
    return sorted(inquiries, key=lambda i: i.created_at or _EPOCH, reverse=True)


@dataclass(frozen=True)
class InquiryStats:
    total: int = 0
    pending: int = 0
    approved: int = 0
    completed: int = 0


def inquiry_stats(inquiries: Iterable[ServiceInquiry]) -> InquiryStats:
    """Counts over the full list, independent of any filter or page."""
    total = pending = approved = completed = 0
    for inq in inquiries:
        total += 1
        if inq.status in (PENDING, IN_REVIEW):
            pending += 1
        elif inq.status == APPROVED:
            approved += 1
        elif inq.status == COMPLETED:
            completed += 1
    return InquiryStats(total, pending, approved, completed)


# ---------------------------
# Validation & creation
# ---------------------------


class InquiryDraft(BaseModel):
    description: str = Field(..., description="What should be produced")
    quantity: int = Field(..., gt=0, description="Number of pieces")
    deadline: date = Field(..., description="Wanted by, today or later")
    fabrics: str = Field("", description="Preferred fabrics, optional")

    @field_validator("description")
    @classmethod
    def description_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Description is required.")
        return v

    @field_validator("fabrics")
    @classmethod
    def strip_fabrics(cls, v: str) -> str:
        return v.strip()

    @field_validator("deadline")
    @classmethod
    def deadline_not_past(cls, v: date, info: ValidationInfo) -> date:
        today = (info.context or {}).get("today") or date.today()
        if v < today:
            raise ValueError("Deadline cannot be in the past.")
        return v


_FIELD_MESSAGES = {
    "description": "Description is required.",
    "quantity": "Quantity must be a positive whole number.",
    "deadline": "Deadline must be a valid date (YYYY-MM-DD).",
}


class InquiryValidationError(ValueError):
    """Form validation failed; errors maps field name to a message."""

    def __init__(self, errors: Dict[str, str]):
        super().__init__("; ".join(f"{k}: {v}" for k, v in errors.items()))
        self.errors = errors


def _clean_form(form: Dict[str, object]) -> Dict[str, object]:
    # empty inputs count as missing so the "required" message is reported
    cleaned = {}
    for key in ("description", "quantity", "deadline", "fabrics"):
        val = form.get(key)
        if isinstance(val, str) and key != "description":
            val = val.strip()
        if val not in (None, ""):
            cleaned[key] = val
    cleaned.setdefault("description", form.get("description") or "")
    return cleaned


def validate_inquiry(
    form: Dict[str, object], today: Optional[date] = None
) -> InquiryDraft:
    """
    Validate raw form values. Raises InquiryValidationError with one message
    per failing field.
    """
    try:
        return InquiryDraft.model_validate(
            _clean_form(form), context={"today": today or date.today()}
        )
    except ValidationError as e:
        errors: Dict[str, str] = {}
        for err in e.errors():
            field = str(err["loc"][0]) if err["loc"] else "form"
            if field in errors:
                continue
            if err["type"] == "missing":
                errors[field] = f"{field.capitalize()} is required."
            elif err["type"] == "value_error":
                errors[field] = str(err["ctx"]["error"])
            else:
                errors[field] = _FIELD_MESSAGES.get(field, err["msg"])
        raise InquiryValidationError(errors) from None


async def create_inquiry(
    user_id: str, form: Dict[str, object], today: Optional[date] = None
) -> ServiceInquiry:
    """
    Validate and submit a new inquiry. Status is always "pending" and createdAt
    is the submission time. Nothing is sent if validation fails.
    """
    draft = validate_inquiry(form, today)
    now = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    created = await resources.create_inquiry(
        {
            "userId": user_id,
            "description": draft.description,
            "quantity": draft.quantity,
            "deadline": draft.deadline.isoformat(),
            "fabrics": draft.fabrics,
            "status": PENDING,
            "createdAt": now,
        }
    )
    _logger.info(f"Inquiry {created.id} submitted by user {user_id}.")
    return created


async def list_by_user(user_id: str) -> List[ServiceInquiry]:
    """All inquiries of a user, newest created first (sorted here, not by the server)."""
    return sort_newest_first(await resources.get_inquiries_by_user(user_id))


async def update_inquiry_status(inquiry_id: str, status: str) -> ServiceInquiry:
    if status not in STATUS_LABELS:
        raise ValueError(f"Unknown status: {status}")
    return await resources.update_inquiry(inquiry_id, {"status": status})


async def cancel_inquiry(inquiry_id: str) -> None:
    await resources.delete_inquiry(inquiry_id)


# ---------------------------
# View model
# ---------------------------


class InquiryFeed:
    """
    Holds one user's inquiries plus the active filter and page.

    Every load is stamped with a generation number; a response that arrives
    after a newer load was started is discarded, so a slow stale fetch can
    never overwrite fresher data.
    """

    def __init__(self, user_id: str, page_size: int = 5):
        self.user_id = user_id
        self.page_size = page_size
        self.inquiries: List[ServiceInquiry] = []
        self.status_filter = "all"
        self.page = 1
        self.error: Optional[str] = None
        self.loaded = False
        self._generation = 0

    async def load(self) -> bool:
        """
        Fetch the list. Returns False when the response was stale and dropped.
        A network failure keeps the previous list and sets error.
        """
        self._generation += 1
        generation = self._generation
        try:
            inquiries = await list_by_user(self.user_id)
        except ApiError as e:
            if generation != self._generation:
                return False
            _logger.warning(f"Loading inquiries failed: {e.message}")
            self.error = "Could not load your projects. Please retry."
            return True
        if generation != self._generation:
            _logger.debug(f"Dropping stale inquiry response (gen {generation}).")
            return False
        self.inquiries = inquiries
        self.error = None
        self.loaded = True
        self.page = min(self.page, self.page_count)
        return True

    def set_filter(self, group: str) -> None:
        self.status_filter = group
        self.page = 1

    def set_page(self, page: int) -> None:
        self.page = max(1, min(page, self.page_count))

    @property
    def filtered(self) -> List[ServiceInquiry]:
        return filter_by_status_group(self.inquiries, self.status_filter)

    @property
    def page_count(self) -> int:
        return page_count(len(self.filtered), self.page_size)

    @property
    def visible(self) -> List[ServiceInquiry]:
        return paginate(self.filtered, self.page_size, self.page)

    @property
    def stats(self) -> InquiryStats:
        return inquiry_stats(self.inquiries)
