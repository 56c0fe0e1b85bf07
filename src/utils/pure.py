from math import ceil
from typing import Iterable, List, Literal, Optional, Sequence, TypeVar

from db.models import Product

T = TypeVar("T")


def generate_markdown_table(
    headers: Optional[List[str]],
    rows: List[List[str]],
    aligns: Optional[List[Literal["l", "c", "r"]]] = None,
) -> str:
    """
    Generate a Markdown table.

    Args:
        headers: List of column headers, or None to use first row as headers.
        rows: List of rows, each a list of strings.
        aligns: List of alignments ('l', 'c', 'r') for each column.
                Defaults to all center ('c').

    Returns:
        str: Markdown formatted table.
    """
    if not rows:
        return ""

    # If no headers, take the first row as header and remove it from rows
    if not headers:
        headers, rows = rows[0], rows[1:]

    headers = list(map(str, headers))
    rows = [list(map(str, row)) for row in rows]

    num_cols = len(headers)
    if aligns is None:
        aligns = ["c"] * num_cols
    elif len(aligns) != num_cols:
        raise ValueError("Length of aligns must match number of headers.")

    align_map = {
        "l": ":---",
        "c": ":---:",
        "r": "---:",
    }

    header_line = "| " + " | ".join(headers) + " |"
    align_line = "| " + " | ".join(align_map[a] for a in aligns) + " |"
    row_lines = ["| " + " | ".join(map(str, row)) + " |" for row in rows]

    return "\n".join([header_line, align_line, *row_lines])


def paginate(items: Sequence[T], page_size: int, page: int) -> List[T]:
    """
    Return the contiguous slice [(page-1)*page_size, page*page_size).

    page < 1 is clamped to 1, so page 1 is always valid (an empty list yields
    an empty page). Pages past the end yield an empty list, never an error.
    """
    if page_size < 1:
        raise ValueError("page_size must be at least 1.")
    page = max(page, 1)
    start = (page - 1) * page_size
    return list(items[start : start + page_size])


def page_count(total: int, page_size: int) -> int:
    """Number of pages needed for total items; never less than 1."""
    return max(ceil(total / page_size), 1)


def format_cents(cents: int, currency: str = "$") -> str:
    """7500 -> '$75.00'"""
    sign = "-" if cents < 0 else ""
    return f"{sign}{currency}{abs(cents) / 100:,.2f}"


def filter_products(
    products: Iterable[Product],
    category_id: Optional[str] = None,
    search: str = "",
) -> List[Product]:
    """
    Catalog filter. category_id None (or "all") keeps every category.
    search is trimmed and case-insensitive over name, Spanish name and description.
    """
    result = list(products)
    if category_id and category_id != "all":
        result = [p for p in result if p.category_id == category_id]

    needle = (search or "").strip().lower()
    if needle:
        result = [
            p
            for p in result
            if needle in p.name.lower()
            or needle in p.name_es.lower()
            or needle in p.description.lower()
        ]
    return result


SORT_KEYS = ("default", "price_asc", "price_desc", "name_asc")


def sort_products(products: Iterable[Product], key: str = "default") -> List[Product]:
    result = list(products)
    if key == "price_asc":
        result.sort(key=lambda p: p.price)
    elif key == "price_desc":
        result.sort(key=lambda p: p.price, reverse=True)
    elif key == "name_asc":
        result.sort(key=lambda p: p.name.lower())
    elif key != "default":
        raise ValueError(f"Unknown sort key: {key}")
    return result
