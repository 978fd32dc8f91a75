"""
Forward-only cursor pagination, newest first.

A cursor is an opaque base64 token of ``<sort value>|<row id>`` taken from the
last row of the previous page. Rows are ordered by ``(sort_field desc, id desc)``
so pages are stable even when sort values collide.
"""
from base64 import urlsafe_b64decode, urlsafe_b64encode
from binascii import Error as BinasciiError
from datetime import datetime
from typing import Any, Generic, List, Optional, Tuple, TypeVar

from pydantic import BaseModel, Field
from sqlalchemy import and_, or_
from sqlalchemy.orm import Query

from penpal.core.config import settings
from penpal.core.errors import ValidationFailed

T = TypeVar("T")

CursorPair = Tuple[datetime, str]


class PaginationOpts(BaseModel):
    num_items: int = Field(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE)
    cursor: Optional[str] = None


class Page(BaseModel, Generic[T]):
    page: List[T]
    is_done: bool
    continue_cursor: str = ""


def encode_cursor(value: CursorPair) -> str:
    sort_value, row_id = value
    payload = f"{sort_value.isoformat()}|{row_id}"
    return urlsafe_b64encode(payload.encode()).decode()


def decode_cursor(cursor: str) -> CursorPair:
    try:
        decoded = urlsafe_b64decode(cursor.encode()).decode()
        sort_str, row_id = decoded.split("|", maxsplit=1)
        return datetime.fromisoformat(sort_str), row_id
    except (BinasciiError, UnicodeDecodeError, ValueError):
        raise ValidationFailed("Invalid pagination cursor")


def paginate(query: Query, model: Any, opts: PaginationOpts, sort_field: str = "created_at") -> Page:
    """Fetch one page of ORM rows from ``query``.

    The returned ``Page`` holds the raw rows; callers map them to response
    schemas and build their own typed page from ``is_done`` and
    ``continue_cursor``.
    """
    sort_column = getattr(model, sort_field)
    id_column = model.id

    if opts.cursor:
        sort_value, last_id = decode_cursor(opts.cursor)
        query = query.filter(
            or_(
                sort_column < sort_value,
                and_(sort_column == sort_value, id_column < last_id),
            )
        )

    rows = (
        query.order_by(sort_column.desc(), id_column.desc())
        .limit(opts.num_items + 1)
        .all()
    )
    is_done = len(rows) <= opts.num_items
    rows = rows[: opts.num_items]

    continue_cursor = ""
    if not is_done and rows:
        tail = rows[-1]
        continue_cursor = encode_cursor((getattr(tail, sort_field), tail.id))

    return Page[Any](page=rows, is_done=is_done, continue_cursor=continue_cursor)
