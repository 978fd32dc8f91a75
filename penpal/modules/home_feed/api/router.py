from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from penpal.core.pagination import Page, PaginationOpts
from penpal.db.session import get_db
from penpal.deps import get_current_user_id, get_pagination
from penpal.modules.home_feed.services.feed import get_home_feed
from penpal.modules.posts.schemas.post import Post as PostSchema

router = APIRouter()

@router.get("", response_model=Page[PostSchema])
def read_home_feed(
    *,
    db: Session = Depends(get_db),
    opts: PaginationOpts = Depends(get_pagination),
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    return get_home_feed(db, current_user_id, opts)
