from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from penpal.core.pagination import Page, PaginationOpts
from penpal.db.session import get_db
from penpal.deps import get_current_user_id, get_pagination
from penpal.modules.posts.comments.schemas.comment import (
    Comment as CommentSchema, CommentCreate, CommentWithReplies
)
from penpal.modules.posts.comments.services.comment import (
    add_comment, delete_comment, get_post_comments, to_comment_schema
)

router = APIRouter()

@router.post("", response_model=CommentSchema)
def create_comment(
    *,
    db: Session = Depends(get_db),
    post_id: str,
    comment_in: CommentCreate,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    comment = add_comment(db, post_id, current_user_id, comment_in.content, comment_in.reply_parent_id)
    return to_comment_schema(db, comment, current_user_id)

@router.get("", response_model=Page[CommentWithReplies])
def read_comments(
    *,
    db: Session = Depends(get_db),
    post_id: str,
    opts: PaginationOpts = Depends(get_pagination),
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    return get_post_comments(db, post_id, current_user_id, opts)

@router.delete("/{comment_id}", response_model=Dict[str, Any])
def remove_comment(
    *,
    db: Session = Depends(get_db),
    post_id: str,
    comment_id: str,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    removed = delete_comment(db, comment_id, current_user_id)
    return {"message": "Comment deleted", "count": removed}
