from typing import List
import logging

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from penpal.core.pagination import Page, PaginationOpts, paginate
from penpal.modules.friendships.models.friendship import Friendship
from penpal.modules.moderation.models.moderation import BlockedUser
from penpal.modules.posts.models.post import Post as PostModel
from penpal.modules.posts.schemas.post import Post as PostSchema
from penpal.modules.posts.services.post import to_post_page
from penpal.modules.user_management.models.user import User as UserModel

logger = logging.getLogger(__name__)

def get_home_feed(db: Session, user_id: str, opts: PaginationOpts) -> Page[PostSchema]:
    """Posts by the user, their friends and admins, newest first"""
    author_ids = _get_friend_ids(db, user_id) + [user_id]
    blocked_ids = _get_blocked_ids(db, user_id)

    admin_ids = select(UserModel.id).where(UserModel.is_admin.is_(True))
    query = db.query(PostModel).filter(
        or_(PostModel.user_id.in_(author_ids), PostModel.user_id.in_(admin_ids))
    )
    if blocked_ids:
        query = query.filter(PostModel.user_id.notin_(blocked_ids))

    result = paginate(query, PostModel, opts)
    page = to_post_page(db, result.page, user_id)
    return Page[PostSchema](page=page, is_done=result.is_done, continue_cursor=result.continue_cursor)

def _get_friend_ids(db: Session, user_id: str) -> List[str]:
    """Friendships are stored in both directions, so the caller's own rows are enough"""
    return [row.friend_id for row in db.query(Friendship.friend_id).filter(Friendship.user_id == user_id).all()]

def _get_blocked_ids(db: Session, user_id: str) -> List[str]:
    """Users blocked by or blocking the caller"""
    rows = db.query(BlockedUser.blocker_user_id, BlockedUser.blocked_user_id).filter(
        or_(BlockedUser.blocker_user_id == user_id, BlockedUser.blocked_user_id == user_id)
    ).all()
    return [row.blocked_user_id if row.blocker_user_id == user_id else row.blocker_user_id for row in rows]
