from typing import Dict, Optional
import uuid
import logging
from collections import Counter

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from penpal.core.errors import AlreadyBlocked, NotFound, SelfReferenceError
from penpal.core.pagination import Page, PaginationOpts, paginate
from penpal.modules.friendships.models.friendship import Friendship, FriendRequest
from penpal.modules.moderation.models.moderation import BlockedUser
from penpal.modules.moderation.schemas.moderation import BlockedUser as BlockedUserSchema
from penpal.modules.notifications.schemas.notification import NotificationType
from penpal.modules.notifications.services.notification import create_notification
from penpal.modules.posts.models.post import Post
from penpal.modules.posts.comments.models.comment import Comment
from penpal.modules.posts.comments.services.threads import delete_comment_threads
from penpal.modules.posts.reactions.models.reaction import Reaction
from penpal.modules.posts.services.counters import decrement_post_counters_grouped
from penpal.modules.user_management.services.summaries import get_user, get_users_by_ids, to_profile_summary

logger = logging.getLogger(__name__)

def get_block(db: Session, blocker_id: str, blocked_id: str) -> Optional[BlockedUser]:
    return db.query(BlockedUser).filter(
        BlockedUser.blocker_user_id == blocker_id,
        BlockedUser.blocked_user_id == blocked_id,
    ).first()

def is_blocked_either_way(db: Session, user_a: str, user_b: str) -> bool:
    """True when either user has blocked the other"""
    return db.query(BlockedUser).filter(
        or_(
            and_(BlockedUser.blocker_user_id == user_a, BlockedUser.blocked_user_id == user_b),
            and_(BlockedUser.blocker_user_id == user_b, BlockedUser.blocked_user_id == user_a),
        )
    ).first() is not None

def _remove_interactions(db: Session, author_id: str, post_owner_id: str) -> Dict[str, int]:
    """
    Delete comments and reactions by author_id on posts owned by post_owner_id, fixing counters.
    Replies under a removed comment go with it, whoever wrote them.
    """
    owner_post_ids = select(Post.id).where(Post.user_id == post_owner_id)

    comment_ids = [
        row.id for row in db.query(Comment.id).filter(
            Comment.user_id == author_id, Comment.post_id.in_(owner_post_ids)
        ).all()
    ]
    comments_removed = delete_comment_threads(db, comment_ids)

    reactions = db.query(Reaction.id, Reaction.post_id).filter(
        Reaction.user_id == author_id, Reaction.post_id.in_(owner_post_ids)
    ).all()
    if reactions:
        db.query(Reaction).filter(Reaction.id.in_([r.id for r in reactions])).delete(synchronize_session=False)
        decrement_post_counters_grouped(db, "reactions_count", Counter(r.post_id for r in reactions))

    return {"comments": comments_removed, "reactions": len(reactions)}

def block_user(db: Session, blocker_id: str, target_id: str) -> BlockedUser:
    """
    Block a user and clean up everything tying the two users together.

    Removes the friendship in both directions, pending friend requests in both
    directions, and each user's comments and reactions on the other's posts.
    Conversations and messages are kept.
    """
    if blocker_id == target_id:
        raise SelfReferenceError("Cannot block yourself")

    if not get_user(db, target_id):
        raise NotFound("User not found")

    if get_block(db, blocker_id, target_id):
        raise AlreadyBlocked("User is already blocked")

    block = BlockedUser(id=str(uuid.uuid4()), blocker_user_id=blocker_id, blocked_user_id=target_id)
    db.add(block)

    create_notification(db, target_id, blocker_id, NotificationType.user_blocked)

    db.query(Friendship).filter(
        or_(
            and_(Friendship.user_id == blocker_id, Friendship.friend_id == target_id),
            and_(Friendship.user_id == target_id, Friendship.friend_id == blocker_id),
        )
    ).delete(synchronize_session=False)

    db.query(FriendRequest).filter(
        or_(
            and_(FriendRequest.sender_id == blocker_id, FriendRequest.receiver_id == target_id),
            and_(FriendRequest.sender_id == target_id, FriendRequest.receiver_id == blocker_id),
        )
    ).delete(synchronize_session=False)

    removed_from_blocker = _remove_interactions(db, author_id=target_id, post_owner_id=blocker_id)
    removed_from_target = _remove_interactions(db, author_id=blocker_id, post_owner_id=target_id)

    db.commit()
    db.refresh(block)
    logger.info(
        f"User {blocker_id} blocked {target_id}; removed {removed_from_blocker} from blocker's posts "
        f"and {removed_from_target} from blocked user's posts"
    )
    return block

def get_blocked_users(db: Session, user_id: str, opts: PaginationOpts) -> Page[BlockedUserSchema]:
    query = db.query(BlockedUser).filter(BlockedUser.blocker_user_id == user_id)
    result = paginate(query, BlockedUser, opts)

    users = get_users_by_ids(db, [b.blocked_user_id for b in result.page])
    page = [
        BlockedUserSchema(**to_profile_summary(users[b.blocked_user_id]).model_dump(), blocked_at=b.created_at)
        for b in result.page
        if b.blocked_user_id in users
    ]
    return Page[BlockedUserSchema](page=page, is_done=result.is_done, continue_cursor=result.continue_cursor)
