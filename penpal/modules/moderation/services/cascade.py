"""
Cascading deletes for posts and accounts.

There are no foreign keys, so every dependent row is found and removed here.
An account deletion is an ordered pipeline of named steps. Each step only
deletes what still exists and commits on its own, so a crash leaves a prefix
of the pipeline applied and re-running the whole pipeline finishes the job.
Counter corrections are committed together with the deletes they account for,
which keeps re-runs from decrementing twice.

Blobs are deleted before the rows that reference them are committed away.
Deleting a missing blob is not an error, so re-runs are safe there too.
"""
from typing import Callable, Dict, List, Tuple
import logging
from collections import Counter

from sqlalchemy import or_
from sqlalchemy.orm import Session

from penpal.core.errors import NotFound
from penpal.core.storage import blob_storage
from penpal.modules.auth.models.auth import (
    AuthAccount, AuthRefreshToken, AuthSession, AuthVerificationCode, AuthVerifier,
)
from penpal.modules.conversations.models.conversation import Conversation, Message
from penpal.modules.friendships.models.friendship import Friendship, FriendRequest
from penpal.modules.letters.models.letter import Letter
from penpal.modules.moderation.models.moderation import BlockedUser, ReportedPost, ReportedUser
from penpal.modules.notifications.models.notification import Notification
from penpal.modules.posts.models.post import Collection, Post
from penpal.modules.posts.comments.models.comment import Comment
from penpal.modules.posts.comments.services.threads import delete_comment_threads
from penpal.modules.posts.reactions.models.reaction import Reaction
from penpal.modules.posts.services.counters import (
    decrement_collection_posts_count, decrement_post_counters_grouped,
)
from penpal.modules.user_management.models.user import Profile, User, UserInformation

logger = logging.getLogger(__name__)

def delete_post_cascade(db: Session, post_id: str) -> bool:
    """
    Delete a post with its comments, reactions and images in one commit.
    Returns False if the post was already gone; leftover comments and reactions are still removed.
    """
    post = db.query(Post).filter(Post.id == post_id).first()

    if post:
        for image_key in post.images or []:
            blob_storage.delete_object(image_key)

    comments = db.query(Comment).filter(Comment.post_id == post_id).delete(synchronize_session=False)
    reactions = db.query(Reaction).filter(Reaction.post_id == post_id).delete(synchronize_session=False)

    if not post:
        db.commit()
        if comments or reactions:
            logger.info(f"Removed {comments} orphan comments and {reactions} orphan reactions of post {post_id}")
        return False

    decrement_collection_posts_count(db, post.collection_id)
    db.delete(post)
    db.commit()
    logger.info(f"Deleted post {post_id} with {comments} comments and {reactions} reactions")
    return True

# Account cascade steps. Each takes (db, user_id), commits, and returns rows removed.

def _delete_owned_posts(db: Session, user_id: str) -> int:
    post_ids = [row.id for row in db.query(Post.id).filter(Post.user_id == user_id).all()]
    for post_id in post_ids:
        delete_post_cascade(db, post_id)
    return len(post_ids)

def _delete_comments_elsewhere(db: Session, user_id: str) -> int:
    # Other users' replies under these comments go too
    comment_ids = [row.id for row in db.query(Comment.id).filter(Comment.user_id == user_id).all()]
    if not comment_ids:
        return 0
    deleted = delete_comment_threads(db, comment_ids)
    db.commit()
    return deleted

def _delete_reactions_elsewhere(db: Session, user_id: str) -> int:
    reactions = db.query(Reaction.id, Reaction.post_id).filter(Reaction.user_id == user_id).all()
    if not reactions:
        return 0
    db.query(Reaction).filter(Reaction.id.in_([r.id for r in reactions])).delete(synchronize_session=False)
    decrement_post_counters_grouped(db, "reactions_count", Counter(r.post_id for r in reactions))
    db.commit()
    return len(reactions)

def _delete_collections(db: Session, user_id: str) -> int:
    collection_ids = [row.id for row in db.query(Collection.id).filter(Collection.user_id == user_id).all()]
    if not collection_ids:
        return 0
    db.query(Post).filter(Post.collection_id.in_(collection_ids)).update(
        {Post.collection_id: None}, synchronize_session=False
    )
    db.query(Collection).filter(Collection.id.in_(collection_ids)).delete(synchronize_session=False)
    db.commit()
    return len(collection_ids)

def _delete_friend_requests(db: Session, user_id: str) -> int:
    deleted = db.query(FriendRequest).filter(
        or_(FriendRequest.sender_id == user_id, FriendRequest.receiver_id == user_id)
    ).delete(synchronize_session=False)
    db.commit()
    return deleted

def _delete_friendships(db: Session, user_id: str) -> int:
    deleted = db.query(Friendship).filter(
        or_(Friendship.user_id == user_id, Friendship.friend_id == user_id)
    ).delete(synchronize_session=False)
    db.commit()
    return deleted

def _delete_blocks(db: Session, user_id: str) -> int:
    deleted = db.query(BlockedUser).filter(
        or_(BlockedUser.blocker_user_id == user_id, BlockedUser.blocked_user_id == user_id)
    ).delete(synchronize_session=False)
    db.commit()
    return deleted

def _delete_received_notifications(db: Session, user_id: str) -> int:
    # Notifications the user sent stay in other users' inboxes
    deleted = db.query(Notification).filter(Notification.recipient_id == user_id).delete(synchronize_session=False)
    db.commit()
    return deleted

def _delete_reports(db: Session, user_id: str) -> int:
    deleted = 0
    for model in (ReportedUser, ReportedPost):
        reports = db.query(model).filter(
            or_(model.reporter_id == user_id, model.reported_user_id == user_id)
        ).all()
        for report in reports:
            blob_storage.delete_object(report.attachment)
        if reports:
            db.query(model).filter(model.id.in_([r.id for r in reports])).delete(synchronize_session=False)
        deleted += len(reports)
    db.commit()
    return deleted

def _delete_letters(db: Session, user_id: str) -> int:
    deleted = db.query(Letter).filter(
        or_(Letter.sender_id == user_id, Letter.recipient_id == user_id)
    ).delete(synchronize_session=False)
    db.commit()
    return deleted

def _delete_conversations(db: Session, user_id: str) -> int:
    group_ids = {
        row.conversation_group_id
        for row in db.query(Conversation.conversation_group_id).filter(
            or_(Conversation.user_id == user_id, Conversation.other_user_id == user_id)
        ).all()
    }
    # Messages the user sent in groups whose rows are already gone
    group_ids.update(
        row.conversation_group_id
        for row in db.query(Message.conversation_group_id).filter(Message.sender_id == user_id).distinct().all()
    )
    if not group_ids:
        return 0

    for message in db.query(Message).filter(
        Message.conversation_group_id.in_(group_ids), Message.image_id.isnot(None)
    ).all():
        blob_storage.delete_object(message.image_id)

    messages = db.query(Message).filter(Message.conversation_group_id.in_(group_ids)).delete(synchronize_session=False)
    rows = db.query(Conversation).filter(Conversation.conversation_group_id.in_(group_ids)).delete(synchronize_session=False)
    db.commit()
    return messages + rows

def _delete_profile(db: Session, user_id: str) -> int:
    user = db.query(User).filter(User.id == user_id).first()
    if user and user.profile_picture:
        blob_storage.delete_object(user.profile_picture)
        user.profile_picture = None

    deleted = db.query(Profile).filter(Profile.user_id == user_id).delete(synchronize_session=False)
    deleted += db.query(UserInformation).filter(UserInformation.user_id == user_id).delete(synchronize_session=False)
    db.commit()
    return deleted

def _delete_auth_records(db: Session, user_id: str) -> int:
    account_ids = [row.id for row in db.query(AuthAccount.id).filter(AuthAccount.user_id == user_id).all()]
    session_ids = [row.id for row in db.query(AuthSession.id).filter(AuthSession.user_id == user_id).all()]

    # Children first, while their parents can still be looked up
    deleted = 0
    if account_ids:
        deleted += db.query(AuthVerificationCode).filter(
            AuthVerificationCode.account_id.in_(account_ids)
        ).delete(synchronize_session=False)
        deleted += db.query(AuthVerifier).filter(
            AuthVerifier.account_id.in_(account_ids)
        ).delete(synchronize_session=False)
    if session_ids:
        deleted += db.query(AuthRefreshToken).filter(
            AuthRefreshToken.session_id.in_(session_ids)
        ).delete(synchronize_session=False)
        deleted += db.query(AuthVerifier).filter(
            AuthVerifier.session_id.in_(session_ids)
        ).delete(synchronize_session=False)
        deleted += db.query(AuthSession).filter(AuthSession.id.in_(session_ids)).delete(synchronize_session=False)
    if account_ids:
        deleted += db.query(AuthAccount).filter(AuthAccount.id.in_(account_ids)).delete(synchronize_session=False)
    db.commit()
    return deleted

def _delete_user_row(db: Session, user_id: str) -> int:
    deleted = db.query(User).filter(User.id == user_id).delete(synchronize_session=False)
    db.commit()
    return deleted

CascadeStep = Tuple[str, Callable[[Session, str], int]]

ACCOUNT_CASCADE_STEPS: List[CascadeStep] = [
    ("owned_posts", _delete_owned_posts),
    ("comments_elsewhere", _delete_comments_elsewhere),
    ("reactions_elsewhere", _delete_reactions_elsewhere),
    ("collections", _delete_collections),
    ("friend_requests", _delete_friend_requests),
    ("friendships", _delete_friendships),
    ("blocks", _delete_blocks),
    ("notifications", _delete_received_notifications),
    ("reports", _delete_reports),
    ("letters", _delete_letters),
    ("conversations", _delete_conversations),
    ("profile", _delete_profile),
    ("auth_records", _delete_auth_records),
    ("user", _delete_user_row),
]

def delete_account_cascade(db: Session, user_id: str) -> Dict[str, int]:
    """Run every account deletion step in order. Safe to re-run after a partial failure."""
    logger.info(f"Starting complete user deletion for userId: {user_id}")
    removed = {}
    for name, step in ACCOUNT_CASCADE_STEPS:
        try:
            removed[name] = step(db, user_id)
        except Exception:
            db.rollback()
            logger.exception(f"Account deletion of {user_id} stopped at step '{name}'; re-run to finish")
            raise
        logger.info(f"Account deletion of {user_id}: step '{name}' removed {removed[name]} rows")
    logger.info(f"Completed complete user deletion for userId: {user_id}")
    return removed

def delete_account(db: Session, user_id: str) -> Dict[str, int]:
    """Self-service account deletion"""
    if not db.query(User).filter(User.id == user_id).first():
        raise NotFound("User not found")
    return delete_account_cascade(db, user_id)
