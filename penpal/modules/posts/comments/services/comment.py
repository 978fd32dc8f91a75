from typing import Dict, List, Optional
import uuid
import logging

from sqlalchemy.orm import Session

from penpal.core.config import settings
from penpal.core.errors import NotAuthorized, NotFound, ValidationFailed
from penpal.core.pagination import Page, PaginationOpts, paginate
from penpal.modules.notifications.schemas.notification import NotificationType
from penpal.modules.notifications.services.notification import create_notification
from penpal.modules.posts.comments.models.comment import Comment
from penpal.modules.posts.comments.schemas.comment import Comment as CommentSchema, CommentWithReplies
from penpal.modules.posts.models.post import Post
from penpal.modules.posts.comments.services.threads import delete_comment_threads
from penpal.modules.posts.services.counters import increment_post_counter
from penpal.modules.posts.services.post import get_visible_post
from penpal.modules.user_management.models.user import User
from penpal.modules.user_management.services.summaries import get_users_by_ids, to_user_summary

logger = logging.getLogger(__name__)

def get_comment(db: Session, comment_id: str) -> Optional[Comment]:
    """Get comment by ID"""
    return db.query(Comment).filter(Comment.id == comment_id).first()

def get_comment_replies(db: Session, comment_id: str) -> List[Comment]:
    """Get replies to a comment, oldest first"""
    return (
        db.query(Comment)
        .filter(Comment.reply_parent_id == comment_id)
        .order_by(Comment.created_at.asc(), Comment.id.asc())
        .all()
    )

def _to_schema(comment: Comment, author: Optional[User], viewer_id: str) -> CommentSchema:
    return CommentSchema(
        id=comment.id,
        content=comment.content,
        reply_parent_id=comment.reply_parent_id,
        post_id=comment.post_id,
        user_id=comment.user_id,
        created_at=comment.created_at,
        is_owner=comment.user_id == viewer_id,
        author=to_user_summary(author) if author else None,
    )

def add_comment(db: Session, post_id: str, user_id: str, content: str, reply_parent_id: Optional[str] = None) -> Comment:
    """Create a comment, bump the post's counter and notify the post author and replied-to author"""
    content = (content or "").strip()
    if not content:
        raise ValidationFailed("Comment cannot be empty")
    if len(content) > settings.COMMENT_MAX_LENGTH:
        raise ValidationFailed(f"Comment too long (max {settings.COMMENT_MAX_LENGTH} characters)")

    post = get_visible_post(db, post_id, user_id)

    parent = None
    if reply_parent_id:
        parent = get_comment(db, reply_parent_id)
        if not parent:
            raise NotFound("Parent comment not found")
        if parent.post_id != post_id:
            raise ValidationFailed("Parent comment does not belong to this post")
        # Threads are one level deep; a reply to a reply hangs off the top-level comment
        if parent.reply_parent_id:
            reply_parent_id = parent.reply_parent_id

    comment = Comment(
        id=str(uuid.uuid4()),
        content=content,
        user_id=user_id,
        post_id=post_id,
        reply_parent_id=reply_parent_id,
    )
    db.add(comment)
    increment_post_counter(db, post_id, "comments_count")

    params = {"post_id": post_id, "comment_id": comment.id}
    if parent:
        create_notification(db, parent.user_id, user_id, NotificationType.comment_replied, params)
    # Post author already got comment_replied when the parent comment is theirs
    if not parent or parent.user_id != post.user_id:
        create_notification(db, post.user_id, user_id, NotificationType.post_commented, params)

    db.commit()
    db.refresh(comment)
    return comment

def delete_comment(db: Session, comment_id: str, requester_id: str) -> int:
    """
    Delete a comment together with its replies.

    Allowed for the comment author and the owner of the post. The post's
    counter drops by the number of rows actually removed.
    """
    comment = get_comment(db, comment_id)
    if not comment:
        raise NotFound("Comment not found")

    post = db.query(Post).filter(Post.id == comment.post_id).first()
    post_owner_id = post.user_id if post else None
    if requester_id not in (comment.user_id, post_owner_id):
        raise NotAuthorized("Not authorized to delete this comment")

    # The row is gone after commit
    post_id = comment.post_id
    removed = delete_comment_threads(db, [comment.id])
    db.commit()
    logger.info(f"Deleted comment {comment_id} and {removed - 1} replies from post {post_id}")
    return removed

def get_post_comments(db: Session, post_id: str, viewer_id: str, opts: PaginationOpts) -> Page[CommentWithReplies]:
    """Top-level comments, newest first, each with its replies"""
    get_visible_post(db, post_id, viewer_id)

    query = db.query(Comment).filter(Comment.post_id == post_id, Comment.reply_parent_id.is_(None))
    result = paginate(query, Comment, opts)

    replies_by_parent: Dict[str, List[Comment]] = {}
    for comment in result.page:
        replies_by_parent[comment.id] = get_comment_replies(db, comment.id)

    author_ids = [c.user_id for c in result.page]
    for replies in replies_by_parent.values():
        author_ids.extend(r.user_id for r in replies)
    authors = get_users_by_ids(db, author_ids)

    page = []
    for comment in result.page:
        schema = _to_schema(comment, authors.get(comment.user_id), viewer_id)
        replies = [_to_schema(r, authors.get(r.user_id), viewer_id) for r in replies_by_parent[comment.id]]
        page.append(CommentWithReplies(**schema.model_dump(), replies=replies))

    return Page[CommentWithReplies](page=page, is_done=result.is_done, continue_cursor=result.continue_cursor)

def to_comment_schema(db: Session, comment: Comment, viewer_id: str) -> CommentSchema:
    authors = get_users_by_ids(db, [comment.user_id])
    return _to_schema(comment, authors.get(comment.user_id), viewer_id)
