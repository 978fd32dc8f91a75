"""
Denormalized counter maintenance.

``Post.comments_count``, ``Post.reactions_count`` and ``Collection.posts_count``
are never read-modified-written. Every change is one ``UPDATE ... SET c = c + n``
statement, so concurrent writers cannot lose updates, and decrements clamp at
zero inside the same statement.

The helpers join the caller's unit of work and do not commit. Every code path
that inserts or deletes a counted row must call the paired helper.

``recount_post_counters`` and ``recount_collection`` rebuild a counter from the
live rows. They are the reconciliation path for drift and are exposed to admins.
"""
from typing import Dict, Optional
import logging

from sqlalchemy import case, func, update
from sqlalchemy.orm import Session

from penpal.modules.posts.models.post import Post, Collection
from penpal.modules.posts.comments.models.comment import Comment
from penpal.modules.posts.reactions.models.reaction import Reaction

logger = logging.getLogger(__name__)

POST_COUNTER_FIELDS = ("comments_count", "reactions_count")

def _post_column(field: str):
    if field not in POST_COUNTER_FIELDS:
        raise ValueError(f"Unknown post counter '{field}'")
    return getattr(Post, field)

def _clamped(column, by: int):
    return case((column > by, column - by), else_=0)

def increment_post_counter(db: Session, post_id: str, field: str, by: int = 1) -> None:
    if by <= 0:
        return
    column = _post_column(field)
    db.execute(
        update(Post).where(Post.id == post_id).values({column: column + by}).execution_options(synchronize_session=False)
    )

def decrement_post_counter(db: Session, post_id: str, field: str, by: int = 1) -> None:
    if by <= 0:
        return
    column = _post_column(field)
    db.execute(
        update(Post).where(Post.id == post_id).values({column: _clamped(column, by)}).execution_options(synchronize_session=False)
    )

def decrement_post_counters_grouped(db: Session, field: str, counts_by_post: Dict[str, int]) -> None:
    """One decrement per affected post, used by cascades"""
    for post_id, count in counts_by_post.items():
        decrement_post_counter(db, post_id, field, count)

def increment_collection_posts_count(db: Session, collection_id: Optional[str], by: int = 1) -> None:
    if not collection_id or by <= 0:
        return
    db.execute(
        update(Collection)
        .where(Collection.id == collection_id)
        .values(posts_count=Collection.posts_count + by)
        .execution_options(synchronize_session=False)
    )

def decrement_collection_posts_count(db: Session, collection_id: Optional[str], by: int = 1) -> None:
    if not collection_id or by <= 0:
        return
    db.execute(
        update(Collection)
        .where(Collection.id == collection_id)
        .values(posts_count=_clamped(Collection.posts_count, by))
        .execution_options(synchronize_session=False)
    )

def recount_post_counters(db: Session, post_id: str) -> Dict[str, int]:
    comments = db.query(func.count(Comment.id)).filter(Comment.post_id == post_id).scalar() or 0
    reactions = db.query(func.count(Reaction.id)).filter(Reaction.post_id == post_id).scalar() or 0
    db.execute(
        update(Post)
        .where(Post.id == post_id)
        .values(comments_count=comments, reactions_count=reactions)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return {"comments_count": comments, "reactions_count": reactions}

def recount_collection(db: Session, collection_id: str) -> int:
    posts = db.query(func.count(Post.id)).filter(Post.collection_id == collection_id).scalar() or 0
    db.execute(
        update(Collection)
        .where(Collection.id == collection_id)
        .values(posts_count=posts)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return posts

def recount_all(db: Session) -> Dict[str, int]:
    """Rebuild every counter. Returns how many rows had drifted."""
    drifted_posts = 0
    for post_id, comments_count, reactions_count in db.query(Post.id, Post.comments_count, Post.reactions_count).all():
        fresh = recount_post_counters(db, post_id)
        if fresh != {"comments_count": comments_count, "reactions_count": reactions_count}:
            drifted_posts += 1

    drifted_collections = 0
    for collection_id, posts_count in db.query(Collection.id, Collection.posts_count).all():
        if recount_collection(db, collection_id) != posts_count:
            drifted_collections += 1

    if drifted_posts or drifted_collections:
        logger.warning(f"Counter drift repaired: {drifted_posts} posts, {drifted_collections} collections")
    return {"posts": drifted_posts, "collections": drifted_collections}
