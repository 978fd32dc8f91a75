from typing import List, Optional
import uuid
import logging

from sqlalchemy.orm import Session

from penpal.core.config import settings
from penpal.core.errors import NotAuthorized, NotFound, ValidationFailed
from penpal.modules.posts.models.post import Collection, Post
from penpal.modules.posts.services.counters import (
    decrement_collection_posts_count, increment_collection_posts_count,
)

logger = logging.getLogger(__name__)

def _validate_title(title: str) -> str:
    title = (title or "").strip()
    if not title or len(title) > settings.COLLECTION_TITLE_MAX_LENGTH:
        raise ValidationFailed(f"Collection title must be 1 to {settings.COLLECTION_TITLE_MAX_LENGTH} characters")
    return title

def get_collection(db: Session, collection_id: str) -> Optional[Collection]:
    return db.query(Collection).filter(Collection.id == collection_id).first()

def _get_owned_collection(db: Session, collection_id: str, user_id: str) -> Collection:
    collection = get_collection(db, collection_id)
    if not collection:
        raise NotFound("Collection not found")
    if collection.user_id != user_id:
        raise NotAuthorized("Not authorized to modify this collection")
    return collection

def create_collection(db: Session, user_id: str, title: str, commit: bool = True) -> Collection:
    collection = Collection(
        id=str(uuid.uuid4()),
        user_id=user_id,
        title=_validate_title(title),
        posts_count=0,
    )
    db.add(collection)
    if commit:
        db.commit()
        db.refresh(collection)
    return collection

def get_user_collections(db: Session, user_id: str) -> List[Collection]:
    """A user's collections, oldest first"""
    return (
        db.query(Collection)
        .filter(Collection.user_id == user_id)
        .order_by(Collection.created_at.asc(), Collection.id.asc())
        .all()
    )

def rename_collection(db: Session, collection_id: str, user_id: str, title: str) -> Collection:
    collection = _get_owned_collection(db, collection_id, user_id)
    collection.title = _validate_title(title)
    db.commit()
    db.refresh(collection)
    return collection

def delete_collection(db: Session, collection_id: str, user_id: str) -> None:
    """Delete a collection. Its posts survive outside any collection."""
    collection = _get_owned_collection(db, collection_id, user_id)
    detached = db.query(Post).filter(Post.collection_id == collection_id).update(
        {Post.collection_id: None}, synchronize_session=False
    )
    db.delete(collection)
    db.commit()
    logger.info(f"Deleted collection {collection_id}, detached {detached} posts")

def move_post_to_collection(db: Session, post_id: str, user_id: str, collection_id: Optional[str]) -> Post:
    """Move a post between the owner's collections, or out of all of them when collection_id is None"""
    post = db.query(Post).filter(Post.id == post_id).first()
    if not post:
        raise NotFound("Post not found")
    if post.user_id != user_id:
        raise NotAuthorized("Not authorized to move this post")
    if collection_id:
        _get_owned_collection(db, collection_id, user_id)

    if post.collection_id == collection_id:
        return post

    decrement_collection_posts_count(db, post.collection_id)
    increment_collection_posts_count(db, collection_id)
    post.collection_id = collection_id
    db.commit()
    db.refresh(post)
    return post
