from typing import Dict, List, Optional
import uuid
import logging

from sqlalchemy.orm import Session

from penpal.core.config import settings
from penpal.core.errors import NotAuthorized, NotFound, ValidationFailed
from penpal.core.pagination import Page, PaginationOpts, paginate
from penpal.core.storage import blob_storage
from penpal.modules.friendships.services.friendship import are_friends
from penpal.modules.moderation.services.blocking import is_blocked_either_way
from penpal.modules.moderation.services.cascade import delete_post_cascade
from penpal.modules.posts.models.post import Collection, Post
from penpal.modules.posts.reactions.models.reaction import Reaction
from penpal.modules.posts.schemas.post import Post as PostSchema
from penpal.modules.posts.services.counters import increment_collection_posts_count
from penpal.modules.user_management.models.user import User
from penpal.modules.user_management.services.summaries import get_user, get_users_by_ids, to_user_summary

logger = logging.getLogger(__name__)

def get_post(db: Session, post_id: str) -> Optional[Post]:
    """Get post by ID"""
    return db.query(Post).filter(Post.id == post_id).first()

def can_view_posts_of(db: Session, viewer_id: str, author: User) -> bool:
    """Owners, friends, and everyone for admin authors, unless blocked either way"""
    if author.id == viewer_id:
        return True
    if is_blocked_either_way(db, viewer_id, author.id):
        return False
    return bool(author.is_admin) or are_friends(db, viewer_id, author.id)

def get_visible_post(db: Session, post_id: str, viewer_id: str) -> Post:
    post = get_post(db, post_id)
    if not post:
        raise NotFound("Post not found")
    author = get_user(db, post.user_id)
    if not author:
        raise NotFound("Post author not found")
    if not can_view_posts_of(db, viewer_id, author):
        raise NotAuthorized("Not authorized to view this post")
    return post

def _get_owned_post(db: Session, post_id: str, user_id: str, action: str) -> Post:
    post = get_post(db, post_id)
    if not post:
        raise NotFound("Post not found")
    if post.user_id != user_id:
        raise NotAuthorized(f"Not authorized to {action} this post")
    return post

def _validate_images(images: List[str]) -> None:
    if len(images) > settings.POST_MAX_IMAGES:
        raise ValidationFailed(f"A post can have at most {settings.POST_MAX_IMAGES} images")

def create_post(
    db: Session,
    user_id: str,
    content: str,
    tags: List[str],
    images: Optional[List[str]] = None,
    collection_id: Optional[str] = None,
) -> Post:
    """Create new post, optionally inside one of the author's collections"""
    images = images or []
    content = (content or "").strip()
    tags = [tag.strip() for tag in tags if tag and tag.strip()]

    if not content:
        raise ValidationFailed("Post content cannot be empty")
    if len(content) > settings.POST_CONTENT_MAX_LENGTH:
        raise ValidationFailed(f"Post content too long (max {settings.POST_CONTENT_MAX_LENGTH} characters)")
    if not tags or len(tags) > settings.POST_MAX_TAGS:
        raise ValidationFailed(f"A post needs between 1 and {settings.POST_MAX_TAGS} tags")
    _validate_images(images)

    if collection_id:
        collection = db.query(Collection).filter(Collection.id == collection_id).first()
        if not collection:
            raise NotFound("Collection not found")
        if collection.user_id != user_id:
            raise NotAuthorized("Not authorized to add posts to this collection")

    post = Post(
        id=str(uuid.uuid4()),
        user_id=user_id,
        collection_id=collection_id,
        content=content,
        images=images,
        tags=tags,
        comments_count=0,
        reactions_count=0,
    )
    db.add(post)
    increment_collection_posts_count(db, collection_id)
    db.commit()
    db.refresh(post)
    logger.info(f"User {user_id} created post {post.id}")
    return post

def update_post_images(db: Session, post_id: str, user_id: str, image_keys: List[str]) -> Post:
    """Replace the post's images, deleting blobs that are no longer referenced"""
    post = _get_owned_post(db, post_id, user_id, "update")
    _validate_images(image_keys)

    for old_key in post.images or []:
        if old_key not in image_keys:
            blob_storage.delete_object(old_key)

    post.images = list(image_keys)
    db.commit()
    db.refresh(post)
    return post

def delete_post(db: Session, post_id: str, user_id: str) -> None:
    _get_owned_post(db, post_id, user_id, "delete")
    delete_post_cascade(db, post_id)

def _viewer_reactions(db: Session, post_ids: List[str], viewer_id: str) -> Dict[str, str]:
    if not post_ids:
        return {}
    reactions = db.query(Reaction).filter(Reaction.post_id.in_(post_ids), Reaction.user_id == viewer_id).all()
    return {r.post_id: r.emoji for r in reactions}

def to_post_schema(post: Post, author: User, viewer_id: str, user_reaction: Optional[str] = None) -> PostSchema:
    """Enrich a post row for the viewer"""
    return PostSchema(
        post_id=post.id,
        created_at=post.created_at,
        user_id=post.user_id,
        collection_id=post.collection_id,
        content=post.content,
        tags=post.tags or [],
        post_images=[blob_storage.get_url(key) for key in post.images or []],
        reactions_count=post.reactions_count,
        comments_count=post.comments_count,
        has_reacted=user_reaction is not None,
        user_reaction=user_reaction,
        is_owner=post.user_id == viewer_id,
        post_author=to_user_summary(author),
    )

def to_post_page(db: Session, posts: List[Post], viewer_id: str) -> List[PostSchema]:
    """Enrich many posts with batched author and reaction lookups, dropping posts whose author is gone"""
    authors = get_users_by_ids(db, [p.user_id for p in posts])
    reactions = _viewer_reactions(db, [p.id for p in posts], viewer_id)
    return [
        to_post_schema(post, authors[post.user_id], viewer_id, reactions.get(post.id))
        for post in posts
        if post.user_id in authors
    ]

def get_post_details(db: Session, post_id: str, viewer_id: str) -> PostSchema:
    post = get_visible_post(db, post_id, viewer_id)
    author = get_user(db, post.user_id)
    reactions = _viewer_reactions(db, [post.id], viewer_id)
    return to_post_schema(post, author, viewer_id, reactions.get(post.id))

def get_user_posts(db: Session, user_id: str, viewer_id: str, opts: PaginationOpts) -> Page[PostSchema]:
    """A user's posts, newest first"""
    author = get_user(db, user_id)
    if not author:
        raise NotFound("User not found")
    if not can_view_posts_of(db, viewer_id, author):
        raise NotAuthorized("Not authorized to view this user's posts")

    result = paginate(db.query(Post).filter(Post.user_id == user_id), Post, opts)
    page = to_post_page(db, result.page, viewer_id)
    return Page[PostSchema](page=page, is_done=result.is_done, continue_cursor=result.continue_cursor)

def get_collection_posts(db: Session, collection_id: str, viewer_id: str, opts: PaginationOpts) -> Page[PostSchema]:
    collection = db.query(Collection).filter(Collection.id == collection_id).first()
    if not collection:
        raise NotFound("Collection not found")
    owner = get_user(db, collection.user_id)
    if not owner or not can_view_posts_of(db, viewer_id, owner):
        raise NotAuthorized("Not authorized to view this collection")

    result = paginate(db.query(Post).filter(Post.collection_id == collection_id), Post, opts)
    page = to_post_page(db, result.page, viewer_id)
    return Page[PostSchema](page=page, is_done=result.is_done, continue_cursor=result.continue_cursor)
