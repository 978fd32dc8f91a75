from typing import List, Optional
import uuid
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from penpal.core.errors import NotAuthorized, NotFound, ValidationFailed
from penpal.core.storage import blob_storage
from penpal.modules.notifications.schemas.notification import NotificationType
from penpal.modules.notifications.services.notification import create_notification
from penpal.modules.posts.models.post import Post
from penpal.modules.posts.reactions.models.reaction import Reaction
from penpal.modules.posts.reactions.schemas.reaction import Reaction as ReactionSchema
from penpal.modules.posts.services.counters import decrement_post_counter, increment_post_counter
from penpal.modules.posts.services.post import get_visible_post
from penpal.modules.user_management.services.summaries import get_users_by_ids

logger = logging.getLogger(__name__)

def get_reaction(db: Session, user_id: str, post_id: str) -> Optional[Reaction]:
    """Get reaction by user ID and post ID"""
    return (
        db.query(Reaction)
        .filter(Reaction.user_id == user_id, Reaction.post_id == post_id)
        .first()
    )

def add_reaction(db: Session, post_id: str, user_id: str, emoji: str) -> Reaction:
    """Create or update the caller's reaction. Only a new reaction moves the counter."""
    emoji = (emoji or "").strip()
    if not emoji:
        raise ValidationFailed("Emoji cannot be empty")

    post = get_visible_post(db, post_id, user_id)

    existing_reaction = get_reaction(db, user_id, post_id)
    if existing_reaction:
        existing_reaction.emoji = emoji
        db.commit()
        db.refresh(existing_reaction)
        return existing_reaction

    reaction = Reaction(
        id=str(uuid.uuid4()),
        emoji=emoji,
        user_id=user_id,
        post_id=post_id,
    )
    db.add(reaction)
    increment_post_counter(db, post_id, "reactions_count")
    create_notification(db, post.user_id, user_id, NotificationType.post_reaction, {"post_id": post_id, "emoji": emoji})
    try:
        db.commit()
    except IntegrityError:
        # A concurrent request inserted first; its insert carried the increment
        db.rollback()
        existing_reaction = get_reaction(db, user_id, post_id)
        if not existing_reaction:
            raise
        existing_reaction.emoji = emoji
        db.commit()
        db.refresh(existing_reaction)
        return existing_reaction

    db.refresh(reaction)
    return reaction

def _delete(db: Session, reaction: Reaction) -> None:
    post_id = reaction.post_id
    removed = db.query(Reaction).filter(Reaction.id == reaction.id).delete(synchronize_session=False)
    decrement_post_counter(db, post_id, "reactions_count", removed)
    db.commit()

def remove_reaction(db: Session, post_id: str, user_id: str) -> None:
    """Remove the caller's reaction from a post"""
    reaction = get_reaction(db, user_id, post_id)
    if not reaction:
        raise NotFound("Reaction not found")
    _delete(db, reaction)

def delete_reaction(db: Session, reaction_id: str, requester_id: str) -> None:
    """Delete a reaction by ID. Allowed for the reaction's author and the post owner."""
    reaction = db.query(Reaction).filter(Reaction.id == reaction_id).first()
    if not reaction:
        raise NotFound("Reaction not found")

    post = db.query(Post).filter(Post.id == reaction.post_id).first()
    if requester_id != reaction.user_id and (not post or post.user_id != requester_id):
        raise NotAuthorized("Not authorized to delete this reaction")
    _delete(db, reaction)

def get_post_reactions(db: Session, post_id: str, viewer_id: str) -> List[ReactionSchema]:
    """Reactions on a post, newest first"""
    get_visible_post(db, post_id, viewer_id)

    reactions = (
        db.query(Reaction)
        .filter(Reaction.post_id == post_id)
        .order_by(Reaction.created_at.desc(), Reaction.id.desc())
        .all()
    )
    users = get_users_by_ids(db, [r.user_id for r in reactions])

    result = []
    for reaction in reactions:
        user = users.get(reaction.user_id)
        if not user:
            continue
        result.append(ReactionSchema(
            id=reaction.id,
            emoji=reaction.emoji,
            user_id=reaction.user_id,
            post_id=reaction.post_id,
            created_at=reaction.created_at,
            name=user.name,
            profile_picture=blob_storage.get_url(user.profile_picture),
        ))
    return result
