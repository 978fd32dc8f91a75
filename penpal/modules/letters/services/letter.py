"""
Slow letters between friends.

A letter is written now and becomes readable by its recipient only once
``deliver_at`` has passed. The sender can see and delete it at any time.
"""
from datetime import datetime, timedelta
from typing import Optional
import math
import uuid
import logging

from sqlalchemy.orm import Session

from penpal.core.clock import utc_now
from penpal.core.config import settings
from penpal.core.errors import NotAuthorized, NotFound, NotFriends, SelfReferenceError, ValidationFailed
from penpal.core.pagination import Page, PaginationOpts, paginate
from penpal.modules.friendships.services.friendship import are_friends
from penpal.modules.letters.models.letter import Letter
from penpal.modules.letters.schemas.letter import Letter as LetterSchema, LetterPreview
from penpal.modules.moderation.services.blocking import is_blocked_either_way
from penpal.modules.notifications.schemas.notification import NotificationType
from penpal.modules.notifications.services.notification import create_notification
from penpal.modules.user_management.services.summaries import get_user, get_users_by_ids, to_user_summary

logger = logging.getLogger(__name__)

def days_until(deliver_at: datetime, now: Optional[datetime] = None) -> int:
    remaining = (deliver_at - (now or utc_now())).total_seconds()
    if remaining <= 0:
        return 0
    return math.ceil(remaining / 86400)

def is_delivered(letter: Letter) -> bool:
    return letter.deliver_at <= utc_now()

def schedule_letter(db: Session, sender_id: str, recipient_id: str, title: str, content: str, days: int) -> Letter:
    title = (title or "").strip()
    content = (content or "").strip()

    if sender_id == recipient_id:
        raise SelfReferenceError("Cannot send a letter to yourself")
    if not title or len(title) > settings.LETTER_TITLE_MAX_LENGTH:
        raise ValidationFailed(f"Title must be 1 to {settings.LETTER_TITLE_MAX_LENGTH} characters")
    if not settings.LETTER_CONTENT_MIN_LENGTH <= len(content) <= settings.LETTER_CONTENT_MAX_LENGTH:
        raise ValidationFailed(
            f"Content must be {settings.LETTER_CONTENT_MIN_LENGTH} to {settings.LETTER_CONTENT_MAX_LENGTH} characters"
        )
    if not settings.LETTER_MIN_DAYS <= days <= settings.LETTER_MAX_DAYS:
        raise ValidationFailed(f"Delivery must be {settings.LETTER_MIN_DAYS} to {settings.LETTER_MAX_DAYS} days away")

    if not get_user(db, recipient_id):
        raise NotFound("Recipient not found")
    if is_blocked_either_way(db, sender_id, recipient_id):
        raise NotAuthorized("Cannot send letters to this user")
    if not are_friends(db, sender_id, recipient_id):
        raise NotFriends("You can only send letters to friends")

    now = utc_now()
    letter = Letter(
        id=str(uuid.uuid4()),
        sender_id=sender_id,
        recipient_id=recipient_id,
        title=title,
        content=content,
        created_at=now,
        deliver_at=now + timedelta(days=days),
    )
    db.add(letter)
    create_notification(db, recipient_id, sender_id, NotificationType.letter_scheduled, {"days": days})
    db.commit()
    db.refresh(letter)
    logger.info(f"User {sender_id} scheduled letter {letter.id} for delivery in {days} days")
    return letter

def _preview(letter: Letter, other_user) -> LetterPreview:
    return LetterPreview(
        letter_id=letter.id,
        title=letter.title,
        created_at=letter.created_at,
        deliver_at=letter.deliver_at,
        days_until_delivery=days_until(letter.deliver_at),
        other_user=to_user_summary(other_user) if other_user else None,
    )

def get_received_letters(db: Session, user_id: str, opts: PaginationOpts) -> Page[LetterPreview]:
    """Delivered letters, most recently delivered first"""
    query = db.query(Letter).filter(Letter.recipient_id == user_id, Letter.deliver_at <= utc_now())
    result = paginate(query, Letter, opts, sort_field="deliver_at")

    senders = get_users_by_ids(db, [l.sender_id for l in result.page])
    page = [_preview(letter, senders.get(letter.sender_id)) for letter in result.page]
    return Page[LetterPreview](page=page, is_done=result.is_done, continue_cursor=result.continue_cursor)

def get_sent_letters(db: Session, user_id: str, opts: PaginationOpts) -> Page[LetterPreview]:
    """Everything the user has sent, delivered or not, newest first"""
    result = paginate(db.query(Letter).filter(Letter.sender_id == user_id), Letter, opts)

    recipients = get_users_by_ids(db, [l.recipient_id for l in result.page])
    page = [_preview(letter, recipients.get(letter.recipient_id)) for letter in result.page]
    return Page[LetterPreview](page=page, is_done=result.is_done, continue_cursor=result.continue_cursor)

def _get_readable_letter(db: Session, letter_id: str, user_id: str) -> Letter:
    letter = db.query(Letter).filter(Letter.id == letter_id).first()
    # Undelivered letters do not exist as far as the recipient can tell
    if not letter or (letter.recipient_id == user_id and not is_delivered(letter)):
        raise NotFound("Letter not found")
    if user_id not in (letter.sender_id, letter.recipient_id):
        raise NotAuthorized("Not authorized to access this letter")
    return letter

def get_letter(db: Session, letter_id: str, user_id: str) -> LetterSchema:
    letter = _get_readable_letter(db, letter_id, user_id)
    is_sender = letter.sender_id == user_id
    other_user = get_user(db, letter.recipient_id if is_sender else letter.sender_id)
    return LetterSchema(
        **_preview(letter, other_user).model_dump(),
        content=letter.content,
        sender_id=letter.sender_id,
        recipient_id=letter.recipient_id,
        is_sender=is_sender,
    )

def delete_letter(db: Session, letter_id: str, user_id: str) -> None:
    letter = _get_readable_letter(db, letter_id, user_id)
    db.delete(letter)
    db.commit()
