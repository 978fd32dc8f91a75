"""
Direct messaging between friends.

A conversation is stored as two rows, one per participant, sharing a
``conversation_group_id`` derived from the sorted pair of user ids. Each row
carries its owner's unread flag and a copy of the last message pointer, so
listing a user's conversations is a single-table query.
"""
from typing import Optional
import uuid
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from penpal.core.clock import utc_now
from penpal.core.config import settings
from penpal.core.errors import NotAuthorized, NotFound, NotFriends, SelfReferenceError, ValidationFailed
from penpal.core.pagination import Page, PaginationOpts, paginate
from penpal.core.storage import blob_storage
from penpal.modules.conversations.models.conversation import Conversation, Message
from penpal.modules.conversations.schemas.conversation import (
    ConversationInfo, ConversationSummary, LastMessage, Message as MessageSchema,
    MessageSender, MessageType, ReplyParent, ReplyParentSender,
)
from penpal.modules.friendships.services.friendship import are_friends
from penpal.modules.moderation.services.blocking import is_blocked_either_way
from penpal.modules.notifications.schemas.notification import NotificationType
from penpal.modules.notifications.services.notification import create_notification
from penpal.modules.user_management.services.summaries import get_user, get_users_by_ids, to_user_summary

logger = logging.getLogger(__name__)

def conversation_group_id(user_a: str, user_b: str) -> str:
    return "-".join(sorted([user_a, user_b]))

def get_participant_row(db: Session, group_id: str, user_id: str) -> Optional[Conversation]:
    return db.query(Conversation).filter(
        Conversation.conversation_group_id == group_id,
        Conversation.user_id == user_id,
    ).first()

def _require_participant(db: Session, group_id: str, user_id: str, action: str) -> Conversation:
    row = get_participant_row(db, group_id, user_id)
    if not row:
        raise NotAuthorized(f"Not authorized to {action} this conversation")
    return row

def get_message(db: Session, message_id: str) -> Optional[Message]:
    return db.query(Message).filter(Message.id == message_id).first()

def _latest_message(db: Session, group_id: str) -> Optional[Message]:
    return (
        db.query(Message)
        .filter(Message.conversation_group_id == group_id)
        .order_by(Message.created_at.desc(), Message.id.desc())
        .first()
    )

def create_conversation(db: Session, user_id: str, other_user_id: str) -> str:
    """Return the pair's group id, creating both rows when needed"""
    if user_id == other_user_id:
        raise SelfReferenceError("Cannot create conversation with yourself")

    group_id = conversation_group_id(user_id, other_user_id)

    existing = get_participant_row(db, group_id, user_id)
    if existing:
        if not get_participant_row(db, group_id, other_user_id):
            logger.warning(f"Repairing missing partner row in conversation {group_id}")
            db.add(Conversation(
                id=str(uuid.uuid4()),
                user_id=other_user_id,
                other_user_id=user_id,
                conversation_group_id=group_id,
                last_message_id=existing.last_message_id,
                last_message_time=existing.last_message_time,
                has_unread_messages=existing.last_message_id is not None,
            ))
            db.commit()
        return group_id

    if not are_friends(db, user_id, other_user_id):
        raise NotFriends("You can only create conversations with friends")

    now = utc_now()
    for owner, other in ((user_id, other_user_id), (other_user_id, user_id)):
        db.add(Conversation(
            id=str(uuid.uuid4()),
            user_id=owner,
            other_user_id=other,
            conversation_group_id=group_id,
            last_message_time=now,
            has_unread_messages=False,
        ))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info(f"Conversation {group_id} already created concurrently")

    return group_id

def _validate_payload(type: str, content: Optional[str], image_id: Optional[str]) -> MessageType:
    try:
        message_type = MessageType(type)
    except ValueError:
        raise ValidationFailed(f"Unknown message type '{type}'")

    has_text = bool(content and content.strip())
    if message_type == MessageType.text:
        if not has_text:
            raise ValidationFailed("Text messages must have content")
        if image_id:
            raise ValidationFailed("Text messages cannot carry an image")
        if len(content.strip()) > settings.MESSAGE_MAX_LENGTH:
            raise ValidationFailed(f"Message too long (max {settings.MESSAGE_MAX_LENGTH} characters)")
    else:
        if not image_id:
            raise ValidationFailed("Image messages must have an imageId")
        if has_text:
            raise ValidationFailed("Image messages cannot carry text")
    return message_type

def send_message(
    db: Session,
    group_id: str,
    sender_id: str,
    type: str,
    content: Optional[str] = None,
    image_id: Optional[str] = None,
    reply_parent_id: Optional[str] = None,
) -> Message:
    """Insert a message and point both conversation rows at it"""
    sender_row = _require_participant(db, group_id, sender_id, "send messages in")
    message_type = _validate_payload(type, content, image_id)

    if reply_parent_id:
        parent = get_message(db, reply_parent_id)
        if not parent:
            raise NotFound("Parent message not found")
        if parent.conversation_group_id != group_id:
            raise ValidationFailed("Parent message does not belong to this conversation")

    if is_blocked_either_way(db, sender_id, sender_row.other_user_id):
        raise NotAuthorized("Cannot send messages to this user")

    now = utc_now()
    message = Message(
        id=str(uuid.uuid4()),
        conversation_group_id=group_id,
        sender_id=sender_id,
        type=message_type.value,
        content=content.strip() if message_type == MessageType.text else None,
        image_id=image_id if message_type == MessageType.image else None,
        reply_parent_id=reply_parent_id,
        created_at=now,
    )
    db.add(message)

    # Sender has read their own message, the other participant has not
    sender_row.last_message_id = message.id
    sender_row.last_message_time = now
    sender_row.has_unread_messages = False

    receiver_row = get_participant_row(db, group_id, sender_row.other_user_id)
    if receiver_row:
        receiver_row.last_message_id = message.id
        receiver_row.last_message_time = now
        receiver_row.has_unread_messages = True

    db.commit()
    db.refresh(message)
    return message

def delete_message(db: Session, message_id: str, requester_id: str) -> None:
    """Delete a message and re-point any conversation row that showed it as last"""
    message = get_message(db, message_id)
    if not message:
        raise NotFound("Message not found")

    if message.sender_id != requester_id:
        raise NotAuthorized("Not authorized to delete this message")

    if message.type == MessageType.image.value and message.image_id:
        blob_storage.delete_object(message.image_id)

    group_id = message.conversation_group_id
    db.delete(message)
    db.flush()

    stale_rows = db.query(Conversation).filter(
        Conversation.conversation_group_id == group_id,
        Conversation.last_message_id == message_id,
    ).all()
    if stale_rows:
        latest = _latest_message(db, group_id)
        for row in stale_rows:
            row.last_message_id = latest.id if latest else None
            if latest:
                row.last_message_time = latest.created_at

    db.commit()

def delete_conversation(db: Session, group_id: str, requester_id: str) -> None:
    """Delete every message (and image) of the group, then both rows"""
    own_row = _require_participant(db, group_id, requester_id, "delete")

    messages = db.query(Message).filter(Message.conversation_group_id == group_id).all()
    for message in messages:
        if message.type == MessageType.image.value and message.image_id:
            blob_storage.delete_object(message.image_id)
    db.query(Message).filter(Message.conversation_group_id == group_id).delete(synchronize_session=False)

    create_notification(db, own_row.other_user_id, requester_id, NotificationType.conversation_deleted)

    db.query(Conversation).filter(Conversation.conversation_group_id == group_id).delete(synchronize_session=False)
    db.commit()
    logger.info(f"Deleted conversation {group_id} with {len(messages)} messages")

def mark_as_read(db: Session, group_id: str, user_id: str) -> None:
    row = _require_participant(db, group_id, user_id, "read")
    row.has_unread_messages = False
    db.commit()

def get_user_conversations(db: Session, user_id: str, opts: PaginationOpts) -> Page[ConversationSummary]:
    """The caller's conversations, most recent activity first"""
    query = db.query(Conversation).filter(Conversation.user_id == user_id)
    result = paginate(query, Conversation, opts, sort_field="last_message_time")

    others = get_users_by_ids(db, [c.other_user_id for c in result.page])
    last_ids = [c.last_message_id for c in result.page if c.last_message_id]
    last_messages = {m.id: m for m in db.query(Message).filter(Message.id.in_(last_ids)).all()} if last_ids else {}

    page = []
    for conversation in result.page:
        other_user = others.get(conversation.other_user_id)
        if not other_user:
            continue

        last_message = None
        message = last_messages.get(conversation.last_message_id)
        if message:
            last_message = LastMessage(
                message_id=message.id,
                content=message.content,
                type=message.type,
                sender_id=message.sender_id,
                created_at=message.created_at,
            )

        page.append(ConversationSummary(
            conversation_group_id=conversation.conversation_group_id,
            created_at=conversation.created_at,
            last_message_id=conversation.last_message_id,
            last_message_time=conversation.last_message_time,
            has_unread_messages=conversation.has_unread_messages,
            other_user=to_user_summary(other_user),
            last_message=last_message,
        ))

    return Page[ConversationSummary](page=page, is_done=result.is_done, continue_cursor=result.continue_cursor)

def _reply_parent(db: Session, parent_id: Optional[str]) -> Optional[ReplyParent]:
    if not parent_id:
        return None
    parent = get_message(db, parent_id)
    if not parent:
        return None
    parent_sender = get_user(db, parent.sender_id)
    if not parent_sender:
        return None
    return ReplyParent(
        message_id=parent.id,
        content=parent.content,
        type=parent.type,
        sender=ReplyParentSender(name=parent_sender.name),
    )

def get_conversation_messages(db: Session, group_id: str, user_id: str, opts: PaginationOpts) -> Page[MessageSchema]:
    """Messages of a conversation, newest first"""
    _require_participant(db, group_id, user_id, "view")

    query = db.query(Message).filter(Message.conversation_group_id == group_id)
    result = paginate(query, Message, opts)

    senders = get_users_by_ids(db, [m.sender_id for m in result.page])
    page = []
    for message in result.page:
        sender = senders.get(message.sender_id)
        if not sender:
            continue
        page.append(MessageSchema(
            message_id=message.id,
            created_at=message.created_at,
            conversation_group_id=message.conversation_group_id,
            sender_id=message.sender_id,
            content=message.content,
            type=message.type,
            image_id=message.image_id,
            image_url=blob_storage.get_url(message.image_id) if message.type == MessageType.image.value else None,
            reply_parent_id=message.reply_parent_id,
            reply_parent=_reply_parent(db, message.reply_parent_id),
            is_owner=message.sender_id == user_id,
            sender=MessageSender(
                user_id=sender.id,
                name=sender.name,
                profile_picture=blob_storage.get_url(sender.profile_picture),
            ),
        ))

    return Page[MessageSchema](page=page, is_done=result.is_done, continue_cursor=result.continue_cursor)

def get_conversation_info(db: Session, group_id: str, user_id: str) -> ConversationInfo:
    row = _require_participant(db, group_id, user_id, "view")
    other_user = get_user(db, row.other_user_id)
    if not other_user:
        raise NotFound("Other user not found")
    return ConversationInfo(conversation_group_id=group_id, other_user=to_user_summary(other_user))
