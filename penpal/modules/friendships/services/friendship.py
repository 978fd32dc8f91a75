from typing import Optional, Tuple
import uuid
import logging

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from penpal.core.config import settings
from penpal.core.errors import (
    AlreadyFriends, DuplicateRequest, NotAuthorized, NotFound, NotFriends,
    SelfReferenceError, ValidationFailed,
)
from penpal.core.pagination import Page, PaginationOpts, paginate
from penpal.modules.friendships.models.friendship import Friendship, FriendRequest
from penpal.modules.friendships.schemas.friendship import (
    Friend, FriendshipStatus, FriendshipStatusKind, ReceivedFriendRequest,
)
from penpal.modules.moderation.services.blocking import is_blocked_either_way
from penpal.modules.notifications.schemas.notification import NotificationType
from penpal.modules.notifications.services.notification import create_notification
from penpal.modules.user_management.services.summaries import get_user, get_users_by_ids, to_profile_summary

logger = logging.getLogger(__name__)

# Request operations
def request_pair_key(user_a: str, user_b: str) -> str:
    return "-".join(sorted([user_a, user_b]))

def get_friend_request(db: Session, sender_id: str, receiver_id: str) -> Optional[FriendRequest]:
    """Get friend request by sender and receiver IDs"""
    return db.query(FriendRequest).filter(
        FriendRequest.sender_id == sender_id,
        FriendRequest.receiver_id == receiver_id
    ).first()

def get_friend_request_by_id(db: Session, request_id: str) -> Optional[FriendRequest]:
    """Get friend request by ID"""
    return db.query(FriendRequest).filter(FriendRequest.id == request_id).first()

def has_pending_request(db: Session, user_a: str, user_b: str) -> bool:
    """Check for a pending request in either direction"""
    return db.query(FriendRequest).filter(
        or_(
            and_(FriendRequest.sender_id == user_a, FriendRequest.receiver_id == user_b),
            and_(FriendRequest.sender_id == user_b, FriendRequest.receiver_id == user_a),
        )
    ).first() is not None

def send_friend_request(db: Session, sender_id: str, receiver_id: str, message: str) -> FriendRequest:
    """Create a pending friend request and notify the receiver"""
    message = (message or "").strip()
    if not message:
        raise ValidationFailed("Request message cannot be empty")
    if len(message) > settings.FRIEND_REQUEST_MESSAGE_MAX_LENGTH:
        raise ValidationFailed("Request message is too long")

    if sender_id == receiver_id:
        raise SelfReferenceError("Cannot send friend request to yourself")

    if are_friends(db, sender_id, receiver_id):
        raise AlreadyFriends("You are already friends with this user")

    if has_pending_request(db, sender_id, receiver_id):
        raise DuplicateRequest("A friend request already exists")

    if not get_user(db, receiver_id):
        raise NotFound("User not found")

    if is_blocked_either_way(db, sender_id, receiver_id):
        raise NotAuthorized("Cannot send a friend request to this user")

    friend_request = FriendRequest(
        id=str(uuid.uuid4()),
        sender_id=sender_id,
        receiver_id=receiver_id,
        pair_key=request_pair_key(sender_id, receiver_id),
        request_message=message,
    )
    db.add(friend_request)
    create_notification(db, receiver_id, sender_id, NotificationType.friend_request_sent)
    try:
        db.commit()
    except IntegrityError:
        # Another request for the pair, in either direction, committed first
        db.rollback()
        raise DuplicateRequest("A friend request already exists")
    db.refresh(friend_request)
    return friend_request

def _get_request_for(db: Session, request_id: str, user_id: str, role: str) -> FriendRequest:
    friend_request = get_friend_request_by_id(db, request_id)
    if not friend_request:
        raise NotFound("Friend request not found")

    # Check if the user is the appropriate party (sender or receiver)
    if getattr(friend_request, f"{role}_id") != user_id:
        raise NotAuthorized(f"Only the {role} can do this")
    return friend_request

def accept_friend_request(db: Session, request_id: str, accepter_id: str) -> None:
    """
    Turn a pending request into a friendship.

    Both directional rows are inserted and the request deleted in one commit.
    If the two users are already friends (a concurrent accept won), the stale
    request is deleted and the call succeeds.
    """
    friend_request = _get_request_for(db, request_id, accepter_id, "receiver")
    sender_id, receiver_id = friend_request.sender_id, friend_request.receiver_id

    if are_friends(db, sender_id, receiver_id):
        _delete_stale_request(db, request_id)
        return

    db.add(Friendship(id=str(uuid.uuid4()), user_id=sender_id, friend_id=receiver_id))
    db.add(Friendship(id=str(uuid.uuid4()), user_id=receiver_id, friend_id=sender_id))
    db.delete(friend_request)
    create_notification(db, sender_id, accepter_id, NotificationType.friend_request_accepted)
    try:
        db.commit()
    except IntegrityError:
        # Lost the race against another accept of the same pair
        db.rollback()
        logger.info(f"Friendship {sender_id} <-> {receiver_id} already created concurrently")
        _delete_stale_request(db, request_id)
        return

    logger.info(f"Created bidirectional friendship: {sender_id} <-> {receiver_id}")

def _delete_stale_request(db: Session, request_id: str) -> None:
    db.query(FriendRequest).filter(FriendRequest.id == request_id).delete(synchronize_session=False)
    db.commit()

def reject_friend_request(db: Session, request_id: str, rejecter_id: str) -> None:
    friend_request = _get_request_for(db, request_id, rejecter_id, "receiver")
    sender_id = friend_request.sender_id
    db.delete(friend_request)
    create_notification(db, sender_id, rejecter_id, NotificationType.friend_request_rejected)
    db.commit()

def cancel_friend_request(db: Session, request_id: str, sender_id: str) -> None:
    friend_request = _get_request_for(db, request_id, sender_id, "sender")
    db.delete(friend_request)
    db.commit()

# Friendship operations
def get_friendship_rows(db: Session, user_id: str, friend_id: str) -> Tuple[Optional[Friendship], Optional[Friendship]]:
    forward = db.query(Friendship).filter(Friendship.user_id == user_id, Friendship.friend_id == friend_id).first()
    backward = db.query(Friendship).filter(Friendship.user_id == friend_id, Friendship.friend_id == user_id).first()
    return forward, backward

def are_friends(db: Session, user_a: str, user_b: str) -> bool:
    """Check the single a -> b row. A user is never their own friend."""
    if user_a == user_b:
        return False
    return db.query(Friendship).filter(
        Friendship.user_id == user_a,
        Friendship.friend_id == user_b,
    ).first() is not None

def remove_friend(db: Session, user_id: str, friend_id: str) -> None:
    """Delete both directional rows; fails when either one is missing"""
    if user_id == friend_id:
        raise SelfReferenceError("Cannot remove yourself as friend")

    forward, backward = get_friendship_rows(db, user_id, friend_id)
    if not forward or not backward:
        raise NotFriends("You are not friends with this user")

    db.delete(forward)
    db.delete(backward)
    create_notification(db, friend_id, user_id, NotificationType.friend_removed)
    db.commit()
    logger.info(f"Removed bidirectional friendship: {user_id} <-> {friend_id}")

def get_friend_requests(db: Session, user_id: str, opts: PaginationOpts) -> Page[ReceivedFriendRequest]:
    """Received requests, newest first, with the sender's card"""
    query = db.query(FriendRequest).filter(FriendRequest.receiver_id == user_id)
    result = paginate(query, FriendRequest, opts)

    senders = get_users_by_ids(db, [r.sender_id for r in result.page])
    page = []
    for request in result.page:
        sender = senders.get(request.sender_id)
        if not sender:
            logger.warning(f"Friend request {request.id} references missing sender {request.sender_id}")
            continue
        page.append(ReceivedFriendRequest(
            **to_profile_summary(sender).model_dump(),
            request_id=request.id,
            sender_id=request.sender_id,
            request_message=request.request_message,
            created_at=request.created_at,
        ))
    return Page[ReceivedFriendRequest](page=page, is_done=result.is_done, continue_cursor=result.continue_cursor)

def get_user_friends(db: Session, user_id: str, opts: PaginationOpts) -> Page[Friend]:
    """A user's friends, most recent friendships first"""
    query = db.query(Friendship).filter(Friendship.user_id == user_id)
    result = paginate(query, Friendship, opts)

    friends = get_users_by_ids(db, [f.friend_id for f in result.page])
    page = []
    for friendship in result.page:
        friend = friends.get(friendship.friend_id)
        if not friend:
            logger.warning(f"Friend relationship exists but user not found: {friendship.friend_id}")
            continue
        page.append(Friend(**to_profile_summary(friend).model_dump(), friends_since=friendship.created_at))
    return Page[Friend](page=page, is_done=result.is_done, continue_cursor=result.continue_cursor)

def get_friendship_status(db: Session, user_id: str, other_id: str) -> FriendshipStatus:
    if not get_user(db, other_id):
        raise NotFound("User not found")

    if user_id == other_id:
        return FriendshipStatus(status=FriendshipStatusKind.self)

    if are_friends(db, user_id, other_id):
        return FriendshipStatus(status=FriendshipStatusKind.friends)

    sent_request = get_friend_request(db, user_id, other_id)
    if sent_request:
        return FriendshipStatus(status=FriendshipStatusKind.request_sent, request_id=sent_request.id)

    received_request = get_friend_request(db, other_id, user_id)
    if received_request:
        return FriendshipStatus(status=FriendshipStatusKind.request_received, request_id=received_request.id)

    return FriendshipStatus(status=FriendshipStatusKind.not_friends)
