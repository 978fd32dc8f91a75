import pytest

from penpal.core.errors import (
    AlreadyFriends, DuplicateRequest, NotAuthorized, NotFound, NotFriends, SelfReferenceError, ValidationFailed,
)
from penpal.core.pagination import PaginationOpts
from penpal.modules.friendships.models.friendship import Friendship, FriendRequest
from penpal.modules.friendships.schemas.friendship import FriendshipStatusKind
from penpal.modules.friendships.services import friendship as friendship_service
from penpal.modules.friendships.services.friendship import (
    accept_friend_request,
    are_friends,
    cancel_friend_request,
    get_friend_requests,
    get_friendship_status,
    get_user_friends,
    reject_friend_request,
    remove_friend,
    send_friend_request,
)
from penpal.modules.moderation.services.blocking import block_user
from penpal.modules.notifications.models.notification import Notification


def _notification_types(db, recipient_id):
    return [n.type for n in db.query(Notification).filter(Notification.recipient_id == recipient_id).all()]


def test_accept_creates_both_rows_and_removes_request(db, alice, bob):
    request = send_friend_request(db, alice, bob, "Hi")

    accept_friend_request(db, request.id, bob)

    assert are_friends(db, alice, bob)
    assert are_friends(db, bob, alice)
    assert db.query(FriendRequest).count() == 0
    assert "friend_request_accepted" in _notification_types(db, alice)
    assert "friend_request_sent" in _notification_types(db, bob)


def test_accept_is_idempotent_when_friendship_already_exists(db, alice, bob, befriend):
    request = send_friend_request(db, alice, bob, "Hi")
    befriend(alice, bob)

    accept_friend_request(db, request.id, bob)

    assert db.query(Friendship).count() == 2
    assert db.query(FriendRequest).count() == 0


def test_only_receiver_can_accept(db, alice, bob):
    request = send_friend_request(db, alice, bob, "Hi")

    with pytest.raises(NotAuthorized):
        accept_friend_request(db, request.id, alice)


def test_send_request_validation_order(db, alice, bob, befriend):
    with pytest.raises(ValidationFailed):
        send_friend_request(db, alice, bob, "   ")
    with pytest.raises(ValidationFailed):
        send_friend_request(db, alice, bob, "x" * 301)
    with pytest.raises(SelfReferenceError):
        send_friend_request(db, alice, alice, "Hi")
    with pytest.raises(NotFound):
        send_friend_request(db, alice, "missing-user", "Hi")

    befriend(alice, bob)
    with pytest.raises(AlreadyFriends):
        send_friend_request(db, alice, bob, "Hi")


def test_duplicate_request_detected_in_either_direction(db, alice, bob):
    send_friend_request(db, alice, bob, "Hi")

    with pytest.raises(DuplicateRequest):
        send_friend_request(db, alice, bob, "Hi again")
    with pytest.raises(DuplicateRequest):
        send_friend_request(db, bob, alice, "Hi back")


def test_racing_requests_for_one_pair_keep_a_single_row(db, alice, bob, monkeypatch):
    # Both senders pass the pending check before either commits
    monkeypatch.setattr(friendship_service, "has_pending_request", lambda *args: False)

    send_friend_request(db, alice, bob, "Hi")
    with pytest.raises(DuplicateRequest):
        send_friend_request(db, bob, alice, "Hi back")

    assert db.query(FriendRequest).count() == 1
    # The losing request does not notify anyone
    assert _notification_types(db, alice) == []


def test_blocked_users_cannot_send_requests(db, alice, bob):
    block_user(db, bob, alice)

    with pytest.raises(NotAuthorized):
        send_friend_request(db, alice, bob, "Hi")


def test_reject_deletes_request_and_notifies_sender(db, alice, bob):
    request = send_friend_request(db, alice, bob, "Hi")

    reject_friend_request(db, request.id, bob)

    assert db.query(FriendRequest).count() == 0
    assert not are_friends(db, alice, bob)
    assert "friend_request_rejected" in _notification_types(db, alice)


def test_cancel_only_by_sender(db, alice, bob):
    request = send_friend_request(db, alice, bob, "Hi")

    with pytest.raises(NotAuthorized):
        cancel_friend_request(db, request.id, bob)

    cancel_friend_request(db, request.id, alice)
    assert db.query(FriendRequest).count() == 0


def test_remove_friend_deletes_both_rows(db, alice, bob, befriend):
    befriend(alice, bob)

    remove_friend(db, alice, bob)

    assert db.query(Friendship).count() == 0
    assert not are_friends(db, alice, bob)
    assert not are_friends(db, bob, alice)
    assert "friend_removed" in _notification_types(db, bob)


def test_remove_friend_fails_when_a_row_is_missing(db, alice, bob):
    db.add(Friendship(id="half", user_id=alice, friend_id=bob))
    db.commit()

    with pytest.raises(NotFriends):
        remove_friend(db, alice, bob)
    with pytest.raises(SelfReferenceError):
        remove_friend(db, alice, alice)


def test_are_friends_is_false_for_self(db, alice):
    assert not are_friends(db, alice, alice)


def test_friend_lists_and_requests_are_paginated(db, make_user, alice, befriend):
    friends = [make_user(f"Friend {i}") for i in range(3)]
    for friend_id in friends:
        befriend(alice, friend_id)

    first = get_user_friends(db, alice, PaginationOpts(num_items=2))
    assert len(first.page) == 2
    assert not first.is_done
    assert first.continue_cursor

    second = get_user_friends(db, alice, PaginationOpts(num_items=2, cursor=first.continue_cursor))
    assert len(second.page) == 1
    assert second.is_done
    assert second.continue_cursor == ""

    seen = {f.user_id for f in first.page + second.page}
    assert seen == set(friends)


def test_received_requests_include_sender_card(db, alice, bob):
    send_friend_request(db, alice, bob, "Hi")

    result = get_friend_requests(db, bob, PaginationOpts())

    assert len(result.page) == 1
    assert result.page[0].sender_id == alice
    assert result.page[0].name == "Alice"
    assert result.page[0].request_message == "Hi"


def test_friendship_status(db, alice, bob, carol, befriend):
    assert get_friendship_status(db, alice, alice).status == FriendshipStatusKind.self
    assert get_friendship_status(db, alice, bob).status == FriendshipStatusKind.not_friends

    request = send_friend_request(db, alice, bob, "Hi")
    sent = get_friendship_status(db, alice, bob)
    assert sent.status == FriendshipStatusKind.request_sent
    assert sent.request_id == request.id
    assert get_friendship_status(db, bob, alice).status == FriendshipStatusKind.request_received

    befriend(alice, carol)
    assert get_friendship_status(db, carol, alice).status == FriendshipStatusKind.friends

    with pytest.raises(NotFound):
        get_friendship_status(db, alice, "missing-user")
