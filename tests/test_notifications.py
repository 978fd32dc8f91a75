import pytest

from penpal.core.errors import NotAuthorized, NotFound
from penpal.core.pagination import PaginationOpts
from penpal.modules.notifications.models.notification import Notification
from penpal.modules.notifications.schemas.notification import NotificationType
from penpal.modules.notifications.services.notification import (
    count_unread_notifications,
    create_notification,
    delete_all_notifications,
    delete_notification,
    get_user_notifications,
    mark_all_as_read,
    mark_as_read,
    render_notification_content,
)
from penpal.modules.user_management.models.user import User


def test_self_notification_is_a_no_op(db, alice):
    assert create_notification(db, alice, alice, NotificationType.friend_removed) is None
    db.commit()

    assert db.query(Notification).count() == 0


def test_notifications_store_type_and_params_not_text(db, alice, bob):
    create_notification(db, bob, alice, NotificationType.post_reaction, {"post_id": "p1", "emoji": "🎨"})
    db.commit()

    stored = db.query(Notification).one()
    assert stored.type == "post_reaction"
    assert stored.params == {"post_id": "p1", "emoji": "🎨"}
    assert stored.has_unread is True

    page = get_user_notifications(db, bob, PaginationOpts())
    assert page.page[0].content == "Alice reacted 🎨 to your post"
    assert page.page[0].sender.user_id == alice


def test_render_letter_notification_pluralizes_days():
    assert render_notification_content("letter_scheduled", {"days": 1}, "Ann") == (
        "Ann sent you a letter arriving in 1 day"
    )
    assert render_notification_content(NotificationType.letter_scheduled, {"days": 5}, "Ann") == (
        "Ann sent you a letter arriving in 5 days"
    )


def test_unread_counts_and_mark_read(db, alice, bob, carol):
    create_notification(db, alice, bob, NotificationType.friend_request_sent)
    create_notification(db, alice, carol, NotificationType.friend_request_sent)
    db.commit()

    assert count_unread_notifications(db, alice) > 0
    assert count_unread_notifications(db, alice) == 2

    first = db.query(Notification).filter(Notification.sender_id == bob).one()
    mark_as_read(db, first.id, alice)
    assert count_unread_notifications(db, alice) == 1

    assert mark_all_as_read(db, alice) == 1
    assert count_unread_notifications(db, alice) == 0


def test_only_recipient_can_touch_a_notification(db, alice, bob):
    notification = create_notification(db, alice, bob, NotificationType.friend_removed)
    db.commit()

    with pytest.raises(NotAuthorized):
        mark_as_read(db, notification.id, bob)
    with pytest.raises(NotAuthorized):
        delete_notification(db, notification.id, bob)
    with pytest.raises(NotFound):
        delete_notification(db, "missing", alice)

    delete_notification(db, notification.id, alice)
    assert db.query(Notification).count() == 0


def test_delete_all_only_touches_recipient(db, alice, bob):
    create_notification(db, alice, bob, NotificationType.friend_removed)
    create_notification(db, alice, bob, NotificationType.user_blocked)
    create_notification(db, bob, alice, NotificationType.friend_removed)
    db.commit()

    assert delete_all_notifications(db, alice) == 2
    assert db.query(Notification).filter(Notification.recipient_id == bob).count() == 1


def test_notifications_from_deleted_senders_are_skipped(db, alice, bob):
    create_notification(db, alice, bob, NotificationType.friend_removed)
    db.commit()
    db.query(User).filter(User.id == bob).delete()
    db.commit()

    assert get_user_notifications(db, alice, PaginationOpts()).page == []
