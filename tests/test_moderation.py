import pytest

from penpal.core.errors import AlreadyBlocked, AlreadyReported, NotAuthorized, NotFound, SelfReferenceError, ValidationFailed
from penpal.core.pagination import PaginationOpts
from penpal.modules.conversations.models.conversation import Conversation, Message
from penpal.modules.conversations.services.conversation import create_conversation, send_message
from penpal.modules.friendships.models.friendship import Friendship, FriendRequest
from penpal.modules.friendships.services.friendship import are_friends, send_friend_request
from penpal.modules.moderation.models.moderation import BlockedUser, ReportedPost, ReportedUser
from penpal.modules.moderation.services.blocking import block_user, get_blocked_users, is_blocked_either_way
from penpal.modules.moderation.services.reports import (
    delete_post_and_resolve_report, delete_user_and_resolve_report, get_post_reports, get_user_reports,
    recount_counters, report_post, report_user, resolve_user_report,
)
from penpal.modules.posts.comments.models.comment import Comment
from penpal.modules.posts.comments.services.comment import add_comment
from penpal.modules.posts.models.post import Post
from penpal.modules.posts.reactions.models.reaction import Reaction
from penpal.modules.posts.reactions.services.reaction import add_reaction
from penpal.modules.posts.services.post import create_post
from penpal.modules.user_management.models.user import User

REASON = "Keeps sending rude messages"


@pytest.fixture
def admin(make_user):
    return make_user("Admin", is_admin=True)


def _post(db, post_id):
    return db.query(Post).filter(Post.id == post_id).one()


def test_block_removes_friendship_requests_and_interactions(db, alice, bob, carol, befriend):
    befriend(alice, bob)
    befriend(alice, carol)
    befriend(bob, carol)
    alice_post = create_post(db, alice, "Alice draws", ["art"])
    bob_post = create_post(db, bob, "Bob draws", ["art"])

    add_comment(db, alice_post.id, bob, "From Bob")
    add_comment(db, alice_post.id, carol, "From Carol")
    add_reaction(db, alice_post.id, bob, "❤️")
    add_reaction(db, bob_post.id, alice, "🔥")
    add_comment(db, bob_post.id, carol, "Carol on Bob")

    group_id = create_conversation(db, alice, bob)
    send_message(db, group_id, bob, "text", content="hello")

    block_user(db, alice, bob)

    assert not are_friends(db, alice, bob)
    assert db.query(Friendship).filter(Friendship.user_id.in_([alice, bob]), Friendship.friend_id.in_([alice, bob])).count() == 0
    assert are_friends(db, alice, carol)
    assert is_blocked_either_way(db, bob, alice)

    assert db.query(Comment).filter(Comment.user_id == bob).count() == 0
    assert db.query(Reaction).count() == 0
    assert _post(db, alice_post.id).comments_count == 1
    assert _post(db, alice_post.id).reactions_count == 0
    assert _post(db, bob_post.id).reactions_count == 0
    # Third-party interactions survive
    assert _post(db, bob_post.id).comments_count == 1

    # Conversations and messages are kept
    assert db.query(Conversation).filter(Conversation.conversation_group_id == group_id).count() == 2
    assert db.query(Message).count() == 1


def test_block_removes_replies_under_removed_comments(db, alice, bob, carol, befriend):
    befriend(alice, bob)
    befriend(alice, carol)
    alice_post = create_post(db, alice, "Alice draws", ["art"])
    bob_comment = add_comment(db, alice_post.id, bob, "From Bob")
    add_comment(db, alice_post.id, carol, "Carol answers Bob", reply_parent_id=bob_comment.id)
    assert _post(db, alice_post.id).comments_count == 2

    block_user(db, alice, bob)

    assert db.query(Comment).count() == 0
    assert _post(db, alice_post.id).comments_count == 0


def test_block_removes_pending_requests_both_ways(db, alice, bob):
    send_friend_request(db, bob, alice, "Hi Alice")

    block_user(db, alice, bob)

    assert db.query(FriendRequest).count() == 0
    with pytest.raises(NotAuthorized):
        send_friend_request(db, bob, alice, "Hi again")


def test_block_errors(db, alice, bob):
    with pytest.raises(SelfReferenceError):
        block_user(db, alice, alice)
    with pytest.raises(NotFound):
        block_user(db, alice, "missing")

    block_user(db, alice, bob)
    with pytest.raises(AlreadyBlocked):
        block_user(db, alice, bob)
    # The other direction is a separate block
    block_user(db, bob, alice)
    assert db.query(BlockedUser).count() == 2


def test_blocked_users_listing(db, alice, bob, carol):
    block_user(db, alice, bob)
    block_user(db, alice, carol)

    page = get_blocked_users(db, alice, PaginationOpts())
    assert sorted(u.name for u in page.page) == ["Bob", "Carol"]
    assert get_blocked_users(db, bob, PaginationOpts()).page == []


def test_report_user_validation(db, alice, bob):
    with pytest.raises(ValidationFailed):
        report_user(db, alice, bob, "spam", "short")
    with pytest.raises(SelfReferenceError):
        report_user(db, alice, alice, "spam", REASON)
    with pytest.raises(NotFound):
        report_user(db, alice, "missing", "spam", REASON)
    with pytest.raises(ValueError):
        report_user(db, alice, bob, "not_a_type", REASON)

    report_user(db, alice, bob, "harassment", REASON)
    with pytest.raises(AlreadyReported):
        report_user(db, alice, bob, "spam", REASON)
    assert db.query(ReportedUser).count() == 1


def test_report_post_validation(db, alice, bob):
    post = create_post(db, alice, "Alice draws", ["art"])

    with pytest.raises(SelfReferenceError):
        report_post(db, alice, post.id, "spam", REASON)
    with pytest.raises(NotFound):
        report_post(db, bob, "missing", "spam", REASON)

    report_post(db, bob, post.id, "inappropriate_content", REASON)
    with pytest.raises(AlreadyReported):
        report_post(db, bob, post.id, "spam", REASON)

    report = db.query(ReportedPost).one()
    assert report.reported_user_id == alice


def test_admin_operations_require_admin(db, alice, bob):
    report_id = report_user(db, alice, bob, "spam", REASON)

    with pytest.raises(NotAuthorized):
        get_user_reports(db, alice, PaginationOpts())
    with pytest.raises(NotAuthorized):
        get_post_reports(db, alice, PaginationOpts())
    with pytest.raises(NotAuthorized):
        resolve_user_report(db, alice, report_id)
    with pytest.raises(NotAuthorized):
        delete_user_and_resolve_report(db, alice, report_id)
    with pytest.raises(NotAuthorized):
        recount_counters(db, alice)


def test_admin_lists_and_resolves_reports(db, admin, alice, bob, deleted_blobs):
    report_id = report_user(db, alice, bob, "spam", REASON, attachment="reports/shot.png")

    page = get_user_reports(db, admin, PaginationOpts())
    assert len(page.page) == 1
    assert page.page[0].reporter.name == "Alice"
    assert page.page[0].reported_user.name == "Bob"

    resolve_user_report(db, admin, report_id)
    assert db.query(ReportedUser).count() == 0
    assert deleted_blobs == ["reports/shot.png"]
    with pytest.raises(NotFound):
        resolve_user_report(db, admin, report_id)


def test_delete_user_from_report(db, admin, alice, bob):
    report_id = report_user(db, alice, bob, "harassment", REASON)

    delete_user_and_resolve_report(db, admin, report_id)

    assert db.query(User).filter(User.id == bob).count() == 0
    assert db.query(ReportedUser).count() == 0


def test_admin_cannot_delete_self_from_report(db, admin, alice):
    report_id = report_user(db, alice, admin, "other", REASON)

    with pytest.raises(SelfReferenceError):
        delete_user_and_resolve_report(db, admin, report_id)


def test_delete_post_from_report_settles_every_report(db, admin, alice, bob, carol, befriend):
    befriend(alice, bob)
    post = create_post(db, alice, "Alice draws", ["art"], images=["posts/a.png"])
    add_comment(db, post.id, bob, "Hmm")
    first = report_post(db, bob, post.id, "spam", REASON)
    report_post(db, carol, post.id, "spam", REASON)

    page = get_post_reports(db, admin, PaginationOpts())
    assert {r.post.content for r in page.page} == {"Alice draws"}

    delete_post_and_resolve_report(db, admin, first)

    assert db.query(Post).count() == 0
    assert db.query(Comment).count() == 0
    assert db.query(ReportedPost).count() == 0


def test_recount_counters(db, admin, alice):
    post = create_post(db, alice, "Alice draws", ["art"])
    db.query(Post).filter(Post.id == post.id).update({Post.reactions_count: 4})
    db.commit()

    repair = recount_counters(db, admin)

    assert repair.posts == 1
    assert _post(db, post.id).reactions_count == 0
