import pytest

from penpal.core.errors import NotAuthorized, NotFound, ValidationFailed
from penpal.core.pagination import PaginationOpts
from penpal.modules.moderation.services.blocking import block_user
from penpal.modules.notifications.models.notification import Notification
from penpal.modules.posts.comments.models.comment import Comment
from penpal.modules.posts.comments.services.comment import add_comment, delete_comment, get_post_comments
from penpal.modules.posts.models.post import Collection, Post
from penpal.modules.posts.reactions.models.reaction import Reaction
from penpal.modules.posts.reactions.services.reaction import (
    add_reaction, delete_reaction, get_post_reactions, remove_reaction,
)
from penpal.modules.posts.services.collection import (
    create_collection, delete_collection, get_user_collections, move_post_to_collection, rename_collection,
)
from penpal.modules.posts.services.counters import recount_all, recount_post_counters
from penpal.modules.posts.services.post import (
    create_post, delete_post, get_post_details, get_user_posts, update_post_images,
)


def _post(db, post_id):
    return db.query(Post).filter(Post.id == post_id).one()


@pytest.fixture
def post_id(db, alice):
    return create_post(db, alice, "A drawing", ["art"], images=["posts/a.png"]).id


def test_create_post_validation(db, alice, bob):
    with pytest.raises(ValidationFailed):
        create_post(db, alice, "   ", ["art"])
    with pytest.raises(ValidationFailed):
        create_post(db, alice, "x" * 2001, ["art"])
    with pytest.raises(ValidationFailed):
        create_post(db, alice, "content", [])
    with pytest.raises(ValidationFailed):
        create_post(db, alice, "content", ["a", "b", "c", "d"])
    with pytest.raises(ValidationFailed):
        create_post(db, alice, "content", ["a"], images=["1", "2", "3", "4"])

    bobs = create_collection(db, bob, "Bob's")
    with pytest.raises(NotAuthorized):
        create_post(db, alice, "content", ["a"], collection_id=bobs.id)


def test_post_visibility(db, alice, bob, carol, befriend, make_user, post_id):
    befriend(alice, bob)

    assert get_post_details(db, post_id, alice).is_owner
    assert get_post_details(db, post_id, bob).post_author.name == "Alice"
    with pytest.raises(NotAuthorized):
        get_post_details(db, post_id, carol)
    with pytest.raises(NotFound):
        get_post_details(db, "missing", alice)

    admin = make_user("Admin", is_admin=True)
    admin_post = create_post(db, admin, "Announcement", ["news"])
    assert get_post_details(db, admin_post.id, carol).post_author.is_admin

    block_user(db, carol, admin)
    with pytest.raises(NotAuthorized):
        get_post_details(db, admin_post.id, carol)


def test_user_posts_listing(db, alice, bob, carol, befriend, post_id):
    befriend(alice, bob)
    create_post(db, alice, "Second", ["art"])

    page = get_user_posts(db, alice, bob, PaginationOpts())
    assert [p.content for p in page.page] == ["Second", "A drawing"]
    assert page.page[1].post_images == ["http://localhost:8000/api/v1/static/posts/a.png"]

    with pytest.raises(NotAuthorized):
        get_user_posts(db, alice, carol, PaginationOpts())


def test_reaction_counter_scenario(db, alice, make_user, befriend, post_id):
    reactors = [make_user(f"Reactor {i}") for i in range(3)]
    for reactor in reactors:
        befriend(alice, reactor)
        add_reaction(db, post_id, reactor, "❤️")
    assert _post(db, post_id).reactions_count == 3

    reaction_id = db.query(Reaction).filter(Reaction.user_id == reactors[0]).one().id
    delete_reaction(db, reaction_id, alice)
    assert _post(db, post_id).reactions_count == 2

    with pytest.raises(NotFound):
        delete_reaction(db, reaction_id, alice)
    assert _post(db, post_id).reactions_count == 2


def test_changing_emoji_does_not_touch_counter(db, alice, bob, befriend, post_id):
    befriend(alice, bob)
    add_reaction(db, post_id, bob, "❤️")
    updated = add_reaction(db, post_id, bob, "🔥")

    assert updated.emoji == "🔥"
    assert db.query(Reaction).count() == 1
    assert _post(db, post_id).reactions_count == 1
    notifications = db.query(Notification).filter(Notification.type == "post_reaction").all()
    assert len(notifications) == 1
    assert notifications[0].params == {"post_id": post_id, "emoji": "❤️"}


def test_remove_reaction(db, alice, bob, carol, befriend, post_id):
    befriend(alice, bob)
    befriend(alice, carol)
    add_reaction(db, post_id, bob, "❤️")
    reaction = db.query(Reaction).one()

    with pytest.raises(NotAuthorized):
        delete_reaction(db, reaction.id, carol)

    remove_reaction(db, post_id, bob)
    assert _post(db, post_id).reactions_count == 0
    with pytest.raises(NotFound):
        remove_reaction(db, post_id, bob)
    assert _post(db, post_id).reactions_count == 0


def test_post_reactions_listing(db, alice, bob, befriend, post_id):
    befriend(alice, bob)
    add_reaction(db, post_id, bob, "🎨")

    reactions = get_post_reactions(db, post_id, alice)
    assert [(r.name, r.emoji) for r in reactions] == [("Bob", "🎨")]


def test_comments_and_replies(db, alice, bob, carol, befriend, post_id):
    befriend(alice, bob)
    befriend(alice, carol)

    top = add_comment(db, post_id, bob, "Nice")
    add_comment(db, post_id, carol, "Agreed", reply_parent_id=top.id)
    assert _post(db, post_id).comments_count == 2

    types = sorted(
        (n.recipient_id, n.type) for n in db.query(Notification).filter(Notification.type != "friend_request_sent")
    )
    assert (alice, "post_commented") in types
    assert (bob, "comment_replied") in types

    comments = get_post_comments(db, post_id, alice, PaginationOpts())
    assert len(comments.page) == 1
    assert comments.page[0].content == "Nice"
    assert [r.content for r in comments.page[0].replies] == ["Agreed"]


def test_reply_to_post_author_sends_one_notification(db, alice, bob, befriend, post_id):
    befriend(alice, bob)
    own = add_comment(db, post_id, alice, "Thanks for looking")
    add_comment(db, post_id, bob, "Love it", reply_parent_id=own.id)

    to_alice = db.query(Notification).filter(Notification.recipient_id == alice).all()
    assert [n.type for n in to_alice] == ["comment_replied"]


def test_comment_validation(db, alice, bob, befriend, post_id):
    befriend(alice, bob)
    other = create_post(db, alice, "Other", ["art"])
    foreign = add_comment(db, other.id, bob, "Elsewhere")

    with pytest.raises(ValidationFailed):
        add_comment(db, post_id, bob, "x" * 501)
    with pytest.raises(ValidationFailed):
        add_comment(db, post_id, bob, "reply", reply_parent_id=foreign.id)


def test_delete_comment_removes_subtree_and_decrements(db, alice, bob, carol, befriend, post_id):
    befriend(alice, bob)
    befriend(alice, carol)
    top = add_comment(db, post_id, bob, "Top")
    reply = add_comment(db, post_id, carol, "Reply", reply_parent_id=top.id)
    add_comment(db, post_id, bob, "Nested", reply_parent_id=reply.id)
    add_comment(db, post_id, carol, "Standalone")
    assert _post(db, post_id).comments_count == 4

    with pytest.raises(NotAuthorized):
        delete_comment(db, top.id, carol)

    # The post owner may delete any comment on their post
    assert delete_comment(db, top.id, alice) == 3
    assert _post(db, post_id).comments_count == 1
    assert db.query(Comment).count() == 1


def test_reply_to_reply_is_listed_under_top_level_comment(db, alice, bob, carol, befriend, post_id):
    befriend(alice, bob)
    befriend(alice, carol)
    top = add_comment(db, post_id, bob, "Top")
    reply = add_comment(db, post_id, carol, "Reply", reply_parent_id=top.id)

    nested = add_comment(db, post_id, bob, "Reply to Carol", reply_parent_id=reply.id)

    assert nested.reply_parent_id == top.id
    assert _post(db, post_id).comments_count == 3
    page = get_post_comments(db, post_id, alice, PaginationOpts(num_items=10)).page
    assert len(page) == 1
    assert [r.content for r in page[0].replies] == ["Reply", "Reply to Carol"]
    # The replied-to author is still notified
    replied = db.query(Notification).filter(
        Notification.type == "comment_replied", Notification.recipient_id == carol
    ).one()
    assert replied.params["comment_id"] == nested.id


def test_delete_post_cascades(db, alice, bob, befriend, post_id, deleted_blobs):
    befriend(alice, bob)
    collection = create_collection(db, alice, "Sketches")
    move_post_to_collection(db, post_id, alice, collection.id)
    add_comment(db, post_id, bob, "Nice")
    add_reaction(db, post_id, bob, "❤️")

    with pytest.raises(NotAuthorized):
        delete_post(db, post_id, bob)

    delete_post(db, post_id, alice)

    assert db.query(Post).count() == 0
    assert db.query(Comment).count() == 0
    assert db.query(Reaction).count() == 0
    assert db.query(Collection).filter(Collection.id == collection.id).one().posts_count == 0
    assert deleted_blobs == ["posts/a.png"]


def test_update_post_images_deletes_replaced_blobs(db, alice, post_id, deleted_blobs):
    post = update_post_images(db, post_id, alice, ["posts/b.png"])

    assert post.images == ["posts/b.png"]
    assert deleted_blobs == ["posts/a.png"]
    with pytest.raises(ValidationFailed):
        update_post_images(db, post_id, alice, ["1", "2", "3", "4"])


def test_collections(db, alice, bob, post_id):
    with pytest.raises(ValidationFailed):
        create_collection(db, alice, "x" * 51)

    first = create_collection(db, alice, "First")
    second = create_collection(db, alice, "Second")

    move_post_to_collection(db, post_id, alice, first.id)
    assert db.query(Collection).filter(Collection.id == first.id).one().posts_count == 1

    move_post_to_collection(db, post_id, alice, second.id)
    assert db.query(Collection).filter(Collection.id == first.id).one().posts_count == 0
    assert db.query(Collection).filter(Collection.id == second.id).one().posts_count == 1

    with pytest.raises(NotAuthorized):
        rename_collection(db, second.id, bob, "Mine")
    assert rename_collection(db, second.id, alice, "Renamed").title == "Renamed"

    delete_collection(db, second.id, alice)
    assert _post(db, post_id).collection_id is None
    assert [c.title for c in get_user_collections(db, alice)] == ["First"]


def test_recount_matches_maintained_counters(db, alice, bob, carol, befriend, post_id):
    befriend(alice, bob)
    befriend(alice, carol)
    collection = create_collection(db, alice, "Sketches")
    second = create_post(db, alice, "Second", ["art"], collection_id=collection.id)

    first_comment = add_comment(db, post_id, bob, "one")
    add_comment(db, post_id, carol, "two", reply_parent_id=first_comment.id)
    add_comment(db, second.id, bob, "three")
    add_reaction(db, post_id, bob, "❤️")
    add_reaction(db, post_id, carol, "🔥")
    add_reaction(db, second.id, carol, "🔥")
    delete_comment(db, first_comment.id, bob)
    remove_reaction(db, post_id, carol)

    assert recount_all(db) == {"posts": 0, "collections": 0}
    assert recount_post_counters(db, post_id) == {"comments_count": 0, "reactions_count": 1}


def test_recount_repairs_drift(db, alice, post_id):
    db.query(Post).filter(Post.id == post_id).update({Post.comments_count: 7})
    db.commit()

    assert recount_all(db) == {"posts": 1, "collections": 0}
    assert _post(db, post_id).comments_count == 0
