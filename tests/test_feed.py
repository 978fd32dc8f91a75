from penpal.core.pagination import PaginationOpts
from penpal.modules.home_feed.services.feed import get_home_feed
from penpal.modules.moderation.services.blocking import block_user
from penpal.modules.posts.services.post import create_post


def test_feed_has_own_friends_and_admin_posts(db, alice, bob, carol, make_user, befriend):
    admin = make_user("Admin", is_admin=True)
    befriend(alice, bob)
    create_post(db, alice, "Mine", ["a"])
    create_post(db, bob, "Friend's", ["a"])
    create_post(db, carol, "Stranger's", ["a"])
    create_post(db, admin, "Announcement", ["news"])

    feed = get_home_feed(db, alice, PaginationOpts())

    assert [p.content for p in feed.page] == ["Announcement", "Friend's", "Mine"]
    assert feed.is_done


def test_feed_hides_blocked_authors(db, alice, bob, make_user, befriend):
    admin = make_user("Admin", is_admin=True)
    befriend(alice, bob)
    create_post(db, bob, "Friend's", ["a"])
    create_post(db, admin, "Announcement", ["news"])

    block_user(db, admin, alice)

    assert [p.content for p in get_home_feed(db, alice, PaginationOpts()).page] == ["Friend's"]


def test_feed_pages(db, alice):
    for i in range(3):
        create_post(db, alice, f"Post {i}", ["a"])

    first = get_home_feed(db, alice, PaginationOpts(num_items=2))
    second = get_home_feed(db, alice, PaginationOpts(num_items=2, cursor=first.continue_cursor))

    assert [p.content for p in first.page] == ["Post 2", "Post 1"]
    assert [p.content for p in second.page] == ["Post 0"]
    assert second.is_done
