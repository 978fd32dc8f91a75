from penpal.modules.auth.services import auth as auth_service

API = "/api/v1"


def test_protected_route_without_token(client):
    response = client.get(f"{API}/friends")

    assert response.status_code == 401
    assert response.json() == {"detail": "Not authenticated", "kind": "unauthenticated"}


def test_invalid_token(client):
    response = client.get(f"{API}/friends", headers={"Authorization": "Bearer nonsense"})

    assert response.status_code == 401
    assert response.json()["kind"] == "unauthenticated"


def test_service_errors_render_kind(client, alice, auth_headers):
    response = client.post(
        f"{API}/friends/requests",
        json={"receiver_id": alice, "request_message": "Hi me"},
        headers=auth_headers(alice),
    )

    assert response.status_code == 422
    assert response.json()["kind"] == "self_reference"


def test_friend_request_conversation_flow(client, alice, bob, auth_headers):
    sent = client.post(
        f"{API}/friends/requests",
        json={"receiver_id": bob, "request_message": "Want to be pen pals?"},
        headers=auth_headers(alice),
    )
    assert sent.status_code == 200

    status = client.get(f"{API}/friends/status/{bob}", headers=auth_headers(alice)).json()
    assert status["status"] == "request_sent"

    received = client.get(f"{API}/friends/requests", headers=auth_headers(bob)).json()
    assert [r["name"] for r in received["page"]] == ["Alice"]
    request_id = received["page"][0]["request_id"]

    accepted = client.post(f"{API}/friends/requests/{request_id}/accept", headers=auth_headers(bob))
    assert accepted.json() == {"message": "Friend request accepted"}

    friends = client.get(f"{API}/friends", headers=auth_headers(alice)).json()
    assert [f["name"] for f in friends["page"]] == ["Bob"]

    group_id = client.post(
        f"{API}/conversations", json={"other_user_id": bob}, headers=auth_headers(alice)
    ).json()["conversation_group_id"]
    message = client.post(
        f"{API}/conversations/{group_id}/messages",
        json={"type": "text", "content": "Hello Bob"},
        headers=auth_headers(alice),
    )
    assert message.status_code == 200

    conversations = client.get(f"{API}/conversations", headers=auth_headers(bob)).json()
    assert conversations["page"][0]["has_unread_messages"] is True
    assert conversations["page"][0]["other_user"]["name"] == "Alice"

    messages = client.get(f"{API}/conversations/{group_id}/messages", headers=auth_headers(bob)).json()
    assert [m["content"] for m in messages["page"]] == ["Hello Bob"]

    client.put(f"{API}/conversations/{group_id}/read", headers=auth_headers(bob))
    conversations = client.get(f"{API}/conversations", headers=auth_headers(bob)).json()
    assert conversations["page"][0]["has_unread_messages"] is False

    unread = client.get(f"{API}/notifications/unread", headers=auth_headers(alice)).json()
    assert unread["has_unread"] is True


def test_post_reaction_flow(client, alice, bob, befriend, auth_headers):
    befriend(alice, bob)
    post_id = client.post(
        f"{API}/posts", json={"content": "A cat", "tags": ["cats"]}, headers=auth_headers(alice)
    ).json()["post_id"]

    reacted = client.post(f"{API}/posts/{post_id}/reactions", json={"emoji": "🐱"}, headers=auth_headers(bob))
    assert reacted.json()["emoji"] == "🐱"

    post = client.get(f"{API}/posts/{post_id}", headers=auth_headers(bob)).json()
    assert post["reactions_count"] == 1
    assert post["user_reaction"] == "🐱"

    removed = client.delete(f"{API}/posts/{post_id}/reactions", headers=auth_headers(bob))
    assert removed.status_code == 200
    again = client.delete(f"{API}/posts/{post_id}/reactions", headers=auth_headers(bob))
    assert again.status_code == 404
    assert again.json()["kind"] == "not_found"

    post = client.get(f"{API}/posts/{post_id}", headers=auth_headers(alice)).json()
    assert post["reactions_count"] == 0


def test_comment_thread_flow(client, alice, bob, befriend, auth_headers):
    befriend(alice, bob)
    post_id = client.post(
        f"{API}/posts", json={"content": "A dog", "tags": ["dogs"]}, headers=auth_headers(alice)
    ).json()["post_id"]

    top = client.post(f"{API}/posts/{post_id}/comments", json={"content": "Cute"}, headers=auth_headers(bob)).json()
    client.post(
        f"{API}/posts/{post_id}/comments",
        json={"content": "Thanks", "reply_parent_id": top["id"]},
        headers=auth_headers(alice),
    )

    deleted = client.delete(f"{API}/posts/{post_id}/comments/{top['id']}", headers=auth_headers(bob))
    assert deleted.status_code == 200
    assert deleted.json() == {"message": "Comment deleted", "count": 2}

    comments = client.get(f"{API}/posts/{post_id}/comments", headers=auth_headers(alice)).json()
    assert comments["page"] == []
    post = client.get(f"{API}/posts/{post_id}", headers=auth_headers(alice)).json()
    assert post["comments_count"] == 0


def test_sign_in_flow(client, monkeypatch):
    monkeypatch.setattr(auth_service, "generate_sign_in_code", lambda: "12345678")

    sent = client.post(f"{API}/auth/sign-in/code", json={"email": "New.User@example.com"})
    assert sent.status_code == 200
    verifier = sent.json()["verifier"]

    bad = client.post(
        f"{API}/auth/sign-in/verify",
        json={"email": "new.user@example.com", "code": "00000000", "verifier": verifier},
    )
    assert bad.status_code == 401

    tokens = client.post(
        f"{API}/auth/sign-in/verify",
        json={"email": "new.user@example.com", "code": "12345678", "verifier": verifier},
    ).json()

    me = client.get(
        f"{API}/auth/validate-token", headers={"Authorization": f"Bearer {tokens['access_token']}"}
    ).json()
    assert me["email"] == "new.user@example.com"
    assert me["has_profile"] is False


def test_page_size_is_bounded(client, alice, auth_headers):
    response = client.get(f"{API}/notifications?num_items=500", headers=auth_headers(alice))

    assert response.status_code == 422
