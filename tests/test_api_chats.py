"""
Tests for backend.api.chats and backend.api.share: chat REST endpoints.

Covers:
  - List / get / rename / delete with owner scoping
  - Share, re-share (same shareId) and unshare
  - Public shared view
"""

from tests.conftest import BOB_TOKEN, auth_headers


def _chat_with_messages(store, user_id="alice", title="Bus to Brighton"):
    chat = store.create_chat(user_id, title=title)
    store.add_message(user_id, chat.id, "user", "When does the ski bus leave?")
    store.add_message(user_id, chat.id, "assistant", "Route 953 leaves at 7:15.")
    return chat


def test_list_requires_auth(api_client):
    response = api_client.get("/chats")

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_list_returns_only_callers_chats_most_recent_first(api_client, store):
    older = store.create_chat("alice", title="older")
    newer = store.create_chat("alice", title="newer")
    store.create_chat("bob", title="bob's")
    store.touch("alice", newer.id)

    response = api_client.get("/chats", headers=auth_headers())

    assert response.status_code == 200
    assert [c["id"] for c in response.json()] == [newer.id, older.id]


def test_get_chat_includes_ordered_messages(api_client, store):
    chat = _chat_with_messages(store)

    response = api_client.get(f"/chats/{chat.id}", headers=auth_headers())

    data = response.json()
    assert response.status_code == 200
    assert data["title"] == "Bus to Brighton"
    assert [m["role"] for m in data["messages"]] == ["user", "assistant"]


def test_get_other_users_chat_is_not_found(api_client, store):
    chat = _chat_with_messages(store)

    response = api_client.get(f"/chats/{chat.id}", headers=auth_headers(BOB_TOKEN))

    assert response.status_code == 404
    assert response.json() == {"error": "Chat not found"}


def test_patch_renames_and_bumps_updated_at(api_client, store):
    chat = store.create_chat("alice")

    response = api_client.patch(
        f"/chats/{chat.id}", json={"title": "Powder day plan"}, headers=auth_headers()
    )

    data = response.json()
    assert response.status_code == 200
    assert data["title"] == "Powder day plan"
    assert data["updated_at"] >= chat.updated_at


def test_patch_rejects_empty_title(api_client, store):
    chat = store.create_chat("alice")

    response = api_client.patch(f"/chats/{chat.id}", json={"title": ""}, headers=auth_headers())

    assert response.status_code == 422


def test_patch_unknown_chat_is_not_found(api_client):
    response = api_client.patch("/chats/missing", json={"title": "x"}, headers=auth_headers())

    assert response.status_code == 404


def test_share_round_trip_keeps_share_id(api_client, store):
    chat = _chat_with_messages(store)

    first = api_client.patch(f"/chats/{chat.id}", json={"shared": True}, headers=auth_headers())
    share_id = first.json()["share_id"]
    fetched = api_client.get(f"/chats/{chat.id}", headers=auth_headers())
    second = api_client.patch(f"/chats/{chat.id}", json={"shared": True}, headers=auth_headers())

    assert len(share_id) == 8
    assert fetched.json()["share_id"] == share_id
    assert second.json()["share_id"] == share_id


def test_shared_view_requires_sharing(api_client, store):
    chat = _chat_with_messages(store)
    store.update_chat("alice", chat.id, shared=True, share_id="brighton")
    store.update_chat("alice", chat.id, shared=False)

    hidden = api_client.get("/share/brighton")
    assert hidden.status_code == 404

    api_client.patch(f"/chats/{chat.id}", json={"shared": True}, headers=auth_headers())
    visible = api_client.get("/share/brighton")

    data = visible.json()
    assert visible.status_code == 200
    assert data["title"] == "Bus to Brighton"
    assert [m["content"] for m in data["messages"]] == [
        "When does the ski bus leave?",
        "Route 953 leaves at 7:15.",
    ]
    assert set(data["messages"][0]) == {"role", "content", "createdAt"}


def test_patch_with_share_id_held_by_another_chat_is_bad_request(api_client, store):
    store.update_chat("bob", store.create_chat("bob").id, shared=True, share_id="brighton")
    chat = store.create_chat("alice")

    response = api_client.patch(
        f"/chats/{chat.id}", json={"shared": True, "shareId": "brighton"}, headers=auth_headers()
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Share ID already in use"}


def test_shared_view_is_public(api_client, store):
    chat = _chat_with_messages(store)
    share_id = store.update_chat("alice", chat.id, shared=True).share_id

    response = api_client.get(f"/share/{share_id}")

    assert response.status_code == 200


def test_unknown_share_id_is_not_found(api_client):
    response = api_client.get("/share/nope1234")

    assert response.status_code == 404
    assert response.json() == {"error": "Chat not found"}


def test_delete_removes_chat_and_messages(api_client, store):
    chat = _chat_with_messages(store)

    response = api_client.delete(f"/chats/{chat.id}", headers=auth_headers())

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert store.get_database_stats()["total_messages"] == 0
    assert api_client.get(f"/chats/{chat.id}", headers=auth_headers()).status_code == 404


def test_delete_other_users_chat_is_not_found(api_client, store):
    chat = store.create_chat("alice")

    response = api_client.delete(f"/chats/{chat.id}", headers=auth_headers(BOB_TOKEN))

    assert response.status_code == 404
    assert store.get_chat("alice", chat.id)


def test_health(api_client):
    response = api_client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
