"""
Tests for backend.api.chat: POST /chat-stream.
"""

from tests.conftest import BOB_TOKEN, auth_headers, decode_stream


def test_missing_content_is_bad_request(api_client):
    response = api_client.post("/chat-stream", json={"chatId": None}, headers=auth_headers())

    assert response.status_code == 400
    assert response.text == "Message content is required"


def test_blank_content_is_bad_request_even_for_guests(api_client):
    response = api_client.post("/chat-stream", json={"content": "   ", "guest": True})

    assert response.status_code == 400


def test_unauthenticated_request_is_rejected(api_client, store):
    response = api_client.post("/chat-stream", json={"content": "hello"})

    assert response.status_code == 401
    assert response.text == "Unauthorized"
    assert store.get_database_stats()["total_chats"] == 0


def test_unknown_token_is_rejected(api_client):
    response = api_client.post(
        "/chat-stream", json={"content": "hello"}, headers=auth_headers("bogus")
    )

    assert response.status_code == 401


def test_new_chat_stream(api_client, store):
    response = api_client.post(
        "/chat-stream", json={"content": "When is the next bus?"}, headers=auth_headers()
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.headers["cache-control"] == "no-cache"

    frames = decode_stream(response.content)
    chat_id = frames[0].chat_id
    assert chat_id
    assert "".join(f.content for f in frames if f.content) == "Hello, skier!"
    assert frames[-2].title == "Next Bus Times"
    assert frames[-1].done
    assert response.content.endswith(b"data: [DONE]\n\n")

    messages = store.list_messages("alice", chat_id)
    assert [m.role for m in messages] == ["user", "assistant"]


def test_existing_chat_stream_has_no_control_frames(api_client, store):
    chat = store.create_chat("alice", title="Canyon roads")

    response = api_client.post(
        "/chat-stream",
        json={"chatId": chat.id, "content": "Is the canyon open?"},
        headers=auth_headers(),
    )

    frames = decode_stream(response.content)
    assert all(f.chat_id is None and f.title is None for f in frames)
    assert len(store.list_messages("alice", chat.id)) == 2


def test_other_users_chat_is_not_found(api_client, store):
    chat = store.create_chat("alice")

    response = api_client.post(
        "/chat-stream",
        json={"chatId": chat.id, "content": "let me in"},
        headers=auth_headers(BOB_TOKEN),
    )

    assert response.status_code == 404
    assert store.list_messages("alice", chat.id) == []


def test_guest_stream_persists_nothing(api_client, store, model):
    response = api_client.post("/chat-stream", json={"content": "hi there", "guest": True})

    assert response.status_code == 200
    frames = decode_stream(response.content)
    assert all(f.chat_id is None and f.title is None for f in frames)
    assert frames[-1].done
    assert store.get_database_stats()["total_messages"] == 0
    assert model.title_calls == []


def test_model_failure_is_reported_in_band(api_client, model):
    model.fail_after = 0

    response = api_client.post("/chat-stream", json={"content": "hello"}, headers=auth_headers())

    assert response.status_code == 200
    frames = decode_stream(response.content)
    assert frames[-2].error == "Stream error"
    assert frames[-1].done


def test_storage_failure_before_streaming_is_generic_500(api_client, store, monkeypatch):
    def broken_create_chat(user_id, title=None):
        raise RuntimeError("database is locked")

    monkeypatch.setattr(store, "create_chat", broken_create_chat)

    response = api_client.post("/chat-stream", json={"content": "hello"}, headers=auth_headers())

    assert response.status_code == 500
    assert response.text == "Internal Server Error"
    assert "locked" not in response.text
