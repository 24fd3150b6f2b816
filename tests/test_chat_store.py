"""
Tests for src.storage.chat_store: owner scoping, ordering, sharing and cascade.
"""

import pytest

from src.core.errors import BadRequest, NotFound, Unauthorized
from src.storage.chat_store import ChatStore


def test_create_chat_uses_placeholder_title(store):
    chat = store.create_chat("alice")

    assert chat.title == "New Chat"
    assert chat.user_id == "alice"
    assert not chat.shared
    assert chat.share_id is None


def test_operations_require_identity(store):
    with pytest.raises(Unauthorized):
        store.create_chat(None)
    with pytest.raises(Unauthorized):
        store.list_chats("")


def test_other_users_chat_is_not_found(store):
    chat = store.create_chat("alice")

    with pytest.raises(NotFound):
        store.get_chat("bob", chat.id)
    with pytest.raises(NotFound):
        store.add_message("bob", chat.id, "user", "hi")
    with pytest.raises(NotFound):
        store.update_chat("bob", chat.id, title="mine now")
    with pytest.raises(NotFound):
        store.delete_chat("bob", chat.id)


def test_messages_are_ordered_by_creation(store):
    chat = store.create_chat("alice")
    for index in range(5):
        store.add_message("alice", chat.id, "user" if index % 2 == 0 else "assistant", str(index))

    messages = store.list_messages("alice", chat.id)

    assert [m.content for m in messages] == ["0", "1", "2", "3", "4"]


def test_invalid_role_rejected(store):
    chat = store.create_chat("alice")
    with pytest.raises(ValueError):
        store.add_message("alice", chat.id, "system", "nope")


def test_list_chats_most_recent_first(store):
    first = store.create_chat("alice", title="first")
    second = store.create_chat("alice", title="second")
    store.create_chat("bob", title="not alice's")

    store.touch("alice", first.id)
    chats = store.list_chats("alice")

    assert [c.id for c in chats] == [first.id, second.id]


def test_update_title_bumps_updated_at(store):
    chat = store.create_chat("alice")

    updated = store.update_title("alice", chat.id, "Powder report")

    assert updated.title == "Powder report"
    assert updated.updated_at >= chat.updated_at
    assert store.get_chat("alice", chat.id).title == "Powder report"


def test_sharing_twice_keeps_share_id(store):
    chat = store.create_chat("alice")

    shared = store.update_chat("alice", chat.id, shared=True)
    again = store.update_chat("alice", chat.id, shared=True)

    assert shared.share_id is not None
    assert len(shared.share_id) == 8
    assert again.share_id == shared.share_id


def test_unshare_hides_chat_and_reshare_restores_link(store):
    chat = store.create_chat("alice")
    share_id = store.update_chat("alice", chat.id, shared=True).share_id

    store.update_chat("alice", chat.id, shared=False)
    with pytest.raises(NotFound):
        store.get_shared_chat(share_id)

    restored = store.update_chat("alice", chat.id, shared=True)
    assert restored.share_id == share_id


def test_explicit_share_id_is_stored(store):
    chat = store.create_chat("alice")

    updated = store.update_chat("alice", chat.id, shared=True, share_id="slopes01")

    assert updated.share_id == "slopes01"


def test_share_id_taken_by_another_chat_is_rejected(store):
    first = store.create_chat("alice")
    second = store.create_chat("alice")
    store.update_chat("alice", first.id, shared=True, share_id="slopes01")

    with pytest.raises(BadRequest):
        store.update_chat("alice", second.id, shared=True, share_id="slopes01")

    assert store.get_chat("alice", second.id).share_id is None
    assert store.update_chat("alice", first.id, shared=True, share_id="slopes01").share_id == "slopes01"


def test_get_shared_chat_returns_messages_in_order(store):
    chat = store.create_chat("alice", title="Lift lines")
    store.add_message("alice", chat.id, "user", "q")
    store.add_message("alice", chat.id, "assistant", "a")
    share_id = store.update_chat("alice", chat.id, shared=True).share_id

    shared_chat, messages = store.get_shared_chat(share_id)

    assert shared_chat.title == "Lift lines"
    assert [(m.role, m.content) for m in messages] == [("user", "q"), ("assistant", "a")]


def test_delete_cascades_messages(store):
    chat = store.create_chat("alice")
    store.add_message("alice", chat.id, "user", "hello")

    store.delete_chat("alice", chat.id)

    assert store.get_database_stats()["total_messages"] == 0
    with pytest.raises(NotFound):
        store.get_chat("alice", chat.id)


def test_file_database_persists_between_instances(tmp_path):
    path = tmp_path / "chat-data" / "snowbasin.db"
    first = ChatStore(path)
    chat = first.create_chat("alice", title="Keep me")
    first.close()

    second = ChatStore(path)
    try:
        assert second.get_chat("alice", chat.id).title == "Keep me"
    finally:
        second.close()
