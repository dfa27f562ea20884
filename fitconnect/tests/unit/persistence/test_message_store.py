"""Tests for the in-memory MessageStore."""

import pytest

from fitconnect.models import Message, MessageType
from fitconnect.persistence import MessageStore


async def _seed(store: MessageStore, *pairs: tuple[str, str, str]) -> list[Message]:
    created = []
    for sender, recipient, text in pairs:
        created.append(await store.create_message(Message(sender_id=sender, recipient_id=recipient, message=text)))
    return created


class TestConversation:
    @pytest.mark.asyncio
    async def test_conversation_is_newest_first_and_paged(self, message_store) -> None:
        await _seed(
            message_store,
            ("t1", "c1", "one"),
            ("c1", "t1", "two"),
            ("t2", "c2", "other thread"),
            ("t1", "c1", "three"),
        )
        page, total = await message_store.get_conversation("c1", "t1", limit=2, skip=0)
        assert total == 3
        assert [m.message for m in page] == ["three", "two"]

        page, _ = await message_store.get_conversation("t1", "c1", limit=2, skip=2)
        assert [m.message for m in page] == ["one"]

    @pytest.mark.asyncio
    async def test_get_message(self, message_store) -> None:
        (message,) = await _seed(message_store, ("t1", "c1", "x"))
        assert await message_store.get_message(message.id) == message
        assert await message_store.get_message("missing") is None
        assert await message_store.count() == 1


class TestReadState:
    @pytest.mark.asyncio
    async def test_mark_conversation_read_only_touches_incoming(self, message_store) -> None:
        await _seed(message_store, ("t1", "c1", "a"), ("t1", "c1", "b"), ("c1", "t1", "c"))
        assert await message_store.mark_conversation_read("c1", "t1") == 2
        assert await message_store.unread_count("c1") == 0
        assert await message_store.unread_count("t1") == 1

    @pytest.mark.asyncio
    async def test_read_is_monotonic(self, message_store) -> None:
        (message,) = await _seed(message_store, ("t1", "c1", "a"))
        first = await message_store.mark_read(message.id, "c1")
        assert first.is_read and first.read_at is not None

        again = await message_store.mark_read(message.id, "c1")
        assert again.read_at == first.read_at
        assert await message_store.mark_conversation_read("c1", "t1") == 0

        page, _ = await message_store.get_conversation("c1", "t1")
        assert page[0].is_read is True

    @pytest.mark.asyncio
    async def test_mark_read_requires_recipient(self, message_store) -> None:
        (message,) = await _seed(message_store, ("t1", "c1", "a"))
        assert await message_store.mark_read(message.id, "t1") is None
        assert await message_store.mark_read("missing", "c1") is None
        assert (await message_store.get_message(message.id)).is_read is False

    @pytest.mark.asyncio
    async def test_unread_count_by_sender(self, message_store) -> None:
        await _seed(message_store, ("t1", "c1", "a"), ("t2", "c1", "b"), ("t1", "c1", "c"))
        assert await message_store.unread_count("c1") == 3
        assert await message_store.unread_count("c1", "t1") == 2


class TestConversationList:
    @pytest.mark.asyncio
    async def test_grouped_by_counterpart_newest_first(self, message_store) -> None:
        await _seed(
            message_store,
            ("t1", "c1", "old"),
            ("c1", "t1", "reply"),
            ("t1", "c3", "to c3"),
        )
        summaries = await message_store.list_conversations("t1")
        assert [s.user_id for s in summaries] == ["c3", "c1"]
        c1 = summaries[1]
        assert c1.first_name == "Diogo"
        assert c1.last_message.message == "reply"
        assert c1.unread_count == 1

    @pytest.mark.asyncio
    async def test_unknown_counterparts_skipped(self, message_store) -> None:
        await _seed(message_store, ("ghost", "c1", "boo"), ("t1", "c1", "hi"))
        summaries = await message_store.list_conversations("c1")
        assert [s.user_id for s in summaries] == ["t1"]
        assert summaries[0].to_api()["lastMessage"]["type"] == MessageType.CHAT.value

    @pytest.mark.asyncio
    async def test_without_directory_keeps_everything(self) -> None:
        store = MessageStore()
        await _seed(store, ("ghost", "c1", "boo"))
        summaries = await store.list_conversations("c1")
        assert [s.user_id for s in summaries] == ["ghost"]
        assert summaries[0].username == ""
