import asyncio
from unittest.mock import AsyncMock

import pytest

from server.core.ChatService import ChatService
from server.core.CompletionService import FALLBACK_UNAVAILABLE, CompletionService
from server.core.ContextAssembler import ContextAssembler
from server.core.ConversationLocks import ConversationLocks
from server.core.RetrievalService import CONTEXT_LABEL, RetrievalService
from shared.clients.index.models.VectorEntry import VectorEntry, VectorMetadata
from shared.exceptions import CompletionServiceError, InternalError, NotFoundError, ValidationError
from shared.models.bot import Bot, ContextFile, FileType

NOVA_SYSTEM = "You are Nova. witty assistant\n\nAlways answer in one sentence."


@pytest.fixture
def llm() -> AsyncMock:
    client = AsyncMock()
    client.do_chat.return_value = "Hello!"
    return client


@pytest.fixture
def locks() -> ConversationLocks:
    return ConversationLocks()


@pytest.fixture
def chat(helper_config, store, fake_embed, fake_index, llm, locks) -> ChatService:
    return ChatService(
        helper_config=helper_config,
        store=store,
        retrieval=RetrievalService(helper_config, fake_embed, fake_index),
        assembler=ContextAssembler(helper_config),
        completion=CompletionService(helper_config, llm),
        locks=locks,
    )


@pytest.fixture
async def nova(store) -> Bot:
    return await store.create_bot(Bot(
        owner_id="alice",
        name="Nova",
        description="witty assistant",
        initial_context="Always answer in one sentence.",
    ))


async def test_alice_chats_with_nova(chat, store, nova, llm, fake_embed):
    turn = await chat.do_send("alice", nova.id, "Hi")

    llm.do_chat.assert_awaited_once()
    assert llm.do_chat.await_args.args[0] == [
        {"role": "system", "content": NOVA_SYSTEM},
        {"role": "user", "content": "Hi"},
    ]
    # no context files, no retrieval
    assert fake_embed.calls == []

    assert turn.user_message.message == "Hi" and turn.user_message.is_user
    assert turn.bot_message.message == "Hello!" and not turn.bot_message.is_user
    history = await store.list_chat_messages("alice", nova.id)
    assert [m.id for m in history] == [turn.user_message.id, turn.bot_message.id]


async def test_bob_cannot_chat_with_alices_bot(chat, store, nova, llm):
    with pytest.raises(NotFoundError):
        await chat.do_send("bob", nova.id, "Hi")

    assert await store.list_chat_messages("bob", nova.id) == []
    assert await store.list_chat_messages("alice", nova.id) == []
    llm.do_chat.assert_not_awaited()


async def test_unknown_bot_is_not_found(chat):
    with pytest.raises(NotFoundError):
        await chat.do_send("alice", "missing", "Hi")


@pytest.mark.parametrize("message, bot_id", [("", "b1"), ("Hi", "")])
async def test_missing_fields_are_rejected(chat, store, message, bot_id):
    with pytest.raises(ValidationError):
        await chat.do_send("alice", bot_id, message)
    assert await store.list_chat_messages("alice", bot_id) == []


async def test_completion_failure_still_persists_both_messages(chat, store, nova, llm):
    llm.do_chat.side_effect = CompletionServiceError("Chat completion failed")

    turn = await chat.do_send("alice", nova.id, "Hi")

    assert turn.bot_message.message == FALLBACK_UNAVAILABLE
    assert len(await store.list_chat_messages("alice", nova.id)) == 2


async def test_second_turn_sees_first_turn(chat, nova, llm):
    await chat.do_send("alice", nova.id, "Hi")
    llm.do_chat.return_value = "Fine, thanks."
    await chat.do_send("alice", nova.id, "How are you?")

    messages = llm.do_chat.await_args.args[0]
    assert messages[1:] == [
        {"role": "user", "content": "Hi"},
        {"role": "assistant", "content": "Hello!"},
        {"role": "user", "content": "How are you?"},
    ]


async def test_bot_with_documents_gets_retrieved_context(chat, store, nova, llm, fake_index):
    await store.add_context_file(nova.id, "alice", ContextFile(
        file_name="facts.txt", file_path="/uploads/facts.txt", file_type=FileType.OTHER, file_size=10, mime_type="text/plain",
    ))
    fake_index.entries["v1"] = VectorEntry(
        id="v1", values=[1.0],
        metadata=VectorMetadata(bot_id=nova.id, source="/uploads/facts.txt", chunk_index=0, page_content="Nova was built in 2024."),
    )

    await chat.do_send("alice", nova.id, "When were you built?")

    system = llm.do_chat.await_args.args[0][0]["content"]
    assert system == NOVA_SYSTEM + CONTEXT_LABEL + "Nova was built in 2024."


async def test_retrieval_failure_does_not_fail_the_turn(chat, store, nova, llm, fake_index):
    await store.add_context_file(nova.id, "alice", ContextFile(
        file_name="facts.txt", file_path="/uploads/facts.txt", file_type=FileType.OTHER, file_size=10, mime_type="text/plain",
    ))
    fake_index.fail_query = True

    turn = await chat.do_send("alice", nova.id, "Hi")

    assert turn.bot_message.message == "Hello!"
    assert llm.do_chat.await_args.args[0][0]["content"] == NOVA_SYSTEM


async def test_persistence_failure_aborts_before_completion(chat, store, nova, llm):
    store.create_chat_message = AsyncMock(side_effect=RuntimeError("disk full"))

    with pytest.raises(InternalError):
        await chat.do_send("alice", nova.id, "Hi")
    llm.do_chat.assert_not_awaited()


async def test_turns_of_one_conversation_are_serialised(chat, nova, llm, locks):
    replies = iter(["first reply", "second reply"])

    async def slow_chat(messages, params=None):
        await asyncio.sleep(0.01)
        return next(replies)

    llm.do_chat.side_effect = slow_chat

    await asyncio.gather(
        chat.do_send("alice", nova.id, "one"),
        chat.do_send("alice", nova.id, "two"),
    )

    second_call = llm.do_chat.await_args_list[1].args[0]
    assert [m["content"] for m in second_call[1:]] == ["one", "first reply", "two"]
    assert len(locks) == 0


async def test_history_and_clear(chat, store, nova):
    await chat.do_send("alice", nova.id, "Hi")
    await chat.do_send("alice", nova.id, "Again")

    history = await chat.do_history("alice", nova.id)
    assert [m.message for m in history] == ["Hi", "Hello!", "Again", "Hello!"]

    with pytest.raises(NotFoundError):
        await chat.do_clear("bob", nova.id)

    assert await chat.do_clear("alice", nova.id) == 4
    assert await chat.do_history("alice", nova.id) == []
