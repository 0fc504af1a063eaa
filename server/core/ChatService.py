"""Chat orchestration.

One turn: verify ownership -> persist the user message -> retrieve document
context (only for bots with context files) -> assemble the prompt ->
complete -> persist the bot reply. Turns of the same (user, bot)
conversation are serialised.
"""

from server.core.CompletionService import CompletionService
from server.core.ContextAssembler import ContextAssembler
from server.core.ConversationLocks import ConversationLocks
from server.core.RetrievalService import RetrievalService
from shared.exceptions import InternalError, NotFoundError, ValidationError
from shared.helper.HelperConfig import HelperConfig
from shared.models.bot import Bot, ChatMessage, ChatTurn
from shared.store.ChatStoreInterface import ChatStoreInterface


class ChatService:
    def __init__(
        self,
        helper_config: HelperConfig,
        store: ChatStoreInterface,
        retrieval: RetrievalService,
        assembler: ContextAssembler,
        completion: CompletionService,
        locks: ConversationLocks | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._store = store
        self._retrieval = retrieval
        self._assembler = assembler
        self._completion = completion
        self._locks = locks or ConversationLocks()

    ##########################################
    ################ HELPERS #################
    ##########################################

    async def _get_owned_bot(self, user_id: str, bot_id: str) -> Bot:
        """Load the bot, treating a bot owned by someone else like a missing one."""
        try:
            bot = await self._store.find_bot(bot_id, user_id)
        except Exception as exc:
            self.logging.error("Loading bot %s failed: %s", bot_id, exc)
            raise InternalError("Failed to load bot") from exc
        if bot is None:
            raise NotFoundError("Bot not found")
        return bot

    async def _persist(self, message: ChatMessage) -> ChatMessage:
        try:
            return await self._store.create_chat_message(message)
        except Exception as exc:
            self.logging.error("Persisting chat message for bot %s failed: %s", message.bot_id, exc)
            raise InternalError("Failed to send message") from exc

    ##########################################
    ################## TURNS #################
    ##########################################

    async def do_send(self, user_id: str, bot_id: str, message: str) -> ChatTurn:
        """Run one chat turn.

        Retrieval and completion failures never fail the turn: retrieval
        degrades to no context and completion to a fallback reply, which is
        persisted like any other reply.

        Args:
            user_id (str): The authenticated principal.
            bot_id (str): The bot to talk to, must be owned by user_id.
            message (str): The user's message.

        Returns:
            ChatTurn: Both persisted messages.

        Raises:
            ValidationError: If message or bot_id is missing. Nothing is persisted.
            NotFoundError: If the bot does not exist or is not owned by user_id. Nothing is persisted.
            InternalError: If persisting either message fails.
        """
        if not message or not bot_id:
            raise ValidationError("Message and bot_id are required")

        async with self._locks.hold(user_id, bot_id):
            bot = await self._get_owned_bot(user_id, bot_id)

            user_message = await self._persist(
                ChatMessage(user_id=user_id, bot_id=bot_id, message=message, is_user=True)
            )

            retrieved = ""
            if bot.has_documents():
                retrieved = await self._retrieval.retrieve(message, bot_id)

            try:
                stored = await self._store.list_chat_messages(user_id, bot_id)
            except Exception as exc:
                self.logging.error("Loading chat history for bot %s failed: %s", bot_id, exc)
                raise InternalError("Failed to load chat history") from exc
            # the current message goes last, not as part of the history
            history = [entry for entry in stored if entry.id != user_message.id]

            messages = self._assembler.assemble(bot, history, message, retrieved)
            reply = await self._completion.complete(messages)

            bot_message = await self._persist(
                ChatMessage(user_id=user_id, bot_id=bot_id, message=reply, is_user=False)
            )

        self.logging.debug(
            "Chat turn for user %s with bot %s done (%d history messages, context: %s).",
            user_id, bot_id, len(history), bool(retrieved),
        )
        return ChatTurn(user_message=user_message, bot_message=bot_message)

    async def do_history(self, user_id: str, bot_id: str) -> list[ChatMessage]:
        """Return the conversation oldest first."""
        if not bot_id:
            raise ValidationError("bot_id is required")
        await self._get_owned_bot(user_id, bot_id)
        return await self._store.list_chat_messages(user_id, bot_id)

    async def do_clear(self, user_id: str, bot_id: str) -> int:
        """Delete the conversation. Returns the number of deleted messages."""
        if not bot_id:
            raise ValidationError("bot_id is required")
        async with self._locks.hold(user_id, bot_id):
            await self._get_owned_bot(user_id, bot_id)
            deleted = await self._store.delete_chat_messages(user_id, bot_id)
        self.logging.info("Cleared %d messages of user %s with bot %s.", deleted, user_id, bot_id)
        return deleted
