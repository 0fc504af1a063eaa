from shared.helper.HelperConfig import HelperConfig
from shared.models.bot import Bot, BotPatch, BotUpdate, ChatMessage, ContextFile, utc_now
from shared.store.ChatStoreInterface import ChatStoreInterface


class ChatStoreMemory(ChatStoreInterface):
    """Process-local store, lost on restart. Used by tests and STORE_ENGINE=memory.

    Returns deep copies so callers never mutate stored records. Messages are
    kept per conversation, in insertion order.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._bots: dict[str, Bot] = {}
        self._conversations: dict[tuple[str, str], list[ChatMessage]] = {}

    def _owned(self, bot_id: str, owner_id: str) -> Bot | None:
        bot = self._bots.get(bot_id)
        if bot is None or bot.owner_id != owner_id:
            return None
        return bot

    ##########################################
    ################### BOTS #################
    ##########################################

    async def find_bot(self, bot_id: str, owner_id: str) -> Bot | None:
        bot = self._owned(bot_id, owner_id)
        return bot.model_copy(deep=True) if bot else None

    async def list_bots(self, owner_id: str) -> list[Bot]:
        bots = [bot for bot in self._bots.values() if bot.owner_id == owner_id]
        bots.sort(key=lambda bot: bot.created_at, reverse=True)
        return [bot.model_copy(deep=True) for bot in bots]

    async def create_bot(self, bot: Bot) -> Bot:
        self._bots[bot.id] = bot.model_copy(deep=True)
        return bot.model_copy(deep=True)

    async def update_bot(self, bot_id: str, owner_id: str, patch: BotPatch) -> BotUpdate | None:
        bot = self._owned(bot_id, owner_id)
        if bot is None:
            return None
        updated = bot.model_copy(update={**patch.to_update(), "updated_at": utc_now()}, deep=True)
        dropped = updated.reorder_files(patch.context_file_ids) if patch.context_file_ids is not None else []
        self._bots[bot_id] = updated
        return BotUpdate(bot=updated.model_copy(deep=True), dropped_files=dropped)

    async def delete_bot(self, bot_id: str, owner_id: str) -> Bot | None:
        bot = self._owned(bot_id, owner_id)
        if bot is None:
            return None
        del self._bots[bot_id]
        return bot

    ##########################################
    ############### CONTEXT FILES ############
    ##########################################

    async def add_context_file(self, bot_id: str, owner_id: str, context_file: ContextFile) -> Bot | None:
        bot = self._owned(bot_id, owner_id)
        if bot is None:
            return None
        bot.context_files.append(context_file.model_copy(deep=True))
        bot.updated_at = utc_now()
        return bot.model_copy(deep=True)

    async def update_context_file(self, bot_id: str, context_file: ContextFile) -> ContextFile | None:
        bot = self._bots.get(bot_id)
        if bot is None:
            return None
        for index, existing in enumerate(bot.context_files):
            if existing.id == context_file.id:
                bot.context_files[index] = context_file.model_copy(deep=True)
                return context_file
        return None

    async def remove_context_file(self, bot_id: str, owner_id: str, file_id: str) -> ContextFile | None:
        bot = self._owned(bot_id, owner_id)
        if bot is None:
            return None
        for index, existing in enumerate(bot.context_files):
            if existing.id == file_id:
                bot.updated_at = utc_now()
                return bot.context_files.pop(index)
        return None

    ##########################################
    ############### CHAT MESSAGES ############
    ##########################################

    async def create_chat_message(self, message: ChatMessage) -> ChatMessage:
        self._conversations.setdefault((message.user_id, message.bot_id), []).append(message.model_copy(deep=True))
        return message

    async def list_chat_messages(self, user_id: str, bot_id: str) -> list[ChatMessage]:
        # sorted() is stable, equal timestamps keep insertion order
        conversation = self._conversations.get((user_id, bot_id), [])
        return [m.model_copy(deep=True) for m in sorted(conversation, key=lambda m: m.timestamp)]

    async def delete_chat_messages(self, user_id: str, bot_id: str) -> int:
        return len(self._conversations.pop((user_id, bot_id), []))

    async def delete_bot_messages(self, bot_id: str) -> int:
        keys = [key for key in self._conversations if key[1] == bot_id]
        return sum(len(self._conversations.pop(key)) for key in keys)
