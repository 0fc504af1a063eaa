from abc import ABC, abstractmethod

from shared.models.bot import Bot, BotPatch, BotUpdate, ChatMessage, ContextFile


class ChatStoreInterface(ABC):
    """Persistence contract for bots and chat messages.

    Every bot lookup is scoped by owner: a bot that exists but belongs to
    another user is reported exactly like a missing one (None).
    """

    ##########################################
    ################# LIFECYCLE ##############
    ##########################################

    async def boot(self) -> None:
        """Open connections. Called once at process start."""
        return None

    async def close(self) -> None:
        """Release connections. Called once at shutdown."""
        return None

    ##########################################
    ################### BOTS #################
    ##########################################

    @abstractmethod
    async def find_bot(self, bot_id: str, owner_id: str) -> Bot | None:
        """Return the bot if it exists and is owned by owner_id."""
        pass

    @abstractmethod
    async def list_bots(self, owner_id: str) -> list[Bot]:
        """Return all bots of an owner, newest first."""
        pass

    @abstractmethod
    async def create_bot(self, bot: Bot) -> Bot:
        pass

    @abstractmethod
    async def update_bot(self, bot_id: str, owner_id: str, patch: BotPatch) -> BotUpdate | None:
        """Apply a partial update in one step. Returns None if the bot is not found/owned.

        patch.context_file_ids is applied to the files stored at that moment
        (see Bot.reorder_files); the files it drops are returned in the result.
        """
        pass

    @abstractmethod
    async def delete_bot(self, bot_id: str, owner_id: str) -> Bot | None:
        """Delete the bot. Returns the deleted bot, None if not found/owned."""
        pass

    ##########################################
    ############### CONTEXT FILES ############
    ##########################################

    @abstractmethod
    async def add_context_file(self, bot_id: str, owner_id: str, context_file: ContextFile) -> Bot | None:
        pass

    @abstractmethod
    async def update_context_file(self, bot_id: str, context_file: ContextFile) -> ContextFile | None:
        """Replace a stored context file (matched by id). Returns None if the bot or file is gone."""
        pass

    @abstractmethod
    async def remove_context_file(self, bot_id: str, owner_id: str, file_id: str) -> ContextFile | None:
        """Detach a context file. Returns the removed file, None if not found/owned."""
        pass

    ##########################################
    ############### CHAT MESSAGES ############
    ##########################################

    @abstractmethod
    async def create_chat_message(self, message: ChatMessage) -> ChatMessage:
        pass

    @abstractmethod
    async def list_chat_messages(self, user_id: str, bot_id: str) -> list[ChatMessage]:
        """Return the conversation ordered by timestamp, oldest first."""
        pass

    @abstractmethod
    async def delete_chat_messages(self, user_id: str, bot_id: str) -> int:
        """Delete one conversation. Returns the number of deleted messages."""
        pass

    @abstractmethod
    async def delete_bot_messages(self, bot_id: str) -> int:
        """Delete every conversation of a bot. Returns the number of deleted messages."""
        pass
