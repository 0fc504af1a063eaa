from services.ingestion.IngestionService import IngestionService
from shared.exceptions import NotFoundError, ValidationError
from shared.helper.HelperConfig import HelperConfig
from shared.models.bot import Bot, BotPatch, ContextFile, FileType, IngestionStatus
from shared.storage.FileStorage import FileStorage, classify_upload
from shared.store.ChatStoreInterface import ChatStoreInterface


class BotService:
    """Bot CRUD and context file management, always scoped to the owner."""

    def __init__(
        self,
        helper_config: HelperConfig,
        store: ChatStoreInterface,
        ingestion: IngestionService,
        storage: FileStorage,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._store = store
        self._ingestion = ingestion
        self._storage = storage

    ##########################################
    ################### BOTS #################
    ##########################################

    async def do_list(self, owner_id: str) -> list[Bot]:
        return await self._store.list_bots(owner_id)

    async def do_get(self, owner_id: str, bot_id: str) -> Bot:
        bot = await self._store.find_bot(bot_id, owner_id)
        if bot is None:
            raise NotFoundError("Bot not found")
        return bot

    async def do_create(self, owner_id: str, name: str, description: str, initial_context: str) -> Bot:
        if not name or not description or not initial_context:
            raise ValidationError("Name, description, and initial_context are required")
        bot = await self._store.create_bot(
            Bot(owner_id=owner_id, name=name, description=description, initial_context=initial_context)
        )
        self.logging.info("Created bot %s (%s) for user %s.", bot.id, bot.name, owner_id)
        return bot

    async def do_update(
        self,
        owner_id: str,
        bot_id: str,
        name: str | None = None,
        description: str | None = None,
        initial_context: str | None = None,
        context_file_ids: list[str] | None = None,
    ) -> Bot:
        """Apply a partial update.

        Empty strings leave a field unchanged. context_file_ids reorders or
        drops the bot's existing files; dropped files lose their index
        entries and stored bytes.

        Raises:
            NotFoundError: If the bot does not exist or is not owned by owner_id.
            ValidationError: If context_file_ids names a file the bot does not have.
        """
        if context_file_ids is not None:
            current = await self.do_get(owner_id, bot_id)
            known = {context_file.id for context_file in current.context_files}
            unknown = [file_id for file_id in context_file_ids if file_id not in known]
            if unknown:
                raise ValidationError(f"Unknown context file id(s): {', '.join(unknown)}")

        patch = BotPatch(
            name=name, description=description, initial_context=initial_context, context_file_ids=context_file_ids
        )
        result = await self._store.update_bot(bot_id, owner_id, patch)
        if result is None:
            raise NotFoundError("Bot not found")

        for context_file in result.dropped_files:
            await self._discard_file(context_file)
        return result.bot

    async def do_delete(self, owner_id: str, bot_id: str) -> Bot:
        """Delete a bot together with its conversations, index entries and stored files."""
        bot = await self._store.delete_bot(bot_id, owner_id)
        if bot is None:
            raise NotFoundError("Bot not found")

        deleted_messages = await self._store.delete_bot_messages(bot_id)
        await self._ingestion.do_delete_bot_vectors(bot)
        for context_file in bot.context_files:
            await self._storage.do_delete(context_file.file_path)
        self.logging.info(
            "Deleted bot %s with %d messages and %d files.", bot_id, deleted_messages, len(bot.context_files)
        )
        return bot

    ##########################################
    ############### CONTEXT FILES ############
    ##########################################

    async def do_upload(self, owner_id: str, bot_id: str, file_name: str, mime_type: str, data: bytes) -> ContextFile:
        """Store an upload, attach it to the bot and start its ingestion in the background.

        Raises:
            ValidationError: If the file is too large or of an unsupported type.
            NotFoundError: If the bot does not exist or is not owned by owner_id.
        """
        file_type = classify_upload(mime_type, len(data))
        await self.do_get(owner_id, bot_id)

        url = await self._storage.do_save(file_name, data)
        context_file = ContextFile(
            file_name=file_name,
            file_path=url,
            file_type=file_type,
            file_size=len(data),
            mime_type=mime_type,
            ingestion_status=IngestionStatus.SKIPPED if file_type == FileType.PHOTO else IngestionStatus.PENDING,
        )
        if await self._store.add_context_file(bot_id, owner_id, context_file) is None:
            # bot deleted between lookup and attach
            await self._storage.do_delete(url)
            raise NotFoundError("Bot not found")

        self._ingestion.schedule(bot_id, context_file)
        self.logging.info("Attached %s file '%s' to bot %s.", file_type.value, file_name, bot_id)
        return context_file

    async def do_remove_file(self, owner_id: str, bot_id: str, file_id: str) -> ContextFile:
        removed = await self._store.remove_context_file(bot_id, owner_id, file_id)
        if removed is None:
            raise NotFoundError("File not found")
        await self._discard_file(removed)
        return removed

    async def _discard_file(self, context_file: ContextFile) -> None:
        await self._ingestion.do_delete_file_vectors(context_file)
        await self._storage.do_delete(context_file.file_path)
