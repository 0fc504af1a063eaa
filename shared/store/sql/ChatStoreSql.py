import asyncio
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator

from sqlalchemy import delete, select
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from shared.helper.HelperConfig import HelperConfig
from shared.models.bot import Bot, BotPatch, BotUpdate, ChatMessage, ContextFile, utc_now
from shared.store.ChatStoreInterface import ChatStoreInterface
from shared.store.sql.models import Base, BotRow, ChatMessageRow


def _aware(value: datetime) -> datetime:
    # sqlite hands back naive datetimes, everything is stored in UTC
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _to_bot(row: BotRow) -> Bot:
    return Bot(
        id=row.id,
        owner_id=row.owner_id,
        name=row.name,
        description=row.description,
        initial_context=row.initial_context,
        context_files=[ContextFile.model_validate(item) for item in row.context_files or []],
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


def _write_bot(row: BotRow, bot: Bot) -> None:
    row.name = bot.name
    row.description = bot.description
    row.initial_context = bot.initial_context
    # a new list object, JSON columns do not track in-place changes
    row.context_files = [context_file.model_dump(mode="json") for context_file in bot.context_files]
    row.updated_at = bot.updated_at


def _to_message(row: ChatMessageRow) -> ChatMessage:
    return ChatMessage(
        id=row.id,
        user_id=row.user_id,
        bot_id=row.bot_id,
        message=row.message,
        is_user=row.is_user,
        timestamp=_aware(row.timestamp),
    )


class ChatStoreSql(ChatStoreInterface):
    """Durable store on SQLAlchemy async.

    STORE_SQL_URL selects the database, e.g. postgresql+asyncpg://user:pw@host/db.
    The default is a SQLite file under $ROOT_DIR/data. Tables are created on boot.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        default_path = os.path.join(os.getenv("ROOT_DIR", os.getcwd()), "data", "persona_bots.db")
        self.url = helper_config.get_string_val("STORE_SQL_URL", default=f"sqlite+aiosqlite:///{default_path}")
        self.echo = helper_config.get_bool_val("STORE_SQL_ECHO", default=False)
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None
        # serialises read-modify-write of a bot's context file list
        self._write_lock = asyncio.Lock()

    ##########################################
    ################# LIFECYCLE ##############
    ##########################################

    async def boot(self) -> None:
        url = make_url(self.url)
        if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
            os.makedirs(os.path.dirname(os.path.abspath(url.database)), exist_ok=True)

        self._engine = create_async_engine(url, echo=self.echo, pool_pre_ping=True)
        self._session_factory = async_sessionmaker(bind=self._engine, expire_on_commit=False, autoflush=False)
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self.logging.info("Chat store connected to %s.", url.render_as_string(hide_password=True))

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        """Session committed on success and rolled back on any error."""
        if self._session_factory is None:
            raise RuntimeError("ChatStoreSql is not booted. Call boot() before using the store.")
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    @staticmethod
    async def _owned_row(session: AsyncSession, bot_id: str, owner_id: str, lock: bool = False) -> BotRow | None:
        stmt = select(BotRow).where(BotRow.id == bot_id, BotRow.owner_id == owner_id)
        if lock:
            stmt = stmt.with_for_update()
        return (await session.execute(stmt)).scalar_one_or_none()

    ##########################################
    ################### BOTS #################
    ##########################################

    async def find_bot(self, bot_id: str, owner_id: str) -> Bot | None:
        async with self._session() as session:
            row = await self._owned_row(session, bot_id, owner_id)
            return _to_bot(row) if row else None

    async def list_bots(self, owner_id: str) -> list[Bot]:
        async with self._session() as session:
            stmt = select(BotRow).where(BotRow.owner_id == owner_id).order_by(BotRow.created_at.desc())
            return [_to_bot(row) for row in (await session.execute(stmt)).scalars().all()]

    async def create_bot(self, bot: Bot) -> Bot:
        async with self._session() as session:
            row = BotRow(id=bot.id, owner_id=bot.owner_id, created_at=bot.created_at)
            _write_bot(row, bot)
            session.add(row)
        return bot.model_copy(deep=True)

    async def update_bot(self, bot_id: str, owner_id: str, patch: BotPatch) -> BotUpdate | None:
        async with self._write_lock, self._session() as session:
            row = await self._owned_row(session, bot_id, owner_id, lock=True)
            if row is None:
                return None
            bot = _to_bot(row).model_copy(update={**patch.to_update(), "updated_at": utc_now()})
            dropped = bot.reorder_files(patch.context_file_ids) if patch.context_file_ids is not None else []
            _write_bot(row, bot)
        return BotUpdate(bot=bot, dropped_files=dropped)

    async def delete_bot(self, bot_id: str, owner_id: str) -> Bot | None:
        async with self._write_lock, self._session() as session:
            row = await self._owned_row(session, bot_id, owner_id, lock=True)
            if row is None:
                return None
            bot = _to_bot(row)
            await session.delete(row)
        return bot

    ##########################################
    ############### CONTEXT FILES ############
    ##########################################

    async def add_context_file(self, bot_id: str, owner_id: str, context_file: ContextFile) -> Bot | None:
        async with self._write_lock, self._session() as session:
            row = await self._owned_row(session, bot_id, owner_id, lock=True)
            if row is None:
                return None
            bot = _to_bot(row)
            bot.context_files.append(context_file)
            bot.updated_at = utc_now()
            _write_bot(row, bot)
        return bot

    async def update_context_file(self, bot_id: str, context_file: ContextFile) -> ContextFile | None:
        async with self._write_lock, self._session() as session:
            stmt = select(BotRow).where(BotRow.id == bot_id).with_for_update()
            row = (await session.execute(stmt)).scalar_one_or_none()
            if row is None:
                return None
            bot = _to_bot(row)
            for index, existing in enumerate(bot.context_files):
                if existing.id == context_file.id:
                    # updated_at is kept, ingestion results are not an owner edit
                    bot.context_files[index] = context_file
                    _write_bot(row, bot)
                    return context_file
        return None

    async def remove_context_file(self, bot_id: str, owner_id: str, file_id: str) -> ContextFile | None:
        async with self._write_lock, self._session() as session:
            row = await self._owned_row(session, bot_id, owner_id, lock=True)
            if row is None:
                return None
            bot = _to_bot(row)
            for index, existing in enumerate(bot.context_files):
                if existing.id == file_id:
                    removed = bot.context_files.pop(index)
                    bot.updated_at = utc_now()
                    _write_bot(row, bot)
                    return removed
        return None

    ##########################################
    ############### CHAT MESSAGES ############
    ##########################################

    async def create_chat_message(self, message: ChatMessage) -> ChatMessage:
        async with self._session() as session:
            session.add(ChatMessageRow(
                id=message.id,
                user_id=message.user_id,
                bot_id=message.bot_id,
                message=message.message,
                is_user=message.is_user,
                timestamp=message.timestamp,
            ))
        return message

    async def list_chat_messages(self, user_id: str, bot_id: str) -> list[ChatMessage]:
        async with self._session() as session:
            stmt = (
                select(ChatMessageRow)
                .where(ChatMessageRow.user_id == user_id, ChatMessageRow.bot_id == bot_id)
                .order_by(ChatMessageRow.timestamp, ChatMessageRow.seq)
            )
            return [_to_message(row) for row in (await session.execute(stmt)).scalars().all()]

    async def delete_chat_messages(self, user_id: str, bot_id: str) -> int:
        async with self._session() as session:
            result = await session.execute(
                delete(ChatMessageRow).where(ChatMessageRow.user_id == user_id, ChatMessageRow.bot_id == bot_id)
            )
            return result.rowcount or 0

    async def delete_bot_messages(self, bot_id: str) -> int:
        async with self._session() as session:
            result = await session.execute(delete(ChatMessageRow).where(ChatMessageRow.bot_id == bot_id))
            return result.rowcount or 0
