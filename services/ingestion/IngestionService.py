"""Ingestion service.

Turns an uploaded document into searchable vector entries: extract text,
split it into overlapping chunks, embed all chunks in one batch and upsert
every chunk with a valid embedding into the vector index, tagged with the
owning bot's id.
"""

import asyncio
import uuid

from services.ingestion.TextChunker import TextChunker
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.index.IndexClientInterface import IndexClientInterface
from shared.clients.index.models.VectorEntry import VectorEntry, VectorMetadata
from shared.exceptions import AppException, ConfigurationError, IndexWriteError
from shared.extract.TextExtractor import TextExtractor
from shared.helper.HelperConfig import HelperConfig
from shared.models.bot import Bot, ContextFile, FileType, IngestionStatus
from shared.models.ingestion import IngestionReport
from shared.storage.FileStorage import FileStorage
from shared.store.ChatStoreInterface import ChatStoreInterface


class IngestionService:
    """Orchestrates the ingestion pipeline and the compensating deletes of vector entries."""

    def __init__(
        self,
        helper_config: HelperConfig,
        embed_client: EmbedClientInterface | None,
        index_client: IndexClientInterface | None,
        extractor: TextExtractor,
        storage: FileStorage | None = None,
        store: ChatStoreInterface | None = None,
        chunker: TextChunker | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._embed_client = embed_client
        self._index_client = index_client
        self._extractor = extractor
        self._storage = storage
        self._store = store
        self._chunker = chunker or TextChunker(
            chunk_size=helper_config.get_int_val("CHUNK_SIZE", default=1000),
            chunk_overlap=helper_config.get_int_val("CHUNK_OVERLAP", default=200),
        )
        self._tasks: set[asyncio.Task] = set()

    ##########################################
    ############### CORE INGEST ##############
    ##########################################

    async def do_ingest(self, source: str, bot_id: str, file_id: str | None = None) -> IngestionReport:
        """Ingest a single document for a bot.

        Args:
            source (str): Storage URL of the document (or a filesystem path when no storage is configured).
            bot_id (str): The owning bot, stored on every entry.
            file_id (str | None): The ContextFile the document belongs to.

        Returns:
            IngestionReport: Counts and ids of what was written.

        Raises:
            ConfigurationError: If the embedding or index client is not configured.
            ExtractionError: If the document is empty or unreadable. Nothing is written.
            EmbeddingServiceError: If the batch embedding call fails. Nothing is written.
        """
        if self._embed_client is None or self._index_client is None:
            raise ConfigurationError(
                "Missing required configuration: embedding and vector index clients must be configured for ingestion."
            )

        path = self._storage.resolve_path(source) if self._storage else source
        text = await self._extractor.do_extract(path)

        chunks = list(self._chunker.split(text))
        report = IngestionReport(bot_id=bot_id, source=source, file_id=file_id, chunks=len(chunks))
        if not chunks:
            self.logging.warning("Document %s produced no chunks. No content indexed.", source)
            return report

        try:
            # batch embed, one logical call for all chunks of this document
            batch = await self._embed_client.do_embed_batch(chunks)
        except Exception as exc:
            self.logging.error("Fatal error during batch embedding of %s: %s", source, exc)
            raise

        for index in batch.failed_indices:
            self.logging.warning(
                "Skipping chunk %d of %s because it produced an empty embedding.", index, source
            )
        report.dropped = len(batch.failed_indices)

        entries = [
            VectorEntry(
                id=str(uuid.uuid4()),
                values=vector,
                metadata=VectorMetadata(
                    bot_id=bot_id,
                    file_id=file_id,
                    source=source,
                    chunk_index=index,
                    page_content=chunks[index],
                ),
            )
            for index, vector in batch.iter_valid()
        ]
        if not entries:
            self.logging.warning("No valid vectors were generated for %s. No content indexed.", source)
            return report

        try:
            report.indexed = await self._index_client.do_upsert(entries)
        except IndexWriteError as exc:
            self.logging.error("Upsert failed for %s (bot %s): %s", source, bot_id, exc.details or exc)
            report.status = IngestionStatus.FAILED
            return report

        report.vector_ids = [entry.id for entry in entries]
        report.status = IngestionStatus.INDEXED
        self.logging.info(
            "Embedded and stored %d of %d chunks from %s for bot %s.",
            report.indexed, report.chunks, source, bot_id,
        )
        return report

    ##########################################
    ############ BACKGROUND TASKS ############
    ##########################################

    def is_ingestible(self, context_file: ContextFile) -> bool:
        """Photos are stored but never ingested."""
        return context_file.file_type != FileType.PHOTO

    def schedule(self, bot_id: str, context_file: ContextFile) -> asyncio.Task | None:
        """Start ingestion of an uploaded file as a fire-and-forget task.

        The caller is never blocked and never sees ingestion errors; they
        are logged and recorded on the stored ContextFile.

        Returns:
            asyncio.Task | None: The started task, None for files that are not ingested.
        """
        if not self.is_ingestible(context_file):
            self.logging.debug("File %s is a %s and is not ingested.", context_file.id, context_file.file_type.value)
            return None
        task = asyncio.create_task(self._run_background(bot_id, context_file))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run_background(self, bot_id: str, context_file: ContextFile) -> IngestionReport | None:
        report: IngestionReport | None = None
        try:
            report = await self.do_ingest(context_file.file_path, bot_id, file_id=context_file.id)
        except AppException as exc:
            self.logging.error(
                "Ingestion of %s for bot %s failed: %s", context_file.file_path, bot_id, exc.message
            )
        except Exception as exc:
            self.logging.exception("Unexpected ingestion error for %s: %s", context_file.file_path, exc)

        updated = context_file.model_copy(
            update={
                "ingestion_status": report.status if report else IngestionStatus.FAILED,
                "vector_ids": report.vector_ids if report else [],
            }
        )
        if self._store is not None:
            stored = await self._store.update_context_file(bot_id, updated)
            if stored is None and updated.vector_ids:
                # file or bot was removed while ingestion ran
                self.logging.info("File %s was removed during ingestion. Deleting its vectors.", context_file.id)
                await self.do_delete_file_vectors(updated)
        return report

    async def close(self) -> None:
        """Cancel ingestion tasks that are still running."""
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    ##########################################
    ########## COMPENSATING DELETES ##########
    ##########################################

    async def do_delete_file_vectors(self, context_file: ContextFile) -> bool:
        """Delete the index entries written for one file. Failures are logged, not raised."""
        if not context_file.vector_ids:
            return True
        if self._index_client is None:
            self.logging.warning("Index client not configured. Vectors of file %s are left behind.", context_file.id)
            return False
        try:
            await self._index_client.do_delete_ids(context_file.vector_ids)
        except IndexWriteError as exc:
            self.logging.error("Deleting vectors of file %s failed: %s", context_file.id, exc.details or exc)
            return False
        self.logging.info("Deleted %d vectors of file %s.", len(context_file.vector_ids), context_file.id)
        return True

    async def do_delete_bot_vectors(self, bot: Bot) -> bool:
        """Delete every index entry of a bot. Failures are logged, not raised."""
        if self._index_client is None:
            if bot.has_documents():
                self.logging.warning("Index client not configured. Vectors of bot %s are left behind.", bot.id)
            return False
        ok = True
        try:
            await self._index_client.do_delete_by_bot(bot.id)
        except IndexWriteError as exc:
            self.logging.error("Deleting vectors of bot %s by filter failed: %s", bot.id, exc.details or exc)
            ok = False
        for context_file in bot.context_files:
            ok = await self.do_delete_file_vectors(context_file) and ok
        return ok
