import pytest

from services.ingestion.IngestionService import IngestionService
from services.ingestion.TextChunker import TextChunker
from shared.exceptions import ConfigurationError, EmbeddingServiceError, ExtractionError
from shared.extract.TextExtractor import TextExtractor
from shared.models.bot import Bot, ContextFile, FileType, IngestionStatus
from shared.storage.FileStorage import FileStorage

DOCUMENT = "\n\n".join(
    f"Paragraph {i}. The lighthouse keeper logs the weather every morning and every night." for i in range(12)
)


@pytest.fixture
def document(tmp_path) -> str:
    path = tmp_path / "handbook.txt"
    path.write_text(DOCUMENT, encoding="utf-8")
    return str(path)


@pytest.fixture
def service(helper_config, fake_embed, fake_index) -> IngestionService:
    return IngestionService(
        helper_config=helper_config,
        embed_client=fake_embed,
        index_client=fake_index,
        extractor=TextExtractor(helper_config=helper_config),
        chunker=TextChunker(chunk_size=200, chunk_overlap=40),
    )


async def test_ingest_writes_one_entry_per_chunk(service, document, fake_embed, fake_index):
    report = await service.do_ingest(document, "b1", file_id="f1")

    assert report.status == IngestionStatus.INDEXED
    assert report.chunks > 1
    assert report.indexed == report.chunks
    assert report.dropped == 0
    assert len(fake_embed.calls) == 1
    assert fake_index.upserts == 1
    entries = fake_index.for_bot("b1")
    assert sorted(entry.id for entry in entries) == sorted(report.vector_ids)
    assert all(entry.metadata.file_id == "f1" and entry.metadata.source == document for entry in entries)
    assert [entry.metadata.chunk_index for entry in entries] == list(range(report.chunks))


async def test_reingest_duplicates_entries(service, document, fake_index):
    first = await service.do_ingest(document, "b1")
    second = await service.do_ingest(document, "b1")

    assert len(fake_index.for_bot("b1")) == first.indexed + second.indexed
    assert set(first.vector_ids).isdisjoint(second.vector_ids)


async def test_chunks_without_vector_are_dropped(service, document, fake_embed, fake_index):
    fake_embed.fail_indices = {1}

    report = await service.do_ingest(document, "b1")

    assert report.dropped == 1
    assert report.indexed == report.chunks - 1
    assert 1 not in [entry.metadata.chunk_index for entry in fake_index.for_bot("b1")]


async def test_no_valid_vectors_means_no_upsert(service, document, fake_embed, fake_index):
    fake_embed.fail_indices = set(range(100))

    report = await service.do_ingest(document, "b1")

    assert report.status == IngestionStatus.EMPTY
    assert report.indexed == 0
    assert fake_index.upserts == 0


async def test_embedding_failure_writes_nothing(service, document, fake_embed, fake_index):
    fake_embed.error = EmbeddingServiceError("Embedding service is unreachable.")

    with pytest.raises(EmbeddingServiceError):
        await service.do_ingest(document, "b1")
    assert fake_index.entries == {}


async def test_empty_document_is_an_extraction_error(service, tmp_path, fake_embed, fake_index):
    empty = tmp_path / "empty.txt"
    empty.write_text("   \n", encoding="utf-8")

    with pytest.raises(ExtractionError):
        await service.do_ingest(str(empty), "b1")
    assert fake_embed.calls == []
    assert fake_index.upserts == 0


async def test_missing_document_is_an_extraction_error(service, tmp_path):
    with pytest.raises(ExtractionError):
        await service.do_ingest(str(tmp_path / "missing.pdf"), "b1")


async def test_upsert_failure_reports_zero_indexed(service, document, fake_index):
    fake_index.fail_upsert = True

    report = await service.do_ingest(document, "b1")

    assert report.status == IngestionStatus.FAILED
    assert report.indexed == 0
    assert report.vector_ids == []


async def test_missing_clients_is_a_configuration_error(helper_config, document):
    service = IngestionService(
        helper_config=helper_config,
        embed_client=None,
        index_client=None,
        extractor=TextExtractor(helper_config=helper_config),
    )

    with pytest.raises(ConfigurationError):
        await service.do_ingest(document, "b1")


async def test_background_ingestion_records_status(monkeypatch, tmp_path, helper_config, store, fake_embed, fake_index):
    monkeypatch.setenv("STORAGE_UPLOAD_DIR", str(tmp_path / "public"))
    storage = FileStorage(helper_config=helper_config)
    service = IngestionService(
        helper_config=helper_config,
        embed_client=fake_embed,
        index_client=fake_index,
        extractor=TextExtractor(helper_config=helper_config),
        storage=storage,
        store=store,
        chunker=TextChunker(chunk_size=200, chunk_overlap=40),
    )
    bot = await store.create_bot(Bot(owner_id="alice", name="Nova", description="d", initial_context="c"))
    url = await storage.do_save("handbook.txt", DOCUMENT.encode("utf-8"))
    context_file = ContextFile(
        file_name="handbook.txt", file_path=url, file_type=FileType.OTHER, file_size=len(DOCUMENT), mime_type="text/plain"
    )
    await store.add_context_file(bot.id, "alice", context_file)

    task = service.schedule(bot.id, context_file)
    report = await task

    stored = (await store.find_bot(bot.id, "alice")).context_files[0]
    assert stored.ingestion_status == IngestionStatus.INDEXED
    assert stored.vector_ids == report.vector_ids
    assert len(fake_index.for_bot(bot.id)) == report.indexed


async def test_background_ingestion_failure_is_recorded(helper_config, store, tmp_path, fake_embed, fake_index):
    service = IngestionService(
        helper_config=helper_config,
        embed_client=fake_embed,
        index_client=fake_index,
        extractor=TextExtractor(helper_config=helper_config),
        store=store,
    )
    bot = await store.create_bot(Bot(owner_id="alice", name="Nova", description="d", initial_context="c"))
    context_file = ContextFile(
        file_name="gone.pdf", file_path=str(tmp_path / "gone.pdf"), file_type=FileType.PDF, file_size=1, mime_type="application/pdf"
    )
    await store.add_context_file(bot.id, "alice", context_file)

    report = await service.schedule(bot.id, context_file)

    assert report is None
    stored = (await store.find_bot(bot.id, "alice")).context_files[0]
    assert stored.ingestion_status == IngestionStatus.FAILED


async def test_removed_file_gets_its_vectors_deleted(helper_config, store, document, fake_embed, fake_index):
    service = IngestionService(
        helper_config=helper_config,
        embed_client=fake_embed,
        index_client=fake_index,
        extractor=TextExtractor(helper_config=helper_config),
        store=store,
        chunker=TextChunker(chunk_size=200, chunk_overlap=40),
    )
    bot = await store.create_bot(Bot(owner_id="alice", name="Nova", description="d", initial_context="c"))
    context_file = ContextFile(
        file_name="handbook.txt", file_path=document, file_type=FileType.OTHER, file_size=1, mime_type="text/plain"
    )
    # never attached to the bot, as if removed while ingestion ran
    await service.schedule(bot.id, context_file)

    assert fake_index.for_bot(bot.id) == []


def test_photos_are_not_scheduled(service):
    photo = ContextFile(file_name="me.png", file_path="/uploads/me.png", file_type=FileType.PHOTO, file_size=1, mime_type="image/png")

    assert service.schedule("b1", photo) is None


async def test_delete_file_vectors(service, document, fake_index):
    report = await service.do_ingest(document, "b1")
    context_file = ContextFile(
        file_name="handbook.txt", file_path=document, file_type=FileType.OTHER, file_size=1,
        mime_type="text/plain", vector_ids=report.vector_ids,
    )

    assert await service.do_delete_file_vectors(context_file) is True
    assert fake_index.for_bot("b1") == []


async def test_delete_bot_vectors(service, document, fake_index):
    await service.do_ingest(document, "b1")
    await service.do_ingest(document, "b2")

    assert await service.do_delete_bot_vectors(Bot(id="b1", owner_id="alice", name="n", description="d", initial_context="c"))
    assert fake_index.for_bot("b1") == []
    assert fake_index.for_bot("b2") != []


async def test_ingest_pdf_document(service, pdf_document, fake_index):
    report = await service.do_ingest(pdf_document, "b1", file_id="f1")

    assert report.status == IngestionStatus.INDEXED
    assert report.chunks == report.indexed == 1
    stored = fake_index.for_bot("b1")
    assert stored[0].metadata.page_content == "The keeper logs the weather.\nStorms are rare in June."
    assert stored[0].metadata.source == pdf_document
