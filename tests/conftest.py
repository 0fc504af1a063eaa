import logging
import os
import tempfile
from typing import AsyncIterator

import pytest

# logs/ and uploads must never land in the working tree
os.environ.setdefault("ROOT_DIR", tempfile.mkdtemp(prefix="persona_bots_tests_"))

from shared.clients.embed.models.EmbeddingBatch import EmbeddingBatch
from shared.clients.index.models.VectorEntry import VectorEntry, VectorMatch
from shared.exceptions import EmbeddingServiceError, IndexQueryError, IndexWriteError
from shared.helper.HelperConfig import HelperConfig
from shared.store.ChatStoreInterface import ChatStoreInterface
from shared.store.memory.ChatStoreMemory import ChatStoreMemory
from shared.store.sql.ChatStoreSql import ChatStoreSql

CONFIG_PREFIXES = (
    "EMBED_", "INDEX_", "LLM_", "CHUNK_", "RETRIEVAL_", "CHAT_HISTORY_", "STORAGE_", "STORE_", "APP_API_KEY",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Start every test without any service configuration from the outer environment."""
    for key in list(os.environ):
        if key.startswith(CONFIG_PREFIXES):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def helper_config() -> HelperConfig:
    return HelperConfig(logger=logging.getLogger("persona_bots.tests"))


@pytest.fixture(params=["memory", "sql"])
async def store(request, monkeypatch, tmp_path, helper_config) -> AsyncIterator[ChatStoreInterface]:
    """Every store-backed test runs against both engines, the SQL one on a SQLite file."""
    if request.param == "memory":
        yield ChatStoreMemory(helper_config=helper_config)
        return
    monkeypatch.setenv("STORE_SQL_URL", f"sqlite+aiosqlite:///{tmp_path / 'store.db'}")
    sql_store = ChatStoreSql(helper_config=helper_config)
    await sql_store.boot()
    yield sql_store
    await sql_store.close()


class FakeEmbedClient:
    """Deterministic embedder. Inputs listed in fail_indices come back without a vector."""

    def __init__(self):
        self.calls: list[list[str]] = []
        self.fail_indices: set[int] = set()
        self.error: Exception | None = None
        self.booted = False
        self.closed = False

    async def boot(self) -> None:
        self.booted = True

    async def close(self) -> None:
        self.closed = True

    async def do_embed_batch(self, texts: list[str], task: str = "document") -> EmbeddingBatch:
        self.calls.append(list(texts))
        if self.error:
            raise self.error
        return EmbeddingBatch(
            vectors=[None if i in self.fail_indices else [float(len(text)), 1.0] for i, text in enumerate(texts)]
        )

    async def do_embed_query(self, text: str) -> list[float]:
        batch = await self.do_embed_batch([text], task="query")
        if not batch.vectors[0]:
            raise EmbeddingServiceError("no vector")
        return batch.vectors[0]


class FakeIndexClient:
    """In-memory index applying the same bot_id filter as the remote engines."""

    def __init__(self):
        self.entries: dict[str, VectorEntry] = {}
        self.upserts = 0
        self.fail_upsert = False
        self.fail_query = False
        self.booted = False
        self.prepared = False
        self.closed = False

    async def boot(self) -> None:
        self.booted = True

    async def do_prepare(self) -> None:
        self.prepared = True

    async def close(self) -> None:
        self.closed = True

    async def do_upsert(self, entries: list[VectorEntry]) -> int:
        if self.fail_upsert:
            raise IndexWriteError("upsert failed", details="503")
        self.upserts += 1
        for entry in entries:
            self.entries[entry.id] = entry
        return len(entries)

    async def do_query(self, vector: list[float], top_k: int, bot_id: str) -> list[VectorMatch]:
        if self.fail_query:
            raise IndexQueryError("query failed")
        owned = [entry for entry in self.entries.values() if entry.metadata.bot_id == bot_id]
        return [
            VectorMatch(id=entry.id, score=1.0 - rank * 0.1, metadata=entry.metadata)
            for rank, entry in enumerate(owned[:top_k])
        ]

    async def do_delete_ids(self, ids: list[str]) -> None:
        for vector_id in ids:
            self.entries.pop(vector_id, None)

    async def do_delete_by_bot(self, bot_id: str) -> None:
        self.entries = {k: v for k, v in self.entries.items() if v.metadata.bot_id != bot_id}

    def for_bot(self, bot_id: str) -> list[VectorEntry]:
        return [entry for entry in self.entries.values() if entry.metadata.bot_id == bot_id]


@pytest.fixture
def fake_embed() -> FakeEmbedClient:
    return FakeEmbedClient()


@pytest.fixture
def fake_index() -> FakeIndexClient:
    return FakeIndexClient()


def write_pdf(path, pages: list[str | None]) -> None:
    """Write a minimal PDF with one Helvetica line per page. None gives a page without text."""
    page_numbers = [4 + 2 * i for i in range(len(pages))]
    kids = " ".join(f"{number} 0 R" for number in page_numbers)
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        f"<< /Type /Pages /Kids [{kids}] /Count {len(pages)} >>".encode(),
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    for number, text in zip(page_numbers, pages):
        content = f"BT /F1 12 Tf 72 720 Td ({text}) Tj ET".encode() if text else b""
        objects.append(
            f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
            f"/Resources << /Font << /F1 3 0 R >> >> /Contents {number + 1} 0 R >>".encode()
        )
        objects.append(b"<< /Length %d >>\nstream\n" % len(content) + content + b"\nendstream")

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"
    xref_offset = len(out)
    out += b"xref\n0 %d\n0000000000 65535 f \n" % (len(objects) + 1)
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref_offset)
    path.write_bytes(bytes(out))


@pytest.fixture
def pdf_document(tmp_path) -> str:
    """Two pages of text with a blank page between them."""
    path = tmp_path / "handbook.pdf"
    write_pdf(path, ["The keeper logs the weather.", None, "Storms are rare in June."])
    return str(path)
