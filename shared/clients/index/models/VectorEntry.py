"""Vector index models: metadata, entries written by ingestion and matches read by retrieval."""

from pydantic import BaseModel, Field


class VectorMetadata(BaseModel):
    """Metadata stored alongside each chunk vector in the index.

    The bot_id field is mandatory and enforced as an isolation invariant on
    every upsert and query. A vector without it is never written and a
    match without it is never returned to a conversation.

    Attributes:
        bot_id:       Required. The bot whose documents produced this chunk.
        file_id:      ContextFile id of the source document, if known.
        source:       Storage URL or path of the source document.
        chunk_index:  Zero-based position of this chunk within the document.
        page_content: Raw text content of this chunk.
    """

    bot_id: str = Field(min_length=1)
    file_id: str | None = None
    source: str
    chunk_index: int
    page_content: str


class VectorEntry(BaseModel):
    """A single (id, vector, metadata) triple to upsert."""

    id: str
    values: list[float] = Field(min_length=1)
    metadata: VectorMetadata


class VectorMatch(BaseModel):
    """A single query hit. metadata is None when the stored payload is missing or invalid."""

    id: str
    score: float = 0.0
    metadata: VectorMetadata | None = None
