from pydantic import BaseModel

from shared.models.bot import IngestionStatus


class IngestionReport(BaseModel):
    """Outcome of ingesting one document.

    Attributes:
        bot_id:     Bot the document belongs to.
        source:     Storage URL or path of the document.
        file_id:    ContextFile id, if the document is attached to one.
        chunks:     Number of non-blank chunks produced.
        indexed:    Number of entries written to the vector index.
        dropped:    Chunks skipped because their embedding came back empty.
        vector_ids: Ids of the written entries.
        status:     indexed, empty ("no content indexed") or failed (index write error).
    """

    bot_id: str
    source: str
    file_id: str | None = None
    chunks: int = 0
    indexed: int = 0
    dropped: int = 0
    vector_ids: list[str] = []
    status: IngestionStatus = IngestionStatus.EMPTY
