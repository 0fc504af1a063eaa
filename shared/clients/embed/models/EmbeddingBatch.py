from typing import Iterator

from pydantic import BaseModel


class EmbeddingBatch(BaseModel):
    """Order-preserving result of a batch embedding request.

    ``vectors[i]`` belongs to input ``i``. A slot is None when the remote
    service returned no vector or an empty vector for that input; such a
    slot is reported as failed, never as an empty success.

    Attributes:
        vectors: One slot per input text, None for failed inputs.
    """

    vectors: list[list[float] | None]

    @property
    def failed_indices(self) -> list[int]:
        """Input positions that produced no usable vector."""
        return [index for index, vector in enumerate(self.vectors) if not vector]

    def iter_valid(self) -> Iterator[tuple[int, list[float]]]:
        """Yield (input index, vector) for every input that embedded successfully."""
        for index, vector in enumerate(self.vectors):
            if vector:
                yield index, vector

    def __len__(self) -> int:
        return len(self.vectors)
