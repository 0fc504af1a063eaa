from abc import abstractmethod

import httpx
from shared.clients.ClientInterface import ClientInterface
from shared.clients.embed.models.EmbeddingBatch import EmbeddingBatch
from shared.exceptions import EmbeddingServiceError
from shared.helper.HelperConfig import HelperConfig


class EmbedClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # model and batching config
        self.embed_model = helper_config.get_string_val(
            f"{self.get_client_type().upper()}_MODEL", default=self._get_default_model()
        )
        self.embed_batch_size = helper_config.get_int_val(f"{self.get_client_type().upper()}_BATCH_SIZE", default=100)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "embed"
        """
        return "embed"

    @abstractmethod
    def _get_default_model(self) -> str:
        """
        Returns the model identifier used when EMBED_MODEL is not set.
        """
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        """
        Returns the endpoint path for embedding requests.

        Returns:
            str: The endpoint path for embedding requests (e.g. "/api/embed")

        Raises:
            NotImplementedError: If the method is not implemented in a subclass.
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_embed_payload(self, texts: list[str], task: str = "document") -> dict:
        """Build the backend-specific request body for an embedding request.

        Args:
            texts (list[str]): The texts to embed.
            task (str): "document" for indexed chunks, "query" for search queries.
                Backends without task-specific embeddings ignore it.

        Returns:
            dict: JSON-serialisable request body (e.g. {"model": "...", "input": [...]}).

        Raises:
            NotImplementedError: If the method is not implemented in a subclass.
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract embedding vectors from a raw embedding API response.

        The result may be shorter than the input or contain empty vectors;
        do_embed_batch() maps those positions to failed slots.

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the input texts.

        Raises:
            ValueError: If the response format is not recognised at all.
            NotImplementedError: If the method is not implemented in a subclass.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def _do_embed_request(self, texts: list[str], task: str) -> list[list[float]]:
        """Send one embedding request and return the raw vectors.

        Raises:
            EmbeddingServiceError: On transport failures, non-200 status or an unreadable body.
        """
        body = self.get_embed_payload(texts, task=task)
        try:
            response = await self.do_request(method="POST", endpoint=self.get_endpoint_embedding(), json=body)
        except httpx.HTTPError as exc:
            self.logging.error("Embedding request to '%s' failed: %s", self.get_engine_name(), exc)
            raise EmbeddingServiceError("Embedding service is unreachable.", details=str(exc)) from exc

        if response.status_code != 200:
            self.logging.error(
                "Embedding request failed: status %d, body: %s",
                response.status_code,
                response.text[:200],
            )
            raise EmbeddingServiceError("Embedding request failed with status %d." % response.status_code)

        try:
            return self.extract_embeddings_from_response(response.json())
        except ValueError as exc:
            raise EmbeddingServiceError("Embedding response could not be read.", details=str(exc)) from exc

    async def do_embed_batch(self, texts: list[str], task: str = "document") -> EmbeddingBatch:
        """Embed several texts, keeping one result slot per input.

        Texts are sent in sub-batches of embed_batch_size. A failed call for
        any sub-batch fails the whole batch; a missing or empty vector for a
        single input only marks that input as failed.

        Args:
            texts (list[str]): The texts to embed.
            task (str): "document" or "query".

        Returns:
            EmbeddingBatch: Vectors aligned with the inputs.

        Raises:
            EmbeddingServiceError: If any embedding call fails.
        """
        vectors: list[list[float] | None] = []
        total_batches = (len(texts) + self.embed_batch_size - 1) // self.embed_batch_size
        for batch_num, start in enumerate(range(0, len(texts), self.embed_batch_size), start=1):
            batch = texts[start:start + self.embed_batch_size]
            self.logging.debug("Embedding batch %d/%d (%d texts)", batch_num, total_batches, len(batch))
            raw = await self._do_embed_request(batch, task=task)
            if len(raw) != len(batch):
                self.logging.warning(
                    "Embedding batch %d returned %d vectors for %d inputs.", batch_num, len(raw), len(batch)
                )
            for index in range(len(batch)):
                vector = raw[index] if index < len(raw) else None
                vectors.append(list(vector) if vector else None)
        return EmbeddingBatch(vectors=vectors)

    async def do_embed_query(self, text: str) -> list[float]:
        """Embed a single search query.

        Raises:
            EmbeddingServiceError: If the call fails or returns no vector.
        """
        batch = await self.do_embed_batch([text], task="query")
        vector = batch.vectors[0]
        if not vector:
            raise EmbeddingServiceError("Embedding service returned no vector for the query.")
        return vector
