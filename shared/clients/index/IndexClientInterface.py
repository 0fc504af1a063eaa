from abc import abstractmethod

from pydantic import ValidationError as PydanticValidationError

from shared.clients.ClientInterface import ClientInterface
from shared.clients.index.models.VectorEntry import VectorEntry, VectorMatch, VectorMetadata
from shared.exceptions import IndexQueryError, IndexWriteError
from shared.helper.HelperConfig import HelperConfig


class IndexClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "index"
        """
        return "index"

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_upsert(self) -> str:
        """
        Returns the endpoint path for upsert requests (e.g. "/vectors/upsert").
        """
        pass

    @abstractmethod
    def _get_method_upsert(self) -> str:
        """
        Returns the HTTP method used for upsert requests (e.g. "POST").
        """
        pass

    @abstractmethod
    def _get_endpoint_query(self) -> str:
        """
        Returns the endpoint path for similarity queries (e.g. "/query").
        """
        pass

    @abstractmethod
    def _get_endpoint_delete(self) -> str:
        """
        Returns the endpoint path for delete requests (e.g. "/vectors/delete").
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_upsert_payload(self, entries: list[VectorEntry]) -> dict:
        """Builds the backend-specific request body for an upsert.

        Args:
            entries (list[VectorEntry]): The entries to write.

        Returns:
            dict: The payload for the upsert request.
        """
        pass

    @abstractmethod
    def get_query_payload(self, vector: list[float], top_k: int, bot_id: str) -> dict:
        """Builds the backend-specific request body for a similarity query.

        The bot_id filter is not optional: every engine must scope the
        query to the given bot.

        Args:
            vector (list[float]): The query vector.
            top_k (int): Maximum number of matches.
            bot_id (str): The bot whose entries may be returned.

        Returns:
            dict: The payload for the query request.
        """
        pass

    @abstractmethod
    def get_delete_ids_payload(self, ids: list[str]) -> dict:
        """Builds the backend-specific request body for deleting entries by id."""
        pass

    @abstractmethod
    def get_delete_bot_payload(self, bot_id: str) -> dict:
        """Builds the backend-specific request body for deleting every entry of a bot."""
        pass

    ################ RESPONSE PARSER ##################
    @abstractmethod
    def extract_raw_matches(self, raw_response: dict) -> list[tuple[str, float, dict | None]]:
        """Extracts (id, score, metadata) triples from a raw query response, best match first.

        Args:
            raw_response (dict): The parsed JSON response of the query endpoint.

        Returns:
            list[tuple[str, float, dict | None]]: The raw matches.
        """
        pass

    def extract_upsert_count(self, raw_response: dict, entries: list[VectorEntry]) -> int:
        """Returns the number of entries the backend reports as written.

        Backends that do not report a count are assumed to have written the whole batch.
        """
        return len(entries)

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_prepare(self) -> None:
        """Prepare the backend after boot() (e.g. resolve hosts, create collections)."""
        return None

    async def do_upsert(self, entries: list[VectorEntry]) -> int:
        """Upsert entries into the index in a single call.

        Args:
            entries (list[VectorEntry]): The entries to write. Every entry carries a bot_id.

        Returns:
            int: Number of entries written.

        Raises:
            IndexWriteError: If the request fails. The whole batch is considered failed.
        """
        if not entries:
            return 0
        try:
            response = await self.do_request(
                method=self._get_method_upsert(),
                json=self.get_upsert_payload(entries),
                endpoint=self._get_endpoint_upsert(),
                raise_on_error=True,
            )
        except Exception as exc:
            raise IndexWriteError("Vector index upsert failed.", details=str(exc)) from exc

        # a 2xx without a JSON object still means every entry was written
        try:
            raw_response = response.json()
        except ValueError:
            raw_response = None
        if not isinstance(raw_response, dict):
            self.logging.warning(
                "%s upsert answered %d without a JSON object. Counting all %d entries as written.",
                self._get_engine_name(), response.status_code, len(entries),
            )
            return len(entries)
        return self.extract_upsert_count(raw_response, entries)

    async def do_query(self, vector: list[float], top_k: int, bot_id: str) -> list[VectorMatch]:
        """Return the top_k entries of a bot most similar to the vector.

        Args:
            vector (list[float]): The query vector.
            top_k (int): Maximum number of matches.
            bot_id (str): The bot whose entries may be returned.

        Returns:
            list[VectorMatch]: Matches ordered by descending similarity. Empty if nothing matched.

        Raises:
            IndexQueryError: If the request fails.
        """
        try:
            response = await self.do_request(
                method="POST",
                json=self.get_query_payload(vector, top_k, bot_id),
                endpoint=self._get_endpoint_query(),
                raise_on_error=True,
            )
            raw_matches = self.extract_raw_matches(response.json())
        except Exception as exc:
            raise IndexQueryError("Vector index query failed.", details=str(exc)) from exc

        matches: list[VectorMatch] = []
        for match_id, score, metadata in raw_matches:
            try:
                parsed = VectorMetadata.model_validate(metadata) if metadata else None
            except PydanticValidationError:
                self.logging.warning("Index entry %s carries invalid metadata. Ignoring its payload.", match_id)
                parsed = None
            matches.append(VectorMatch(id=str(match_id), score=float(score or 0.0), metadata=parsed))
        matches.sort(key=lambda match: match.score, reverse=True)
        return matches

    async def do_delete_ids(self, ids: list[str]) -> None:
        """Delete entries by id.

        Raises:
            IndexWriteError: If the request fails.
        """
        if not ids:
            return
        try:
            await self.do_request(
                method="POST",
                json=self.get_delete_ids_payload(ids),
                endpoint=self._get_endpoint_delete(),
                raise_on_error=True,
            )
        except Exception as exc:
            raise IndexWriteError("Vector index delete failed.", details=str(exc)) from exc

    async def do_delete_by_bot(self, bot_id: str) -> None:
        """Delete every entry written for a bot.

        Raises:
            IndexWriteError: If the request fails.
        """
        try:
            await self.do_request(
                method="POST",
                json=self.get_delete_bot_payload(bot_id),
                endpoint=self._get_endpoint_delete(),
                raise_on_error=True,
            )
        except Exception as exc:
            raise IndexWriteError("Vector index delete failed.", details=str(exc)) from exc
