import httpx

from shared.clients.index.IndexClientInterface import IndexClientInterface
from shared.clients.index.models.VectorEntry import VectorEntry
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class IndexClientQdrant(IndexClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        self._collection_name = self.get_config_val("COLLECTION", default=None, val_type="string")
        self._vector_size = int(self.get_config_val("VECTOR_SIZE", default=768, val_type="number"))
        self._distance = self.get_config_val("DISTANCE", default="Cosine", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Qdrant"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
            EnvConfig(env_key="COLLECTION", val_type="string", default=None),
            EnvConfig(env_key="VECTOR_SIZE", val_type="number", default=768),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"api-key": f"{self._api_key}"}
        else:
            return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/healthz"

    def _get_endpoint_upsert(self) -> str:
        return f"/collections/{self._collection_name}/points?wait=true"

    def _get_method_upsert(self) -> str:
        return "PUT"

    def _get_endpoint_query(self) -> str:
        return f"/collections/{self._collection_name}/points/search"

    def _get_endpoint_delete(self) -> str:
        return f"/collections/{self._collection_name}/points/delete?wait=true"

    def _get_endpoint_check_collection_existence(self) -> str:
        return f"/collections/{self._collection_name}/exists"

    def _get_endpoint_create_collection(self) -> str:
        return f"/collections/{self._collection_name}"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    @staticmethod
    def _bot_filter(bot_id: str) -> dict:
        return {"must": [{"key": "bot_id", "match": {"value": bot_id}}]}

    def get_upsert_payload(self, entries: list[VectorEntry]) -> dict:
        return {
            "points": [
                {"id": entry.id, "vector": entry.values, "payload": entry.metadata.model_dump()}
                for entry in entries
            ]
        }

    def get_query_payload(self, vector: list[float], top_k: int, bot_id: str) -> dict:
        return {
            "vector": vector,
            "limit": top_k,
            "filter": self._bot_filter(bot_id),
            "with_payload": True,
            "with_vector": False,
        }

    def get_delete_ids_payload(self, ids: list[str]) -> dict:
        return {"points": ids}

    def get_delete_bot_payload(self, bot_id: str) -> dict:
        return {"filter": self._bot_filter(bot_id)}

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_raw_matches(self, raw_response: dict) -> list[tuple[str, float, dict | None]]:
        return [
            (str(point.get("id", "")), point.get("score", 0.0), point.get("payload"))
            for point in raw_response.get("result") or []
        ]

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_existence_check(self) -> bool:
        """Check if the collection exists in the qdrant backend.

        Returns:
            bool: True if the collection exists, False otherwise.
        """
        resp = await self.do_request(method="GET", endpoint=self._get_endpoint_check_collection_existence())
        return bool(resp.json().get("result", {}).get("exists"))

    async def do_create_collection(self) -> httpx.Response:
        """Create the collection with the configured vector size and distance.

        Returns:
            httpx.Response: The response from the create collection request.
        """
        return await self.do_request(
            method="PUT",
            json={
                "vectors": {
                    "size": self._vector_size,
                    "distance": self._distance}},
            endpoint=self._get_endpoint_create_collection(),
            raise_on_error=True)

    async def do_prepare(self) -> None:
        """Create the collection if it does not exist yet."""
        if not await self.do_existence_check():
            self.logging.info("Creating Qdrant collection '%s' (size=%d).", self._collection_name, self._vector_size)
            await self.do_create_collection()
