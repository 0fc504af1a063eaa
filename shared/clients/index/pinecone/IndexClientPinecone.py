from shared.clients.index.IndexClientInterface import IndexClientInterface
from shared.clients.index.models.VectorEntry import VectorEntry
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class IndexClientPinecone(IndexClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")
        self._index_name = self.get_config_val("INDEX_NAME", default=None, val_type="string")
        self._host = self._normalise_host(self.get_config_val("HOST", default="", val_type="string"))
        self._namespace = self.get_config_val("NAMESPACE", default="", val_type="string")
        self._control_url = self.get_config_val("CONTROL_URL", default="https://api.pinecone.io", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Pinecone"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
            EnvConfig(env_key="INDEX_NAME", val_type="string", default=None),
            EnvConfig(env_key="HOST", val_type="string", default=""),
            EnvConfig(env_key="NAMESPACE", val_type="string", default=""),
        ]

    @staticmethod
    def _normalise_host(host: str) -> str:
        if host and not host.startswith(("http://", "https://")):
            return f"https://{host}"
        return host

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"Api-Key": self._api_key, "X-Pinecone-API-Version": "2024-07"}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        if not self._host:
            raise RuntimeError("Pinecone index host is not resolved. Call do_prepare() after boot().")
        return self._host

    def _get_endpoint_healthcheck(self) -> str:
        return "/describe_index_stats"

    def _get_endpoint_upsert(self) -> str:
        return "/vectors/upsert"

    def _get_method_upsert(self) -> str:
        return "POST"

    def _get_endpoint_query(self) -> str:
        return "/query"

    def _get_endpoint_delete(self) -> str:
        return "/vectors/delete"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def _with_namespace(self, payload: dict) -> dict:
        if self._namespace:
            payload["namespace"] = self._namespace
        return payload

    def get_upsert_payload(self, entries: list[VectorEntry]) -> dict:
        vectors = [
            {
                "id": entry.id,
                "values": entry.values,
                # pinecone metadata must not contain nulls
                "metadata": entry.metadata.model_dump(exclude_none=True),
            }
            for entry in entries
        ]
        return self._with_namespace({"vectors": vectors})

    def get_query_payload(self, vector: list[float], top_k: int, bot_id: str) -> dict:
        return self._with_namespace({
            "vector": vector,
            "topK": top_k,
            "includeMetadata": True,
            "includeValues": False,
            "filter": {"bot_id": {"$eq": bot_id}},
        })

    def get_delete_ids_payload(self, ids: list[str]) -> dict:
        return self._with_namespace({"ids": ids})

    def get_delete_bot_payload(self, bot_id: str) -> dict:
        return self._with_namespace({"filter": {"bot_id": {"$eq": bot_id}}})

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_raw_matches(self, raw_response: dict) -> list[tuple[str, float, dict | None]]:
        return [
            (match.get("id", ""), match.get("score", 0.0), match.get("metadata"))
            for match in raw_response.get("matches") or []
        ]

    def extract_upsert_count(self, raw_response: dict, entries: list[VectorEntry]) -> int:
        return int(raw_response.get("upsertedCount", len(entries)))

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_prepare(self) -> None:
        """Resolve the data-plane host of the index from the control plane, unless configured."""
        if self._host:
            return
        response = await self.do_request(
            method="GET",
            endpoint=f"/indexes/{self._index_name}",
            base_url=self._control_url,
            raise_on_error=True,
        )
        host = response.json().get("host")
        if not host:
            raise RuntimeError(f"Pinecone index '{self._index_name}' has no host.")
        self._host = self._normalise_host(host)
        self.logging.info("Resolved Pinecone index '%s' to host %s", self._index_name, self._host)
