from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig

_TASK_TYPES = {
    "document": "RETRIEVAL_DOCUMENT",
    "query": "RETRIEVAL_QUERY",
}


class EmbedClientGoogle(EmbedClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val(
            "BASE_URL", default="https://generativelanguage.googleapis.com/v1beta", val_type="string"
        )
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Google"

    def _get_default_model(self) -> str:
        return "text-embedding-004"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://generativelanguage.googleapis.com/v1beta"),
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"x-goog-api-key": self._api_key}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_model_path(self) -> str:
        model = self.embed_model
        return model if model.startswith("models/") else f"models/{model}"

    def _get_endpoint_healthcheck(self) -> str:
        # model metadata lookup, cheap and authenticated
        return f"/{self._get_model_path()}"

    def get_endpoint_embedding(self) -> str:
        return f"/{self._get_model_path()}:batchEmbedContents"

    ################ PAYLOAD BUILDER ##################
    def get_embed_payload(self, texts: list[str], task: str = "document") -> dict:
        """Build the batchEmbedContents request body.

        Args:
            texts (list[str]): The texts to embed.
            task (str): "document" or "query".

        Returns:
            dict: {"requests": [{"model": "...", "content": {"parts": [{"text": "..."}]}, "taskType": "..."}]}
        """
        model = self._get_model_path()
        task_type = _TASK_TYPES.get(task, "RETRIEVAL_DOCUMENT")
        return {
            "requests": [
                {"model": model, "content": {"parts": [{"text": text}]}, "taskType": task_type}
                for text in texts
            ]
        }

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract embedding vectors from a batchEmbedContents response.

        Args:
            response_data (dict): {"embeddings": [{"values": [...]}, ...]}

        Returns:
            list[list[float]]: Embedding vectors in input order; empty lists for missing values.

        Raises:
            ValueError: If the response has no "embeddings" list.
        """
        embeddings = response_data.get("embeddings")
        if not isinstance(embeddings, list):
            raise ValueError(
                "Google response does not contain an embeddings list. "
                f"Response keys: {list(response_data.keys())}"
            )
        return [(item or {}).get("values") or [] for item in embeddings]
