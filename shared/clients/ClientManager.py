from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig


class ClientManager:
    """
    Picks and instantiates the remote client of one family from configuration.

    The engine is read from {TYPE}_ENGINE (e.g. INDEX_ENGINE=qdrant) and resolved to
    shared.clients.{type}.{engine}.{Prefix}{Engine}, e.g. IndexClientQdrant.
    """

    DEFAULT_ENGINES = {"embed": "google", "index": "pinecone", "llm": "openai"}
    CLASS_PREFIXES = {"embed": "EmbedClient", "index": "IndexClient", "llm": "LLMClient"}

    def __init__(self, helper_config: HelperConfig, client_type: str):
        client_type = client_type.strip().lower()
        if client_type not in self.CLASS_PREFIXES:
            raise ValueError(f"Unknown client type '{client_type}'.")
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client_type = client_type

    def _get_engine_from_env(self) -> str:
        """
        Reads the engine of this client family, e.g. "Pinecone" for INDEX_ENGINE=pinecone.

        Raises:
            ValueError: If the configured engine is empty.
        """
        env_key = f"{self.client_type.upper()}_ENGINE"
        engine = self.helper_config.get_string_val(env_key, default=self.DEFAULT_ENGINES[self.client_type])
        engine = engine.strip().lower()
        if not engine:
            raise ValueError(f"No engine specified in configuration ({env_key}).")
        return engine.capitalize()

    def get_client(self) -> ClientInterface:
        """
        Instantiates the client of the configured engine.

        Raises:
            ValueError: If the engine is unsupported or its configuration is incomplete.
        """
        engine = self._get_engine_from_env()
        class_name = f"{self.CLASS_PREFIXES[self.client_type]}{engine}"
        try:
            module = __import__(
                f"shared.clients.{self.client_type}.{engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            client_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported {self.client_type} engine specified: '{engine}'. Error: {e}")

        client = client_class(helper_config=self.helper_config)
        self.logging.debug("Instantiated %s client for engine: %s", self.client_type, engine)
        return client

    def get_optional_client(self) -> ClientInterface | None:
        """Like get_client, but logs a warning and returns None when the client cannot be built."""
        try:
            return self.get_client()
        except ValueError as e:
            self.logging.warning("%s client disabled: %s", self.client_type.capitalize(), e)
            return None
