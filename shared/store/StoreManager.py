from shared.helper.HelperConfig import HelperConfig
from shared.store.ChatStoreInterface import ChatStoreInterface


class StoreManager:
    """
    Picks the chat store engine from STORE_ENGINE ("sql" or "memory").

    The engine resolves to shared.store.{engine}.ChatStore{Engine}, e.g. ChatStoreSql.
    """

    DEFAULT_ENGINE = "sql"

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()

    def get_store(self) -> ChatStoreInterface:
        """
        Instantiates the store of the configured engine. The caller boots and closes it.

        Raises:
            ValueError: If the engine is unsupported.
        """
        engine = self.helper_config.get_string_val("STORE_ENGINE", default=self.DEFAULT_ENGINE).strip().lower()
        class_name = f"ChatStore{engine.capitalize()}"
        try:
            module = __import__(f"shared.store.{engine}.{class_name}", fromlist=[class_name])
            store_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported store engine specified: '{engine}'. Error: {e}")

        if engine == "memory":
            self.logging.warning("Using the in-memory chat store. Bots and conversations are lost on restart.")
        return store_class(helper_config=self.helper_config)
