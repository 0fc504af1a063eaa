from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.index.IndexClientInterface import IndexClientInterface
from shared.helper.HelperConfig import HelperConfig

CONTEXT_LABEL = "\n\nRelevant context from documents:\n"


class RetrievalService:
    """Builds the context block for a turn: embed -> query (bot-scoped) -> join chunk texts.

    Retrieval never fails a turn. Missing clients, remote errors and empty
    results all yield an empty context block.
    """

    def __init__(
        self,
        helper_config: HelperConfig,
        embed_client: EmbedClientInterface | None,
        index_client: IndexClientInterface | None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._embed_client = embed_client
        self._index_client = index_client
        self.top_k = helper_config.get_int_val("RETRIEVAL_TOP_K", default=3)

    ##########################################
    ############### CORE #####################
    ##########################################

    async def retrieve(self, query: str, bot_id: str) -> str:
        """Return the context block for a user message, or "" if nothing usable was found.

        Args:
            query (str): The current user message.
            bot_id (str): The bot whose documents may be searched.

        Returns:
            str: CONTEXT_LABEL followed by the matched chunk texts separated by blank lines, or "".
        """
        if self._embed_client is None or self._index_client is None:
            self.logging.warning("Vector store clients are not configured. Skipping context retrieval.")
            return ""

        try:
            vector = await self._embed_client.do_embed_query(query)
            matches = await self._index_client.do_query(vector, self.top_k, bot_id)
        except Exception as exc:
            self.logging.error("Error retrieving context for bot %s: %s", bot_id, exc)
            return ""

        texts: list[str] = []
        for match in matches[:self.top_k]:
            # isolation: never hand another bot's chunk to this conversation
            if match.metadata is None or match.metadata.bot_id != bot_id:
                self.logging.warning("Rejected index entry %s without matching bot_id for bot %s.", match.id, bot_id)
                continue
            if match.metadata.page_content:
                texts.append(match.metadata.page_content)

        self.logging.debug("Retrieved %d context chunk(s) for bot %s.", len(texts), bot_id)
        if not texts:
            return ""
        return CONTEXT_LABEL + "\n\n".join(texts)
