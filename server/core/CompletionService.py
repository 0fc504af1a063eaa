from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.clients.llm.models.ModelParams import ModelParams
from shared.exceptions import CompletionServiceError
from shared.helper.HelperConfig import HelperConfig

FALLBACK_UNAVAILABLE = "I'm sorry, I'm having trouble responding right now. Please try again."
FALLBACK_EMPTY = "I'm sorry, I couldn't generate a response."


class CompletionService:
    """Asks the LLM for a reply. Always returns some text, failures become a fixed fallback."""

    def __init__(self, helper_config: HelperConfig, llm_client: LLMClientInterface | None) -> None:
        self.logging = helper_config.get_logger()
        self._llm_client = llm_client

    async def complete(self, messages: list[dict], params: ModelParams | None = None) -> str:
        """Generate the bot reply for an assembled message list.

        Args:
            messages (list[dict]): OpenAI-format messages.
            params (ModelParams | None): Overrides the client's configured model parameters.

        Returns:
            str: The generated text, FALLBACK_UNAVAILABLE on any failure or
                FALLBACK_EMPTY if the model returned no content.
        """
        if self._llm_client is None:
            self.logging.warning("LLM client is not configured. Replying with fallback text.")
            return FALLBACK_UNAVAILABLE

        try:
            content = await self._llm_client.do_chat(messages, params)
        except CompletionServiceError as exc:
            self.logging.error("Error generating bot response: %s", exc.details or exc)
            return FALLBACK_UNAVAILABLE

        if not content:
            self.logging.warning("LLM returned no content. Replying with fallback text.")
            return FALLBACK_EMPTY
        return content
