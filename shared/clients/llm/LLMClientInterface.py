from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.clients.llm.models.ModelParams import ModelParams
from shared.exceptions import CompletionServiceError
from shared.helper.HelperConfig import HelperConfig


class LLMClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # chat / completion config
        prefix = self.get_client_type().upper()
        self.default_params = ModelParams(
            model=helper_config.get_string_val(f"{prefix}_CHAT_MODEL", default=self._get_default_model()),
            max_tokens=helper_config.get_int_val(f"{prefix}_MAX_TOKENS", default=500),
            temperature=float(helper_config.get_number_val(f"{prefix}_TEMPERATURE", default=0.7)),
        )

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "llm"

    @abstractmethod
    def _get_default_model(self) -> str:
        """Returns the chat model used when LLM_CHAT_MODEL is not set."""
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_chat(self) -> str:
        """Returns the endpoint path for chat/completion requests (e.g. "/chat/completions")."""
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_chat_payload(self, messages: list[dict], params: ModelParams) -> dict:
        """Build the backend-specific request body for a chat/completion request.

        Args:
            messages (list[dict]): OpenAI-format messages
                (e.g. [{"role": "user", "content": "..."}]).
            params (ModelParams): Model id, output length and temperature.

        Returns:
            dict: JSON-serialisable request body.
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_chat_response(self, response_data: dict) -> str | None:
        """Extract the assistant reply text from a raw chat API response.

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            str | None: The assistant reply text, or None if the response carries no choice.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_chat(self, messages: list[dict], params: ModelParams | None = None) -> str | None:
        """Send a chat/completion request and return the assistant reply text.

        Args:
            messages (list[dict]): OpenAI-format messages.
            params (ModelParams | None): Overrides the configured model parameters.

        Returns:
            str | None: The assistant reply text, None if the backend returned no choice.

        Raises:
            CompletionServiceError: If the request fails, returns a non-2xx status or
                the response body cannot be parsed.
        """
        body = self.get_chat_payload(messages, params or self.default_params)
        try:
            response = await self.do_request(
                method="POST",
                endpoint=self._get_endpoint_chat(),
                json=body,
                raise_on_error=True,
            )
            return self.extract_chat_response(response.json())
        except Exception as exc:
            raise CompletionServiceError("Chat completion failed", details=str(exc)) from exc
