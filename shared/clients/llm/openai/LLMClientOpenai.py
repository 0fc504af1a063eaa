from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.clients.llm.models.ModelParams import ModelParams
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class LLMClientOpenai(LLMClientInterface):
    """OpenAI-compatible chat completions (Groq by default)."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://api.groq.com/openai/v1", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Openai"

    def _get_default_model(self) -> str:
        return "llama-3.3-70b-versatile"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://api.groq.com/openai/v1"),
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"Authorization": f"Bearer {self._api_key}"}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/models"

    def _get_endpoint_chat(self) -> str:
        return "/chat/completions"

    ################ PAYLOAD BUILDER ##################
    def get_chat_payload(self, messages: list[dict], params: ModelParams) -> dict:
        """Build the /chat/completions request body.

        Args:
            messages (list[dict]): OpenAI-format messages.
            params (ModelParams): Model id, output length and temperature.

        Returns:
            dict: {"model": "...", "messages": [...], "max_tokens": 500, "temperature": 0.7}
        """
        return {
            "model": params.model,
            "messages": messages,
            "max_tokens": params.max_tokens,
            "temperature": params.temperature,
        }

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_chat_response(self, response_data: dict) -> str | None:
        choices = response_data.get("choices") or []
        if not choices:
            return None
        # a null choice or message counts as no reply
        message = (choices[0] or {}).get("message") or {}
        return message.get("content")
