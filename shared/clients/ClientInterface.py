"""Base class of every remote client (embedding, vector index, chat completion).

A client reads its settings from environment variables named
{TYPE}_{ENGINE}_{KEY} (e.g. INDEX_PINECONE_API_KEY), owns one
httpx.AsyncClient between boot() and close() and sends every request
through do_request().
"""

from abc import ABC, abstractmethod
from typing import Any

import httpx

from shared.helper.HelperConfig import HelperConfig
from shared.models.config import ConfigValueType, EnvConfig


class ClientInterface(ABC):
    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.timeout = float(helper_config.get_number_val(f"{self.get_client_type().upper()}_TIMEOUT", default=30))
        self._client: httpx.AsyncClient | None = None

        # incomplete configuration fails here, not on the first request
        for config in self._get_required_config():
            self.get_config_val(config.env_key, default=config.default, val_type=config.val_type)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def get_client_type(self) -> str:
        return self._get_client_type().lower()

    def get_engine_name(self) -> str:
        return self._get_engine_name().lower()

    def is_booted(self) -> bool:
        return self._client is not None

    @abstractmethod
    def _get_client_type(self) -> str:
        """Client family, e.g. "embed", "index" or "llm"."""
        pass

    @abstractmethod
    def _get_engine_name(self) -> str:
        """Backend name, e.g. "Pinecone". Also the middle part of every config key."""
        pass

    ################ CONFIG ##################
    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        """Config keys validated on construction. A key without default is mandatory."""
        pass

    def get_config_key(self, raw_key: str) -> str:
        """E.g. "API_KEY" -> "INDEX_PINECONE_API_KEY"."""
        return f"{self.get_client_type()}_{self.get_engine_name()}_{raw_key}".upper()

    def get_config_val(self, raw_key: str, default: Any = None, val_type: ConfigValueType = "string") -> Any:
        """Read one setting of this client.

        Args:
            raw_key (str): Key without the type/engine prefix.
            default (Any): Value used when unset. None makes the setting mandatory.
            val_type (str): "string", "number" or "bool".

        Raises:
            ValueError: If a mandatory setting is unset or val_type is unknown.
        """
        readers = {
            "string": self._helper_config.get_string_val,
            "number": self._helper_config.get_number_val,
            "bool": self._helper_config.get_bool_val,
        }
        if val_type not in readers:
            raise ValueError(f"Unsupported config value type '{val_type}' for {self.get_config_key(raw_key)}.")
        return readers[val_type](self.get_config_key(raw_key), default=default)

    ################ AUTH ##################
    @abstractmethod
    def _get_auth_header(self) -> dict:
        """Headers authenticating every request, {} for open backends."""
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_base_url(self) -> str:
        """Root URL every endpoint is appended to."""
        pass

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        """Cheap authenticated GET used by do_healthcheck()."""
        pass

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Create the HTTP client.

        Args:
            transport: Optional transport override (e.g. httpx.MockTransport in tests).
        """
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=transport)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def do_healthcheck(self) -> httpx.Response:
        return await self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck())

    ##########################################
    ############### REQUESTS #################
    ##########################################

    def _build_url(self, endpoint: str, base_url: str | None = None) -> str:
        root = (base_url or self._get_base_url()).rstrip("/")
        endpoint = endpoint.strip().lstrip("/")
        return f"{root}/{endpoint}" if endpoint else root

    async def do_request(
        self,
        method: str = "GET",
        endpoint: str = "",
        json: dict | None = None,
        params: dict | None = None,
        additional_headers: dict | None = None,
        raise_on_error: bool = False,
        base_url: str | None = None,
    ) -> httpx.Response:
        """Send one request to the backend.

        Args:
            method: HTTP method.
            endpoint: Path appended to the base URL (leading slash optional).
            json: JSON body.
            params: URL query parameters.
            additional_headers: Extra headers, override the auth headers.
            raise_on_error: Raise on a non-2xx status.
            base_url: Replaces _get_base_url() for this request (e.g. a control plane).

        Returns:
            httpx.Response: The raw response.

        Raises:
            RuntimeError: If boot() has not been called.
            httpx.HTTPStatusError: On a non-2xx status when raise_on_error is set.
            httpx.HTTPError: On transport failures and timeouts.
        """
        if not self.is_booted():
            raise RuntimeError(f"{self.__class__.__name__} is not booted. Call boot() before making requests.")

        url = self._build_url(endpoint, base_url)
        headers = {**self._get_auth_header(), **(additional_headers or {})}
        response = await self._client.request(method, url, headers=headers, json=json, params=params)

        if raise_on_error and not response.is_success:
            self.logging.error(
                "%s %s failed with status %d: %s", method, url, response.status_code, response.text[:200]
            )
            response.raise_for_status()
        return response
