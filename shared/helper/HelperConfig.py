"""Environment-backed configuration.

Every setting is an environment variable. A getter called without a default
treats its variable as mandatory and raises ValueError when it is unset or
blank.
"""

import logging
import os


class HelperConfig:
    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def get_logger(self) -> logging.Logger:
        return self._logger

    @staticmethod
    def _read(key: str) -> str | None:
        raw = os.getenv(key.upper())
        if raw is None or not raw.strip():
            return None
        return raw.strip()

    @staticmethod
    def _missing(key: str) -> ValueError:
        return ValueError(f"Environment variable '{key.upper()}' is not set.")

    def get_string_val(self, key: str, default: str | None = None) -> str:
        raw = self._read(key)
        if raw is not None:
            return raw
        if default is None:
            raise self._missing(key)
        return default

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """Read a number. "3" gives an int, "0.7" or "1e3" a float.

        Raises:
            ValueError: If the variable is mandatory and unset, or not a number.
        """
        raw = self._read(key)
        if raw is None:
            if default is None:
                raise self._missing(key)
            return default
        try:
            return float(raw) if any(marker in raw for marker in ".eE") else int(raw)
        except ValueError:
            raise ValueError(f"Environment variable '{key.upper()}' is not a valid number: '{raw}'.") from None

    def get_int_val(self, key: str, default: int | None = None) -> int:
        return int(self.get_number_val(key, default=default))

    def get_optional_number_val(self, key: str) -> float | int | None:
        """Like get_number_val, but an unset variable gives None instead of an error."""
        if self._read(key) is None:
            return None
        return self.get_number_val(key)

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        raw = self._read(key)
        if raw is None:
            if default is None:
                raise self._missing(key)
            return default
        return raw.lower() in ("true", "1", "yes", "on")
