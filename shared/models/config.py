from typing import Literal

from pydantic import BaseModel

ConfigValueType = Literal["string", "number", "bool"]


class EnvConfig(BaseModel):
    """One setting a remote client reads on construction.

    env_key is given without the {TYPE}_{ENGINE}_ prefix, e.g. "API_KEY".
    A default of None marks the setting as mandatory.
    """

    env_key: str
    val_type: ConfigValueType = "string"
    default: str | int | float | bool | None = None
