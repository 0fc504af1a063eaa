from pydantic import BaseModel, Field


class ModelParams(BaseModel):
    """Fixed generation parameters for a completion call.

    Attributes:
        model:       Target model identifier (e.g. "llama-3.3-70b-versatile").
        max_tokens:  Maximum output length in tokens.
        temperature: Sampling temperature.
    """

    model: str
    max_tokens: int = Field(default=500, gt=0)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
