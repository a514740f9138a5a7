"""Shared schema base classes."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Serialises as camelCase and accepts either spelling on input.

    Used by the function-style endpoints whose JSON bodies are camelCase.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
