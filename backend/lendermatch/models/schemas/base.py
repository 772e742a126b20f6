"""Shared pydantic base model for boundary schemas."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    Immutable schema that reads and writes camelCase field names.

    Input may use either the camelCase alias or the snake_case attribute
    name; serialization with ``by_alias=True`` produces camelCase.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )
