from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for every CRM schema: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        str_strip_whitespace=True,
    )

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


def blank_to_none(value: Any) -> Any:
    """Empty or whitespace-only strings clear an optional text field."""
    if isinstance(value, str) and not value.strip():
        return None
    return value
