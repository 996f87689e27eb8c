from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for API payloads: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict:
        """Request body with only the fields the caller set (explicit None is kept)."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)

    def to_params(self) -> dict:
        """Query parameters: every field with a value, defaults included."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
