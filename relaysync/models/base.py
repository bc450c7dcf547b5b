"""
Shared pydantic base for wire models.

Python code uses snake_case attributes; JSON on the wire uses camelCase
(``minPrice``, ``lastUpdated``) because that is what device firmware reads.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        """JSON-compatible dict using the camelCase wire names."""
        return self.model_dump(mode="json", by_alias=True)
