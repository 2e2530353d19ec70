"""Shared schema configuration.

The wire format is camelCase (``studentId``, ``numericGrade``); Python code
uses snake_case attribute names.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_response(self) -> dict:
        """Dump with camelCase keys, ready for the response envelope."""
        return self.model_dump(mode="json", by_alias=True)
