"""Shared base for models exchanged with the UI."""

from typing import Any, Dict, Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CanonicalModel(BaseModel):
    """snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        """Serialize with camelCase keys, as sent to the UI."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class ProviderErrorInfo(CanonicalModel):
    """Error object returned instead of a result."""

    type: Literal["PROVIDER", "UNKNOWN"]
    message: str
