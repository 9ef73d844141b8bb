from typing import ClassVar

from pydantic import BaseModel


class PartialUpdateRequest(BaseModel):
    """Base for PUT bodies where only the fields actually sent are applied."""

    # Fields where an explicit null means "clear the reference"
    NULLABLE_FIELDS: ClassVar[frozenset[str]] = frozenset()

    def changes(self) -> dict:
        supplied = self.model_dump(exclude_unset=True)
        return {
            name: value
            for name, value in supplied.items()
            if value is not None or name in self.NULLABLE_FIELDS
        }


class MessageResponse(BaseModel):
    message: str
