from datetime import datetime

from pydantic import Field

from crm_console.models.domain.base import WireModel
from crm_console.models.domain.person import UserRef


class Attachment(WireModel):
    id: str
    file_name: str
    mime_type: str | None = None
    size_bytes: int | None = None
    url: str
    created_at: datetime | None = None


class Note(WireModel):
    """A note on a person, with optional file attachments."""

    id: str
    text: str
    attachments: list[Attachment] = Field(default_factory=list)
    author: UserRef | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def author_id(self) -> str | None:
        return self.author.id if self.author else None
