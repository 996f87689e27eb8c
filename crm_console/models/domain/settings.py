from datetime import datetime

from pydantic import Field

from crm_console.models.domain.base import WireModel
from crm_console.models.domain.enums import PersonStatus


class ConsoleSettings(WireModel):
    """Process-wide settings: source tags, per-status stages, meeting links."""

    sources: list[str] = Field(default_factory=list)
    stages_by_status: dict[str, list[str]] = Field(default_factory=dict)
    meeting_link: str | None = None
    counseling_embed_url: str | None = None

    def stages_for(self, status: PersonStatus | str) -> list[str]:
        key = status.value if isinstance(status, PersonStatus) else str(status)
        return list(self.stages_by_status.get(key, []))


class Counselor(WireModel):
    id: str
    name: str
    embed_url: str
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_api(cls, raw: dict) -> "Counselor":
        """Decode a counselor, accepting the legacy `active` flag."""
        data = dict(raw)
        if "isActive" not in data:
            data["isActive"] = data.get("active", True)
        return cls.model_validate(data)
