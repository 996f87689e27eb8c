from crm_console.models.domain.base import WireModel


class SettingsPatch(WireModel):
    meeting_link: str | None = None
    sources: list[str] | None = None
    counseling_embed_url: str | None = None


class SourcesPayload(WireModel):
    sources: list[str]


class StagesPayload(WireModel):
    stages_by_status: dict[str, list[str]]


class CreateCounselorRequest(WireModel):
    name: str
    embed_url: str
    is_active: bool = True


class UpdateCounselorRequest(WireModel):
    name: str | None = None
    embed_url: str | None = None
    is_active: bool | None = None
