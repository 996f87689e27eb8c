from pydantic import Field

from crm_console.models.api.multipart import MultipartForm, NoteFile
from crm_console.models.domain.base import WireModel


class CreateNoteRequest(WireModel):
    """Note text plus any number of files to attach."""

    text: str = Field(..., min_length=1)
    files: list[NoteFile] = Field(default_factory=list)

    def to_form(self) -> MultipartForm:
        form = MultipartForm().add_field("text", self.text)
        for file in self.files:
            form.add_file("files", file)
        return form
