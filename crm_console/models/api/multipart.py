"""Multipart request bodies (note text plus attached files)."""

from dataclasses import dataclass, field


@dataclass
class NoteFile:
    """A file to upload: name, raw content and MIME type."""

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


@dataclass
class MultipartForm:
    """Multipart body. Fields may repeat (e.g. several `files` entries)."""

    fields: list[tuple[str, str]] = field(default_factory=list)
    files: list[tuple[str, NoteFile]] = field(default_factory=list)

    def add_field(self, name: str, value: str) -> "MultipartForm":
        self.fields.append((name, value))
        return self

    def add_file(self, name: str, file: NoteFile) -> "MultipartForm":
        self.files.append((name, file))
        return self

    def to_httpx(self) -> dict:
        # Plain fields go in as filename-less parts so the body is always multipart
        parts: list[tuple[str, tuple]] = [(name, (None, value)) for name, value in self.fields]
        parts.extend(
            (name, (f.filename, f.content, f.content_type)) for name, f in self.files
        )
        return {"files": parts}
