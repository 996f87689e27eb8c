"""
Notes on a person: list, create with attachments, delete.
"""

from __future__ import annotations

from pydantic import TypeAdapter

from crm_console.auth.context import AuthContext
from crm_console.infrastructure.observability.logging import get_logger
from crm_console.models.api.note_request import CreateNoteRequest
from crm_console.models.domain.note import Note
from crm_console.services import cache_keys
from crm_console.services.base_service import BaseService
from crm_console.services.query_cache import QueryResult

logger = get_logger(__name__)

NOTE_ADAPTER = TypeAdapter(Note)
NOTES_ADAPTER = TypeAdapter(list[Note])


class NotesService(BaseService):
    async def list(self, auth: AuthContext, person_id: str) -> QueryResult[list[Note]]:
        async def load() -> list[Note]:
            data = await self._call(auth, f"/learners/{person_id}/notes")
            return NOTES_ADAPTER.validate_python(data or [])

        return await self.cache.fetch(
            cache_keys.notes(person_id),
            load,
            NOTES_ADAPTER,
            enabled=auth.is_authenticated and bool(person_id),
        )

    async def create(self, auth: AuthContext, person_id: str, request: CreateNoteRequest) -> Note:
        """Post a note as multipart (`text` plus one `files` part per attachment)."""
        form = request.to_form()
        logger.debug(
            "Creating note",
            person_id=person_id,
            fields=[name for name, _ in form.fields],
            file_count=len(form.files),
        )

        async def call() -> Note:
            data = await self._call(auth, f"/learners/{person_id}/notes", method="POST", body=form)
            return NOTE_ADAPTER.validate_python(data)

        return await self.cache.mutate(call, invalidates=[cache_keys.notes(person_id)])

    async def delete(self, auth: AuthContext, person_id: str, note_id: str) -> None:
        async def call() -> None:
            await self._call(auth, f"/learners/{person_id}/notes/{note_id}", method="DELETE")

        await self.cache.mutate(call, invalidates=[cache_keys.notes(person_id)])
