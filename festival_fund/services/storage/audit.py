"""Audit log kept as an append-only collection in the document store."""

from festival_fund.models.audit import AuditEvent
from festival_fund.services.storage.interface import (
    AUDIT_LOG,
    AuditStorageInterface,
    DocumentStoreInterface,
)


class DocumentAuditStorage(AuditStorageInterface):
    """
    Audit storage on top of any DocumentStoreInterface.

    Events are keyed by their event_id, so a retried append can never
    produce two copies of the same event.
    """

    def __init__(self, store: DocumentStoreInterface):
        self._store = store

    async def append_event(self, event: AuditEvent) -> bool:
        await self._store.create(
            AUDIT_LOG,
            event.to_document(),
            doc_id=str(event.event_id),
        )
        return True

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        documents = await self._store.get_all(AUDIT_LOG)
        events = [
            AuditEvent(event_id=document.id, **document.data)
            for document in documents
        ]
        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
