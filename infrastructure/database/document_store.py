"""
Document stores for recommendation records.

Documents are plain dicts keyed by "id". Writes are atomic per document and
change listeners are notified only after the write has committed.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import update as sql_update
from sqlalchemy.orm import sessionmaker

from domain.exceptions import NotFoundError
from infrastructure.database.models import RecommendationRecord

logger = logging.getLogger(__name__)

ChangeListener = Callable[[str, dict[str, Any]], None]


class WriteConflictError(Exception):
    """A conditional update found the document no longer matching `expected`."""

    def __init__(self, document_id: str, current: dict[str, Any]):
        self.document_id = document_id
        self.current = current
        super().__init__(f"Document '{document_id}' changed before the write")


class DocumentStore(ABC):
    def __init__(self):
        self._listeners: list[ChangeListener] = []

    @abstractmethod
    async def create(self, document: dict[str, Any]) -> dict[str, Any]:
        pass

    @abstractmethod
    async def update(
        self,
        document_id: str,
        fields: dict[str, Any],
        expected: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Apply `fields`. With `expected`, write only if every expected field
        still holds its value, otherwise raise WriteConflictError."""

    @abstractmethod
    async def get(self, document_id: str) -> dict[str, Any] | None:
        pass

    @abstractmethod
    async def query(self, **filters: Any) -> list[dict[str, Any]]:
        """Equality filters (None values ignored), newest `created_at` first."""

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a change listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: str, document: dict[str, Any]):
        for listener in list(self._listeners):
            try:
                listener(event, copy.deepcopy(document))
            except Exception:
                logger.exception(f"Document store listener failed on {event} {document.get('id')}")


def _matches(document: dict[str, Any], filters: dict[str, Any]) -> bool:
    return all(document.get(key) == value for key, value in filters.items() if value is not None)


def _matches_exactly(document: dict[str, Any], expected: dict[str, Any]) -> bool:
    return all(document.get(key) == value for key, value in expected.items())


def _newest_first(documents: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return sorted(documents, key=lambda d: d["created_at"], reverse=True)


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed store for tests and offline runs."""

    def __init__(self):
        super().__init__()
        self._documents: dict[str, dict[str, Any]] = {}

    async def create(self, document):
        if document["id"] in self._documents:
            raise ValueError(f"Document '{document['id']}' already exists")
        self._documents[document["id"]] = copy.deepcopy(document)
        self._notify("created", document)
        return copy.deepcopy(document)

    async def update(self, document_id, fields, expected=None):
        if document_id not in self._documents:
            raise NotFoundError("Document", document_id)
        current = self._documents[document_id]
        if expected and not _matches_exactly(current, expected):
            raise WriteConflictError(document_id, copy.deepcopy(current))
        updated = {**current, **copy.deepcopy(fields)}
        self._documents[document_id] = updated
        self._notify("updated", updated)
        return copy.deepcopy(updated)

    async def get(self, document_id):
        document = self._documents.get(document_id)
        return copy.deepcopy(document) if document is not None else None

    async def query(self, **filters):
        return [
            copy.deepcopy(d)
            for d in _newest_first(list(self._documents.values()))
            if _matches(d, filters)
        ]


def _as_aware(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo; all stored timestamps are UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _record_to_document(record: RecommendationRecord) -> dict[str, Any]:
    document = record.to_document()
    document["created_at"] = _as_aware(document["created_at"])
    document["decided_at"] = _as_aware(document["decided_at"])
    return document


class SQLDocumentStore(DocumentStore):
    """SQLAlchemy-backed system of record. Sync sessions run in worker threads."""

    def __init__(self, session_factory: sessionmaker):
        super().__init__()
        self._session_factory = session_factory

    def _create_sync(self, document):
        with self._session_factory() as db:
            record = RecommendationRecord(**document)
            db.add(record)
            db.commit()
            db.refresh(record)
            return _record_to_document(record)

    def _update_sync(self, document_id, fields, expected):
        with self._session_factory() as db:
            statement = sql_update(RecommendationRecord).where(
                RecommendationRecord.id == document_id
            )
            for key, value in (expected or {}).items():
                statement = statement.where(getattr(RecommendationRecord, key) == value)
            result = db.execute(
                statement.values(**fields).execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                db.rollback()
                record = db.get(RecommendationRecord, document_id)
                if record is None:
                    raise NotFoundError("Document", document_id)
                raise WriteConflictError(document_id, _record_to_document(record))
            db.commit()
            record = db.get(RecommendationRecord, document_id)
            return _record_to_document(record)

    def _get_sync(self, document_id):
        with self._session_factory() as db:
            record = db.get(RecommendationRecord, document_id)
            return _record_to_document(record) if record is not None else None

    def _query_sync(self, filters):
        with self._session_factory() as db:
            query = db.query(RecommendationRecord)
            for key, value in filters.items():
                if value is not None:
                    query = query.filter(getattr(RecommendationRecord, key) == value)
            records = query.order_by(RecommendationRecord.created_at.desc()).all()
            return [_record_to_document(r) for r in records]

    async def create(self, document):
        created = await asyncio.to_thread(self._create_sync, document)
        self._notify("created", created)
        return created

    async def update(self, document_id, fields, expected=None):
        updated = await asyncio.to_thread(self._update_sync, document_id, fields, expected)
        self._notify("updated", updated)
        return updated

    async def get(self, document_id):
        return await asyncio.to_thread(self._get_sync, document_id)

    async def query(self, **filters):
        return await asyncio.to_thread(self._query_sync, filters)
