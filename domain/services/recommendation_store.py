"""
Recommendation Lifecycle Store

pending -> approved | rejected, exactly once per recommendation.

The document store is the system of record: every decision re-reads the
stored status, and the write itself only succeeds while the stored status is
still pending. A decision committed through another store instance therefore
wins, and a later different outcome is rejected.

The only local state is the write currently in flight per recommendation. A
duplicate call arriving during that write awaits the same task instead of
writing again. No lock is held across an await. If the write fails nothing
was committed and the error is re-raised, so the caller can retry.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any, get_args
from uuid import uuid4

from domain.exceptions import AlreadyDecidedError, NotFoundError, ValidationError
from domain.models.schemas import (
    DecisionOutcome,
    Insight,
    Recommendation,
    RecommendationStatus,
    utcnow,
)
from infrastructure.database.document_store import DocumentStore, WriteConflictError

logger = logging.getLogger(__name__)

_OUTCOMES = set(get_args(DecisionOutcome))
_STATUSES = set(get_args(RecommendationStatus))


class RecommendationStore:
    def __init__(self, store: DocumentStore, clock: Callable[[], datetime] = utcnow):
        self._store = store
        self._clock = clock
        self._inflight: dict[str, tuple[str, asyncio.Task]] = {}

    async def propose(self, insight: Insight, location: str | None = None) -> Recommendation:
        recommendation = Recommendation(
            id=str(uuid4()),
            status="pending",
            location=location,
            insight_id=insight.id,
            type=insight.type,
            title=insight.title,
            description=insight.description,
            confidence=insight.confidence,
            priority=insight.priority,
            category=insight.category,
            source=insight.source,
            data=insight.data,
            created_at=self._clock(),
        )
        await self._store.create(recommendation.model_dump())
        logger.info(f"Proposed recommendation {recommendation.id}: {recommendation.title}")
        return recommendation

    async def _load(self, recommendation_id: str) -> Recommendation:
        document = await self._store.get(recommendation_id)
        if document is None:
            raise NotFoundError("Recommendation", recommendation_id)
        return Recommendation.model_validate(document)

    async def _join_inflight(self, recommendation_id: str, outcome: str) -> Recommendation | None:
        inflight = self._inflight.get(recommendation_id)
        if inflight is None:
            return None
        staged_outcome, task = inflight
        if staged_outcome != outcome:
            raise AlreadyDecidedError(recommendation_id, staged_outcome, outcome)
        return await asyncio.shield(task)

    async def _persist(self, staged: Recommendation) -> Recommendation:
        try:
            await self._store.update(
                staged.id,
                {"status": staged.status, "decided_at": staged.decided_at},
                expected={"status": "pending"},
            )
        except WriteConflictError as e:
            stored = Recommendation.model_validate(e.current)
            if stored.status == staged.status:
                return stored
            raise AlreadyDecidedError(staged.id, stored.status, staged.status) from e
        except (Exception, asyncio.CancelledError) as e:
            logger.warning(f"Persisting decision for {staged.id} failed, still pending: {e!r}")
            raise
        finally:
            self._inflight.pop(staged.id, None)
        logger.info(f"Recommendation {staged.id} {staged.status}")
        return staged

    async def decide(self, recommendation_id: str, outcome: str) -> Recommendation:
        if outcome not in _OUTCOMES:
            raise ValidationError(f"outcome must be one of {sorted(_OUTCOMES)}")

        joined = await self._join_inflight(recommendation_id, outcome)
        if joined is not None:
            return joined

        current = await self._load(recommendation_id)

        # A write may have been staged while we were loading
        joined = await self._join_inflight(recommendation_id, outcome)
        if joined is not None:
            return joined

        if current.status != "pending":
            if current.status == outcome:
                return current
            raise AlreadyDecidedError(recommendation_id, current.status, outcome)

        staged = current.model_copy(update={"status": outcome, "decided_at": self._clock()})
        task = asyncio.create_task(self._persist(staged))
        self._inflight[recommendation_id] = (outcome, task)
        return await asyncio.shield(task)

    def subscribe(self, callback: Callable[[str, Recommendation], Any]) -> Callable[[], None]:
        """Forward store change events as (event, Recommendation)."""

        def listener(event: str, document: dict[str, Any]):
            callback(event, Recommendation.model_validate(document))

        return self._store.subscribe(listener)

    async def list(
        self, status: str | None = None, location: str | None = None
    ) -> list[Recommendation]:
        if status is not None and status not in _STATUSES:
            raise ValidationError(f"status must be one of {sorted(_STATUSES)}")
        documents = await self._store.query(status=status, location=location)
        return [Recommendation.model_validate(d) for d in documents]
