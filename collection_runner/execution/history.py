"""Persist execution outcomes into a request's bounded history."""

from __future__ import annotations

from collection_runner.execution.executor import ExecutionOutcome
from collection_runner.identity import new_id
from collection_runner.logging import get_logger
from collection_runner.models import (
    EntityKind,
    ErrorSnapshot,
    ExecutionRecord,
    ResponseSnapshot,
)
from collection_runner.storage import CollectionStore
from collection_runner.utils import now_ms


def build_record(outcome: ExecutionOutcome) -> ExecutionRecord:
    """Snapshot an outcome. Failed executions carry status 0 unless a response arrived."""

    error = None
    status_message = outcome.status_text
    if outcome.error is not None:
        error = ErrorSnapshot(message=outcome.error.message, stack=outcome.error.stack)
        status_message = outcome.status_text or outcome.error.message

    return ExecutionRecord(
        id=new_id(EntityKind.EXECUTION),
        parent_id=outcome.request_id,
        timestamp=now_ms(),
        response=ResponseSnapshot(
            status_code=outcome.status,
            status_message=status_message,
            headers=dict(outcome.headers),
            body=outcome.body,
            duration=outcome.duration_ms,
            size=outcome.size,
        ),
        error=error,
    )


class HistoryRecorder:
    """Append outcomes to the most-recent-first history kept by the store."""

    def __init__(self, store: CollectionStore) -> None:
        self.store = store
        self._logger = get_logger(__name__).bind(component="history_recorder")

    def record(self, collection_id: str, outcome: ExecutionOutcome) -> ExecutionRecord | None:
        record = build_record(outcome)
        if not self.store.append_execution(collection_id, outcome.request_id, record):
            self._logger.warning(
                "history_not_recorded",
                collection_id=collection_id,
                request_id=outcome.request_id,
            )
            return None

        self._logger.debug(
            "history_recorded",
            collection_id=collection_id,
            request_id=outcome.request_id,
            execution_id=record.id,
            failed=outcome.failed,
        )
        return record
