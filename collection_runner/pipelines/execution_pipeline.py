"""Resolve, execute and record a stored request."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from collection_runner.errors import RequestNotFoundError
from collection_runner.execution import ExecutionOutcome, HistoryRecorder, RequestExecutor
from collection_runner.logging import get_logger
from collection_runner.models import EnvironmentValue, ExecutionRecord
from collection_runner.resolution import CollectionIndex, EnvironmentMerger, MergeResult, MergeWarning
from collection_runner.storage import CollectionStore


@dataclass(slots=True)
class ExecutionReport:
    collection_id: str
    outcome: ExecutionOutcome
    merge: MergeResult
    record: ExecutionRecord | None

    @property
    def warnings(self) -> tuple[MergeWarning, ...]:
        return self.merge.warnings

    @property
    def variables(self) -> Mapping[str, EnvironmentValue]:
        return self.merge.variables

    def to_dict(self) -> dict[str, Any]:
        sent = self.outcome.sent
        result: dict[str, Any] = {
            "success": not self.outcome.failed,
            "request": {
                "id": self.outcome.request_id,
                "name": sent.name if sent else None,
                "method": self.outcome.method,
                "url": self.outcome.url,
            },
        }
        if self.outcome.failed:
            result["error"] = self.outcome.to_dict()
        else:
            result["response"] = self.outcome.to_dict()
        if self.warnings:
            result["warnings"] = [warning.to_dict() for warning in self.warnings]
        return result


class ExecutionPipeline:
    """Glue store lookups, environment merging, execution and history together."""

    def __init__(
        self,
        *,
        store: CollectionStore,
        executor: RequestExecutor,
        recorder: HistoryRecorder | None = None,
    ) -> None:
        self.store = store
        self.executor = executor
        self.recorder = recorder or HistoryRecorder(store)
        self._logger = get_logger(__name__).bind(component="execution_pipeline")

    def resolve_variables(
        self,
        parent_id: str,
        environment_id: str | None = None,
        overrides: Mapping[str, EnvironmentValue] | None = None,
    ) -> MergeResult:
        index = CollectionIndex.from_collections(self.store.iter_collections())
        return EnvironmentMerger(index).merge(parent_id, environment_id, overrides)

    async def run(
        self,
        request_id: str,
        *,
        environment_id: str | None = None,
        overrides: Mapping[str, EnvironmentValue] | None = None,
    ) -> ExecutionReport:
        """Execute ``request_id`` with merged variables and record the outcome.

        Raises:
            RequestNotFoundError: if no stored collection holds ``request_id``.
        """

        located = self.store.find_request(request_id)
        if located is None:
            raise RequestNotFoundError(request_id)
        collection_id, request = located

        merge = self.resolve_variables(request.parent_id, environment_id, overrides)
        for warning in merge.warnings:
            self._logger.warning(
                "environment_warning",
                request_id=request_id,
                type=warning.type,
                id=warning.id,
            )

        outcome = await self.executor.execute(request, merge.variables)
        record = self.recorder.record(collection_id, outcome)

        self._logger.info(
            "request_run_complete",
            request_id=request_id,
            collection_id=collection_id,
            status=outcome.status,
            failed=outcome.failed,
        )
        return ExecutionReport(collection_id=collection_id, outcome=outcome, merge=merge, record=record)
