"""Request execution and history recording."""

from .executor import (
    ExecutionError,
    ExecutionOutcome,
    PreparedRequest,
    RequestExecutor,
    authorization_header,
    prepare_body,
)
from .history import HistoryRecorder, build_record

__all__ = [
    "ExecutionError",
    "ExecutionOutcome",
    "HistoryRecorder",
    "PreparedRequest",
    "RequestExecutor",
    "authorization_header",
    "build_record",
    "prepare_body",
]
