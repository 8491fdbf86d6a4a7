"""Pipeline orchestration for request execution."""

from .execution_pipeline import ExecutionPipeline, ExecutionReport

__all__ = [
    "ExecutionPipeline",
    "ExecutionReport",
]
