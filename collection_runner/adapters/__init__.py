"""Adapters that turn stored requests into sendable parts."""

from .templating import RenderedBody, RenderedRequest, RequestTemplate, Substitutor, stringify, substitute

__all__ = [
    "RenderedBody",
    "RenderedRequest",
    "RequestTemplate",
    "Substitutor",
    "stringify",
    "substitute",
]
