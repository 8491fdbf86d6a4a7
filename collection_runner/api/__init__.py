"""Outbound HTTP transport."""

from .transport import HttpxTransport, Transport, TransportError, TransportResponse

__all__ = ["HttpxTransport", "Transport", "TransportError", "TransportResponse"]
