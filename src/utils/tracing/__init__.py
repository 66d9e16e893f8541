"""
Distributed tracing using OpenTelemetry.

Spans cover connection setup, table diffs, reconciliation runs, table
replacement and cross-engine migration. With no exporter configured the
spans are created and discarded.
"""

from .context import add_span_attributes, add_span_event, trace_operation
from .tracer import get_tracer, initialize_tracing, shutdown_tracing

__all__ = [
    "initialize_tracing",
    "get_tracer",
    "shutdown_tracing",
    "trace_operation",
    "add_span_attributes",
    "add_span_event",
]
