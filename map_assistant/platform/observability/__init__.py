"""Observability infrastructure module.

This module provides monitoring for the chat client:
- Structured logging with per-turn correlation IDs
- Prometheus metrics for relay calls and tool dispatch, with an exporter
"""

from map_assistant.platform.observability.logging import (
    bind_run,
    configure_logging,
    correlation_id_ctx,
    start_turn,
)
from map_assistant.platform.observability.metrics import (
    BUCKETS,
    record_tool_call,
    relay_timer,
    render_metrics,
    start_metrics_server,
)

__all__ = [
    "BUCKETS",
    "bind_run",
    "configure_logging",
    "correlation_id_ctx",
    "record_tool_call",
    "relay_timer",
    "render_metrics",
    "start_metrics_server",
    "start_turn",
]
