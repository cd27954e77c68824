"""Prometheus metrics for relay calls and tool dispatch.

Relay round-trips are recorded in a histogram labelled by operation and
outcome; local tool invocations are counted by function and outcome.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from time import monotonic
from typing import NamedTuple

import prometheus_client


class RelayLabels(NamedTuple):
    operation: str
    outcome: str


class ToolLabels(NamedTuple):
    function: str
    outcome: str


BUCKETS = (
    # log spaced with 1 sig-fig rounding, 3 per decade
    0.005,
    0.01,
    0.02,
    0.05,
    0.1,
    0.2,
    0.5,
    1,
    2,
    5,
    10,
    20,
    60,  # audio uploads include server-side transcription
    float("inf"),
)


def setup_relay_metrics(registry):
    """Create the relay request duration histogram.

    Args:
        registry: Prometheus registry to register the metric with

    Returns:
        Histogram for tracking relay call durations by operation and outcome
    """
    return prometheus_client.Histogram(
        name="relay_request_duration_seconds",
        documentation="Relay request duration (seconds)",
        labelnames=RelayLabels._fields,
        registry=registry,
        buckets=BUCKETS,
    )


def setup_tool_metrics(registry):
    """Create the tool invocation counter.

    Args:
        registry: Prometheus registry to register the metric with

    Returns:
        Counter of local tool invocations by function and outcome
    """
    return prometheus_client.Counter(
        name="tool_invocations",
        documentation="Tool invocations dispatched locally",
        labelnames=ToolLabels._fields,
        registry=registry,
    )


relay_histogram = setup_relay_metrics(registry=prometheus_client.REGISTRY)
tool_counter = setup_tool_metrics(registry=prometheus_client.REGISTRY)


@contextmanager
def relay_timer(operation: str) -> Iterator[None]:
    """Time a relay call, labelling it "ok" or "error" by how the block exits.

    Usage:
        ```
        with relay_timer("poll"):
            response = await http.post(...)
        ```
    """
    start_time = monotonic()
    outcome = "error"
    try:
        yield
        outcome = "ok"
    finally:
        relay_histogram.labels(*RelayLabels(operation=operation, outcome=outcome)).observe(
            monotonic() - start_time
        )


def record_tool_call(function: str, ok: bool) -> None:
    """Count one dispatched tool invocation."""
    tool_counter.labels(*ToolLabels(function=function, outcome="ok" if ok else "error")).inc()


def start_metrics_server(port: int, addr: str = "127.0.0.1") -> None:
    """Serve the default registry on ``http://addr:port/metrics`` from a daemon thread."""
    prometheus_client.start_http_server(port, addr=addr)


def render_metrics() -> tuple[bytes, str]:
    """Render the default registry in the Prometheus text format.

    Returns:
        The exposition body and its content type.
    """
    return prometheus_client.generate_latest(), prometheus_client.CONTENT_TYPE_LATEST
