"""
Unit tests for OpenTelemetry tracing module.

Note: OpenTelemetry has global state that can only be set once per process.
Tests that need to capture spans use a module-scoped tracer provider,
while tests that mock the setup use patches to avoid global state issues.
"""

from unittest.mock import MagicMock, patch

import pytest
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import SpanKind

from overcommit_webhook.observability.tracing import (
    extract_trace_context,
    get_tracer,
    setup_tracing,
    shutdown_tracing,
)
from overcommit_webhook.overcommit.transform import OvercommitPolicy
from overcommit_webhook.webhooks.mutate import AdmissionHandler

TRACE_ID = "4bf92f3577b34da6a3ce929d0e0e4736"
TRACEPARENT = f"00-{TRACE_ID}-00f067aa0ba902b7-01"


# Module-scoped fixtures for tests that need actual span capture
@pytest.fixture(scope="module")
def module_in_memory_exporter():
    """Module-scoped in-memory span exporter for testing."""
    return InMemorySpanExporter()


@pytest.fixture(scope="module")
def module_tracer_provider(module_in_memory_exporter):
    """Module-scoped tracer provider - set once for all tests in this module."""
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(module_in_memory_exporter))
    trace.set_tracer_provider(provider)
    return provider


@pytest.fixture(autouse=True)
def reset_tracing_state():
    """Reset tracing module state before and after each test."""
    import overcommit_webhook.observability.tracing as tracing_module

    tracing_module._initialized = False
    tracing_module._tracer_provider = None
    yield
    tracing_module._initialized = False
    tracing_module._tracer_provider = None


@pytest.fixture
def in_memory_exporter(module_tracer_provider, module_in_memory_exporter):
    """Clear captured spans before each test that inspects them."""
    module_in_memory_exporter.clear()
    return module_in_memory_exporter


class TestSetupTracing:
    def test_disabled_returns_none(self):
        import overcommit_webhook.observability.tracing as tracing_module

        assert setup_tracing(enabled=False) is None
        assert tracing_module._initialized is True
        assert tracing_module._tracer_provider is None

    def test_enabled_configures_provider(self):
        with (
            patch(
                "overcommit_webhook.observability.tracing.OTLPSpanExporter"
            ) as mock_exporter,
            patch(
                "overcommit_webhook.observability.tracing.trace.set_tracer_provider"
            ) as mock_set_provider,
        ):
            provider = setup_tracing(
                enabled=True, endpoint="http://collector:4317", sample_rate=0.5
            )

        assert isinstance(provider, TracerProvider)
        mock_exporter.assert_called_once_with(
            endpoint="http://collector:4317", insecure=True
        )
        mock_set_provider.assert_called_once_with(provider)

    def test_second_setup_is_a_no_op(self):
        with (
            patch("overcommit_webhook.observability.tracing.OTLPSpanExporter"),
            patch("overcommit_webhook.observability.tracing.trace.set_tracer_provider"),
        ):
            first = setup_tracing(enabled=True)
            second = setup_tracing(enabled=True)

        assert first is second

    def test_shutdown_flushes_provider(self):
        import overcommit_webhook.observability.tracing as tracing_module

        provider = MagicMock()
        tracing_module._tracer_provider = provider
        tracing_module._initialized = True

        shutdown_tracing()

        provider.shutdown.assert_called_once()
        assert tracing_module._tracer_provider is None
        assert tracing_module._initialized is False


class TestContextPropagation:
    def test_extracts_canonicalized_header(self):
        ctx = extract_trace_context({"Traceparent": TRACEPARENT})

        span_context = trace.get_current_span(ctx).get_span_context()
        assert format(span_context.trace_id, "032x") == TRACE_ID

    def test_missing_header_yields_invalid_span(self):
        ctx = extract_trace_context({})
        assert not trace.get_current_span(ctx).get_span_context().is_valid


class TestAdmissionSpan:
    def test_review_creates_server_span(self, in_memory_exporter):
        handler = AdmissionHandler(
            policy=OvercommitPolicy(cpu_ratio=2.0, memory_ratio=2.0),
            collector=MagicMock(),
        )
        body = (
            b'{"request": {"uid": "u-1", "namespace": "default",'
            b' "object": {"spec": {"containers": []}}}}'
        )

        handler.review(body, extract_trace_context({"traceparent": TRACEPARENT}))

        spans = in_memory_exporter.get_finished_spans()
        assert [span.name for span in spans] == ["admission.review"]
        span = spans[0]
        assert span.kind == SpanKind.SERVER
        assert format(span.context.trace_id, "032x") == TRACE_ID
        assert span.attributes["admission.uid"] == "u-1"
        assert span.attributes["admission.outcome"] == "unchanged"

    def test_get_tracer_returns_tracer(self):
        assert get_tracer("test") is not None
