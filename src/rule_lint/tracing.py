"""OpenTelemetry tracing helpers for the lint pipeline.

Every pipeline stage (load, parse, extract, detect) can run inside its own
span, nested under one parent span per run, so a slow or failing stage shows
up directly in a trace viewer.

Usage with an OTLP collector:

    from rule_lint.tracing import configure_tracing, get_tracer

    configure_tracing(endpoint="http://localhost:4318/v1/traces")
    tracer = get_tracer("rule-lint")

Usage without a backend (spans printed to stdout):

    configure_tracing()
"""
from __future__ import annotations

from collections.abc import Sized
from typing import Any, Callable

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource, SERVICE_NAME
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    ConsoleSpanExporter,
    SimpleSpanProcessor,
    SpanExporter,
)

ATTR_STAGE = "rule_lint.stage"
ATTR_INPUT_COUNT = "rule_lint.input_count"
ATTR_OUTPUT_COUNT = "rule_lint.output_count"
ATTR_ROOT = "rule_lint.root"
ATTR_DOCUMENTS = "rule_lint.documents"
ATTR_RULES = "rule_lint.rules"
ATTR_FINDINGS = "rule_lint.findings"
ATTR_ERRORS = "rule_lint.errors"

_provider: TracerProvider | None = None


def configure_tracing(
    endpoint: str | None = None,
    service_name: str = "rule-lint",
    exporter: SpanExporter | None = None,
) -> TracerProvider:
    """Create and register a global TracerProvider.

    Args:
        endpoint: OTLP HTTP endpoint to export spans to. When *None* and no
            *exporter* is given, spans are printed by
            :class:`~opentelemetry.sdk.trace.export.ConsoleSpanExporter`.
        service_name: Service label attached to every span.
        exporter: Pre-built exporter (e.g. ``InMemorySpanExporter`` in tests).
            Takes precedence over *endpoint*.

    Returns:
        The configured provider, also installed as the global OTel provider.
    """
    global _provider

    resource = Resource(attributes={SERVICE_NAME: service_name})
    provider = TracerProvider(resource=resource)

    if exporter is not None:
        chosen_exporter: SpanExporter = exporter
    elif endpoint is not None:
        try:
            from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
                OTLPSpanExporter,
            )
        except ImportError as exc:  # pragma: no cover
            raise ImportError(
                "opentelemetry-exporter-otlp-proto-http is required to export "
                "traces to an OTLP endpoint.  Install it with:\n"
                "  pip install 'rule-lint[otlp]'"
            ) from exc
        chosen_exporter = OTLPSpanExporter(endpoint=endpoint)
    else:
        chosen_exporter = ConsoleSpanExporter()

    # Runs are short-lived batch jobs; export each span as soon as it ends.
    provider.add_span_processor(SimpleSpanProcessor(chosen_exporter))
    trace.set_tracer_provider(provider)
    _provider = provider
    return provider


def get_tracer(name: str) -> trace.Tracer:
    """Return a tracer from the configured provider, or the global no-op one."""
    if _provider is not None:
        return _provider.get_tracer(name)
    return trace.get_tracer(name)


def traced_stage(
    name: str,
    stage: Callable[[Any], Any],
    tracer: trace.Tracer,
) -> Callable[[Any], Any]:
    """Wrap a single-argument pipeline stage so each call is recorded as a span.

    The span is named *name* and records:

    - ``rule_lint.stage``: the stage name
    - ``rule_lint.input_count`` / ``rule_lint.output_count``: lengths of the
      stage's input and output when they are sized collections
    - span status: OK on success, ERROR on exception (which is re-raised)
    """

    def _wrapped(payload: Any) -> Any:
        with tracer.start_as_current_span(name) as span:
            span.set_attribute(ATTR_STAGE, name)
            if isinstance(payload, Sized):
                span.set_attribute(ATTR_INPUT_COUNT, len(payload))
            try:
                output = stage(payload)
                if isinstance(output, Sized):
                    span.set_attribute(ATTR_OUTPUT_COUNT, len(output))
                span.set_status(trace.StatusCode.OK)
                return output
            except Exception as exc:
                span.set_status(trace.StatusCode.ERROR, str(exc))
                span.record_exception(exc)
                raise

    return _wrapped
