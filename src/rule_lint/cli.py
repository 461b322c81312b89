from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import List, Optional

import typer
from opentelemetry.sdk.trace.export import ConsoleSpanExporter

from .errors import RootNotFoundError
from .pipeline import run_lint
from .reporting import EXIT_DOCUMENT_ERRORS, exit_code, render_errors, render_json, render_report
from .settings import load_settings
from .tracing import configure_tracing, get_tracer

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ("text", "json")
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

app = typer.Typer(add_completion=False, help="Find contradicting directives across agent rule documents.")


def _configure_logging(level: str) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr, force=True)


@app.command()
def lint(
    root: Path = typer.Argument(..., help="Directory tree containing rule documents."),
    output_format: Optional[str] = typer.Option(None, "--format", "-f", help="Report format: text or json."),
    extensions: Optional[List[str]] = typer.Option(
        None, "--ext", help="File suffix to treat as a rule document (repeatable)."
    ),
    cross_strength: bool = typer.Option(
        False, "--cross-strength", help="Also flag REQUIRE/DISCOURAGE and RECOMMEND/FORBID pairs."
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level for diagnostics."),
    trace_enabled: Optional[bool] = typer.Option(
        None, "--trace/--no-trace", help="Record OpenTelemetry spans for each stage."
    ),
    otlp_endpoint: Optional[str] = typer.Option(None, "--otlp-endpoint", help="OTLP HTTP endpoint for spans."),
) -> None:
    """Lint rule documents under ROOT and report conflicting directives."""
    settings, tracing_settings = load_settings()

    level = (log_level or settings.log_level).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise typer.BadParameter(f"unknown log level {level!r}", param_hint="--log-level")
    _configure_logging(level)

    chosen_format = (output_format or settings.output_format).lower()
    if chosen_format not in OUTPUT_FORMATS:
        raise typer.BadParameter(
            f"expected one of {', '.join(OUTPUT_FORMATS)}, got {chosen_format!r}", param_hint="--format"
        )

    endpoint = otlp_endpoint or tracing_settings.endpoint
    if trace_enabled is None:
        trace_enabled = tracing_settings.enabled or otlp_endpoint is not None
    if trace_enabled:
        configure_tracing(
            endpoint=endpoint,
            service_name=tracing_settings.service_name,
            exporter=None if endpoint else ConsoleSpanExporter(out=sys.stderr),
        )

    try:
        result = run_lint(
            root,
            extensions=tuple(extensions) if extensions else settings.extensions,
            cross_strength=cross_strength or settings.cross_strength,
            tracer=get_tracer("rule-lint"),
        )
    except RootNotFoundError as exc:
        typer.echo(f"rule-lint: {exc}", err=True)
        raise typer.Exit(code=EXIT_DOCUMENT_ERRORS)

    rendered = render_json(result) if chosen_format == "json" else render_report(result)
    typer.echo(rendered, nl=False)
    if result.errors:
        typer.echo(render_errors(result), err=True, nl=False)
    raise typer.Exit(code=exit_code(result))


def main() -> None:
    app()
