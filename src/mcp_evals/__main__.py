"""Command line entry point for MCP evaluations."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from prometheus_client import CollectorRegistry

from mcp_evals import __version__
from mcp_evals.config import EvalSettings, LogLevel
from mcp_evals.connections import ConnectionManager
from mcp_evals.errors import ConfigurationError, McpEvalsError
from mcp_evals.loaders import load_configuration
from mcp_evals.metrics import (
    CompositeMetricsCollector,
    InMemoryMetricsCollector,
    LoggingMetricsCollector,
    PrometheusMetricsCollector,
)
from mcp_evals.metrics_server import (
    DEFAULT_METRICS_HOST,
    DEFAULT_METRICS_PORT,
    build_metrics_server,
    serve_metrics,
)
from mcp_evals.orchestrator import EvaluationOrchestrator
from mcp_evals.process_manager import ServerProcessManager
from mcp_evals.providers import create_language_model
from mcp_evals.reporting import FORMATS, format_results
from mcp_evals.scoring import LLMEvaluationScorer
from mcp_evals.validation import validate_configuration

logger = logging.getLogger("mcp_evals")


def setup_logging(level: LogLevel) -> None:
    """Configure logging for the harness."""
    logging.basicConfig(
        level=level.value,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="mcp-evals",
        description="Evaluate MCP servers with LLM-planned tool calls",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # evaluate subcommand
    evaluate_parser = subparsers.add_parser("evaluate", help="Run an evaluation suite")
    evaluate_parser.add_argument("config_path", help="Path to a YAML or JSON suite file")
    evaluate_parser.add_argument("-o", "--output", default=None, help="Write the report to this file")
    evaluate_parser.add_argument(
        "-f", "--format", choices=FORMATS, default="clean",
        help="Report format (default: clean)",
    )
    evaluate_parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    evaluate_parser.add_argument(
        "-p", "--parallel", type=int, default=None,
        help="Maximum concurrent evaluations (default: CPU count)",
    )
    evaluate_parser.add_argument("--api-key", default=None, help="API key for the language model")
    evaluate_parser.add_argument("--endpoint", default=None, help="Endpoint for Azure OpenAI or a compatible API")
    evaluate_parser.add_argument(
        "--enable-metrics", action="store_true",
        help="Log evaluation events and a metrics summary",
    )
    evaluate_parser.add_argument(
        "--metrics-port", type=int, default=None,
        help="Expose Prometheus metrics on this port while the run lasts (implies --enable-metrics)",
    )

    # validate subcommand
    validate_parser = subparsers.add_parser("validate", help="Check a suite file")
    validate_parser.add_argument("config_path", help="Path to a YAML or JSON suite file")
    validate_parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    validate_parser.add_argument(
        "-c", "--check-connectivity", action="store_true",
        help="Also connect to the server and list its tools",
    )

    # serve-metrics subcommand
    serve_parser = subparsers.add_parser("serve-metrics", help="Start a Prometheus metrics server")
    serve_parser.add_argument(
        "-p", "--port", type=int, default=DEFAULT_METRICS_PORT,
        help=f"Port to serve metrics on (default: {DEFAULT_METRICS_PORT})",
    )
    serve_parser.add_argument(
        "--host", default=DEFAULT_METRICS_HOST,
        help=f"Host to bind to (default: {DEFAULT_METRICS_HOST})",
    )
    serve_parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    return parser.parse_args(argv)


async def run_evaluate(args: argparse.Namespace, settings: EvalSettings) -> int:
    """Run an evaluation suite and write its report."""
    config_path = Path(args.config_path)
    try:
        config = load_configuration(config_path)
        llm = create_language_model(config.model, settings, api_key=args.api_key, endpoint=args.endpoint)
    except (McpEvalsError, ValueError) as e:
        logger.error(f"Configuration error: {e}")
        return 1

    enable_metrics = args.enable_metrics or args.metrics_port is not None
    summary = InMemoryMetricsCollector()
    registry = CollectorRegistry()
    metrics = (
        CompositeMetricsCollector(LoggingMetricsCollector(), summary, PrometheusMetricsCollector(registry))
        if enable_metrics
        else None
    )

    metrics_server = None
    server_task = None
    if args.metrics_port is not None:
        metrics_server = build_metrics_server(port=args.metrics_port, registry=registry)
        server_task = asyncio.create_task(metrics_server.serve())
        logger.info(f"Serving run metrics on http://{DEFAULT_METRICS_HOST}:{args.metrics_port}/metrics")

    connections = ConnectionManager(process_manager=ServerProcessManager(settings), metrics=metrics)
    scorer = LLMEvaluationScorer(llm, max_tokens=config.model.max_tokens, temperature=config.model.temperature)
    orchestrator = EvaluationOrchestrator(llm, scorer, connections, metrics=metrics)

    try:
        run = await orchestrator.run_all_evaluations(config, parallelism=args.parallel or settings.parallelism)
    finally:
        if metrics_server is not None and server_task is not None:
            metrics_server.should_exit = True
            await server_task

    output = format_results(run, args.format)

    if args.output:
        Path(args.output).write_text(output, encoding="utf-8")
        logger.info(f"Report written to {args.output}")
    else:
        print(output)
        if args.format == "clean":
            report_path = config_path.with_suffix(".md")
            report_path.write_text(output, encoding="utf-8")
            logger.info(f"Report saved to {report_path}")

    if enable_metrics:
        logger.info(f"Metrics summary: {summary.snapshot().model_dump_json()}")

    return 0 if run.all_succeeded else 1


async def run_validate(args: argparse.Namespace, settings: EvalSettings) -> int:
    """Validate a suite file, optionally checking server connectivity."""
    try:
        config = load_configuration(args.config_path)
    except ConfigurationError as e:
        print(f"Configuration error: {e}")
        return 1

    errors = validate_configuration(config)

    if args.check_connectivity and not errors:
        async with ConnectionManager(process_manager=ServerProcessManager(settings)) as connections:
            try:
                if not await connections.test_connection(config.server):
                    errors.append("Unable to connect to MCP server")
            except McpEvalsError as e:
                errors.append(f"Connectivity check failed: {e}")

    if errors:
        print(f"Configuration is invalid: {args.config_path}")
        for error in errors:
            print(f"  - {error}")
        return 1

    print(f"Configuration is valid: {args.config_path} ({len(config.evaluations)} evaluations)")
    return 0


async def run_serve_metrics(args: argparse.Namespace) -> int:
    """Serve Prometheus metrics until interrupted."""
    print(f"Serving metrics on http://{args.host}:{args.port}/metrics")
    try:
        await serve_metrics(args.host, args.port)
    except OSError as e:
        logger.error(f"Failed to start metrics server: {e}")
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    settings = EvalSettings()
    setup_logging(LogLevel.DEBUG if args.verbose else settings.log_level)

    try:
        if args.command == "evaluate":
            return asyncio.run(run_evaluate(args, settings))
        if args.command == "serve-metrics":
            return asyncio.run(run_serve_metrics(args))
        return asyncio.run(run_validate(args, settings))
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
