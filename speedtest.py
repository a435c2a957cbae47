#!/usr/bin/env python3
"""
Speedtest HTTP -- adaptive latency / download / upload measurement.

Usage::

    python speedtest.py --serve                       # run the test server
    python speedtest.py --url http://host:8080        # rich live dashboard
    python speedtest.py --simple                      # plain text
    python speedtest.py --json                        # JSON to stdout
    python speedtest.py --passes 5 --max-duration 8   # tune the passes
    python speedtest.py --show-config                 # effective settings
    python speedtest.py --set-config passes=5         # persist a setting
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict, Optional, Tuple

from rich.console import Console
from rich.logging import RichHandler

from client.api import Endpoint
from client.config import config_path, get_config_value, load_config, set_config_value
from client.constants import (
    MAX_ALLOWED_DURATION_MS,
    MAX_PASSES,
    MAX_PING_COUNT,
    MIN_PASSES,
    MIN_PING_COUNT,
)
from client.orchestrator import MeasurementOrchestrator
from client.sampling import PassThresholds
from client.session import Stage
from server.app import run_server
from ui.dashboard import (
    LiveSessionDisplay,
    console,
    print_final_results,
    print_header,
    print_latency_details,
    print_speed_result,
)
from ui.output import create_result_json, format_text_result

logger = logging.getLogger("speedtest")


# ---------------------------------------------------------------------------
# Parameter validation
# ---------------------------------------------------------------------------

def _validate(
    ping_count: int,
    passes: int,
    min_bytes: int,
    min_duration_ms: float,
    max_duration_ms: float,
    port: int = 8080,
) -> None:
    """Raise ``ValueError`` if any parameter is out of range."""
    if not MIN_PING_COUNT <= ping_count <= MAX_PING_COUNT:
        raise ValueError(f"Ping count must be between {MIN_PING_COUNT} and {MAX_PING_COUNT}")
    if not MIN_PASSES <= passes <= MAX_PASSES:
        raise ValueError(f"Passes must be between {MIN_PASSES} and {MAX_PASSES}")
    if min_bytes < 0:
        raise ValueError("Minimum pass bytes must not be negative")
    if min_duration_ms < 0:
        raise ValueError("Minimum pass duration must not be negative")
    if not 0 < max_duration_ms <= MAX_ALLOWED_DURATION_MS:
        raise ValueError(
            f"Maximum pass duration must be between 0 and {MAX_ALLOWED_DURATION_MS / 1000:.0f} s"
        )
    if max_duration_ms < min_duration_ms:
        raise ValueError("Maximum pass duration must not be shorter than the minimum")
    if not 0 < port < 65536:
        raise ValueError("Port must be between 1 and 65535")


def _parse_config_assignment(text: str) -> Tuple[str, Any]:
    """Split ``KEY=VALUE``; the value is read as JSON when it parses, else kept as text."""
    key, sep, raw = text.partition("=")
    key = key.strip()
    if not sep or not key:
        raise ValueError(f"Expected KEY=VALUE, got {text!r}")
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        value = raw
    return key, value


def _log_handler(verbose: bool) -> RichHandler:
    # stdout carries the results (JSON in --json mode); log records go to stderr
    return RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=verbose)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[_log_handler(verbose)],
    )
    # aiohttp's access log is noisy at debug level
    logging.getLogger("aiohttp.access").setLevel(logging.INFO if verbose else logging.WARNING)


# ---------------------------------------------------------------------------
# Core test runner
# ---------------------------------------------------------------------------

async def run_speedtest(
    url: str,
    *,
    json_output: bool = False,
    simple: bool = False,
    ping_count: int,
    passes: int,
    thresholds: PassThresholds,
) -> Dict[str, Any]:
    """Execute one full run and return a JSON-serialisable dict."""

    show_ui = not json_output and not simple
    endpoint = Endpoint.from_url(url)

    if show_ui:
        print_header(endpoint.base_url)

    orchestrator = MeasurementOrchestrator(
        endpoint,
        ping_count=ping_count,
        passes=passes,
        download_thresholds=thresholds,
        upload_thresholds=thresholds,
    )

    display: Optional[LiveSessionDisplay] = None
    if show_ui:
        display = LiveSessionDisplay()
        orchestrator.subscribe(display)
        display.start()

    try:
        session = await orchestrator.run()
    finally:
        if display is not None:
            display.stop()

    if show_ui:
        if orchestrator.latency_result is not None:
            print_latency_details(orchestrator.latency_result)
        if orchestrator.download_result is not None:
            print_speed_result(orchestrator.download_result, "Download Results", "green")
        if orchestrator.upload_result is not None:
            print_speed_result(orchestrator.upload_result, "Upload Results", "blue")
        print_final_results(session, endpoint.base_url)
    elif simple:
        print(
            format_text_result(
                ping_ms=session.ping_ms,
                download_mbps=session.download_mbps,
                upload_mbps=session.upload_mbps,
                server_url=endpoint.base_url,
                error=session.error,
            )
        )

    result_json = create_result_json(
        server_info=endpoint.to_dict(),
        session=session.to_dict(),
        latency_results=(
            orchestrator.latency_result.to_dict() if orchestrator.latency_result else None
        ),
        download_results=(
            orchestrator.download_result.to_dict() if orchestrator.download_result else None
        ),
        upload_results=(
            orchestrator.upload_result.to_dict() if orchestrator.upload_result else None
        ),
        settings={"ping_count": ping_count, "passes": passes, **thresholds.to_dict()},
    )

    if json_output:
        print(json.dumps(result_json, indent=2))

    return result_json


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def build_parser(config: Dict[str, Any]) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Speedtest HTTP -- adaptive latency and throughput measurement",
    )
    # Server mode
    parser.add_argument("--serve", action="store_true", help="Run the speed test server instead of a test")
    parser.add_argument("--host", type=str, default=config["host"], help=f"Server bind address (default: {config['host']})")
    parser.add_argument("--port", type=int, default=config["port"], help=f"Server port (default: {config['port']})")

    # Client target
    parser.add_argument("--url", "-u", type=str, default=config["url"], help=f"Server base URL (default: {config['url']})")

    # Output modes
    parser.add_argument("--json", "-j", action="store_true", help="Output results as JSON")
    parser.add_argument("--simple", "-s", action="store_true", help="Simple output mode (no dashboard)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--show-config", action="store_true", help="Print the effective configuration and exit")
    parser.add_argument("--set-config", action="append", default=[], metavar="KEY=VALUE", help="Persist a config value and exit (repeatable)")

    # Test parameters
    parser.add_argument("--ping-count", type=int, default=config["ping_count"], metavar="N", help=f"Number of ping samples (default: {config['ping_count']})")
    parser.add_argument("--passes", type=int, default=config["passes"], metavar="N", help=f"Passes per direction (default: {config['passes']})")
    parser.add_argument("--min-bytes", type=int, default=config["min_pass_bytes"], metavar="BYTES", help="Bytes a pass must move before it may stop")
    parser.add_argument("--min-duration", type=float, default=config["min_pass_duration_ms"] / 1000, metavar="SECS", help="Seconds a pass must run before it may stop")
    parser.add_argument("--max-duration", type=float, default=config["max_pass_duration_ms"] / 1000, metavar="SECS", help="Hard time limit of a pass in seconds")
    return parser


def main() -> None:
    config = load_config()
    args = build_parser(config).parse_args()

    _configure_logging(args.verbose)

    if args.show_config:
        console.print(f"[bold]Config file:[/bold] {config_path()}")
        console.print_json(json.dumps(config))
        return

    if args.set_config:
        try:
            for assignment in args.set_config:
                key, value = _parse_config_assignment(assignment)
                path = set_config_value(key, value)
                console.print(f"{key} = {get_config_value(key)!r}")
        except (KeyError, ValueError) as exc:
            console.print(f"[red]Error: {exc}[/red]")
            sys.exit(1)
        console.print(f"[dim]Saved to {path}[/dim]")
        return

    min_duration_ms = args.min_duration * 1000
    max_duration_ms = args.max_duration * 1000

    # Validate
    try:
        _validate(
            ping_count=args.ping_count,
            passes=args.passes,
            min_bytes=args.min_bytes,
            min_duration_ms=min_duration_ms,
            max_duration_ms=max_duration_ms,
            port=args.port,
        )
        Endpoint.from_url(args.url)
    except ValueError as exc:
        console.print(f"[red]Error: {exc}[/red]")
        sys.exit(1)

    # Server mode
    if args.serve:
        run_server(host=args.host, port=args.port)
        return

    thresholds = PassThresholds(
        min_bytes=args.min_bytes,
        min_duration_ms=min_duration_ms,
        max_duration_ms=max_duration_ms,
    )

    try:
        result = asyncio.run(
            run_speedtest(
                args.url,
                json_output=args.json,
                simple=args.simple,
                ping_count=args.ping_count,
                passes=args.passes,
                thresholds=thresholds,
            )
        )
    except KeyboardInterrupt:
        console.print("\n[yellow]Test cancelled by user[/yellow]")
        sys.exit(1)

    if result["stage"] == Stage.ERROR.value:
        sys.exit(1)


if __name__ == "__main__":
    main()
