"""
Rich-based terminal dashboard for speedtest results.

All formatting helpers live in ``client.stats`` -- this module only does
presentation via the ``rich`` library.  The live view is a plain session
subscriber; it never drives the measurement.
"""
from __future__ import annotations

from typing import List, Optional

from rich import box
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from client.session import MeasurementSession, Stage
from client.stats import format_bytes, format_latency, format_speed

console = Console()


# ---------------------------------------------------------------------------
# Histogram helper
# ---------------------------------------------------------------------------

_BARS = "▁▂▃▄▅▆▇█"


def create_histogram(values: List[float]) -> str:
    """Return a single-line Unicode bar-chart."""
    if not values:
        return "No data"

    lo, hi = min(values), max(values)
    span = hi - lo if hi > lo else 1.0
    return "".join(
        _BARS[min(int((v - lo) / span * (len(_BARS) - 1)), len(_BARS) - 1)]
        for v in values
    )


# ---------------------------------------------------------------------------
# Print helpers
# ---------------------------------------------------------------------------

_STAGE_TEXT = {
    Stage.IDLE: "Ready to test",
    Stage.STARTING: "Initializing...",
    Stage.PING: "Testing ping...",
    Stage.DOWNLOAD: "Testing download speed...",
    Stage.UPLOAD: "Testing upload speed...",
    Stage.COMPLETE: "Test complete!",
}

_STAGE_PROGRESS = {
    Stage.PING: 25,
    Stage.DOWNLOAD: 50,
    Stage.UPLOAD: 75,
    Stage.COMPLETE: 100,
}


def stage_text(session: MeasurementSession) -> str:
    if session.stage is Stage.ERROR:
        return session.error or "Test failed"
    return _STAGE_TEXT[session.stage]


def print_header(url: str) -> None:
    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]Speedtest HTTP[/bold cyan]\n"
            f"[dim]Adaptive multi-pass measurement against {url}[/dim]",
            border_style="cyan",
        )
    )
    console.print()


def render_session(session: MeasurementSession) -> Table:
    """Table view of one session snapshot."""
    table = Table(box=box.ROUNDED, show_header=False, padding=(0, 2))
    table.add_column(style="bold")
    table.add_column(justify="right")

    color = "red" if session.stage is Stage.ERROR else "cyan"
    table.add_row("Status", f"[{color}]{stage_text(session)}[/{color}]")
    table.add_row("Progress", f"{_STAGE_PROGRESS.get(session.stage, 0)}%")
    table.add_row("Ping", f"[yellow]{format_latency(session.ping_ms)}[/yellow]")
    table.add_row("Download", f"[green]{format_speed(session.download_mbps)}[/green]")
    table.add_row("Upload", f"[blue]{format_speed(session.upload_mbps)}[/blue]")
    return table


def print_latency_details(result) -> None:  # noqa: ANN001 (LatencyResult)
    """Print detailed latency statistics and a histogram."""
    table = Table(title="Latency Details", box=box.ROUNDED)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Trimmed mean", format_latency(result.latency_ms))
    table.add_row("Min", format_latency(result.min_ms))
    table.add_row("Max", format_latency(result.max_ms))
    table.add_row("Jitter", f"{result.jitter_ms:.2f} ms")
    table.add_row("Samples", str(len(result.samples)))
    console.print(table)

    if result.samples:
        console.print(
            Panel(
                f"[cyan]{create_histogram(result.samples)}[/cyan]",
                title="Ping Histogram",
            )
        )


def print_speed_result(result, title: str, color: str = "green") -> None:  # noqa: ANN001
    """Print a download or upload result with its per-pass breakdown."""
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("Pass", style="dim")
    table.add_column("Data", justify="right")
    table.add_column("Duration", justify="right")
    table.add_column("Speed", justify="right")

    for i, p in enumerate(result.passes, start=1):
        table.add_row(
            str(i),
            format_bytes(p.bytes_transferred),
            f"{p.duration_ms / 1000:.1f} s",
            format_speed(p.speed_mbps),
        )
    table.add_row(
        "[bold]Result[/bold]",
        format_bytes(result.bytes_total),
        f"{result.duration_ms / 1000:.1f} s",
        f"[bold {color}]{format_speed(result.speed_mbps)}[/bold {color}]",
    )
    console.print(table)


def print_final_results(session: MeasurementSession, url: str) -> None:
    console.print()
    if session.stage is Stage.ERROR:
        console.print(
            Panel.fit(
                f"[bold red]{stage_text(session)}[/bold red]",
                title="[bold]Failed[/bold]",
                border_style="red",
            )
        )
        return

    console.print(
        Panel.fit(
            f"[bold cyan]Server:[/bold cyan] {url}\n\n"
            f"[bold white]   Ping:[/bold white]  [bold yellow]{format_latency(session.ping_ms)}[/bold yellow]\n"
            f"[bold white]   Download:[/bold white]  [bold green]{format_speed(session.download_mbps)}[/bold green]\n"
            f"[bold white]   Upload:[/bold white]  [bold blue]{format_speed(session.upload_mbps)}[/bold blue]",
            title="[bold]Results[/bold]",
            border_style="cyan",
        )
    )
    console.print()


# ---------------------------------------------------------------------------
# Live display
# ---------------------------------------------------------------------------

class LiveSessionDisplay:
    """Keeps a ``rich`` live table in sync with published session snapshots."""

    def __init__(self, refresh_per_second: float = 10) -> None:
        self._live: Optional[Live] = None
        self._refresh = refresh_per_second
        self.last: Optional[MeasurementSession] = None

    def start(self) -> None:
        self._live = Live(
            render_session(MeasurementSession()),
            console=console,
            refresh_per_second=self._refresh,
            transient=True,
        )
        self._live.start()

    def __call__(self, session: MeasurementSession) -> None:
        self.last = session
        if self._live is not None:
            # Live repaints on its own thread; update() only swaps the renderable
            self._live.update(render_session(session))

    def stop(self) -> None:
        if self._live is not None:
            self._live.stop()
            self._live = None
