"""UI layer -- Rich dashboard and output formatters."""

from .dashboard import (
    LiveSessionDisplay,
    console,
    create_histogram,
    print_final_results,
    print_header,
    print_latency_details,
    print_speed_result,
    render_session,
    stage_text,
)
from .output import create_result_json, format_text_result

__all__ = [
    "LiveSessionDisplay",
    "console",
    "create_histogram",
    "create_result_json",
    "format_text_result",
    "print_final_results",
    "print_header",
    "print_latency_details",
    "print_speed_result",
    "render_session",
    "stage_text",
]
