"""Speedtest client library -- measurement core, networking, and statistics."""

from .api import Endpoint
from .download import DownloadSampler
from .errors import (
    EmptyUploadError,
    ProtocolError,
    SessionBusyError,
    SpeedtestError,
    TransportError,
)
from .latency import LatencyProber, LatencyResult
from .orchestrator import MeasurementOrchestrator
from .sampling import (
    DirectionResult,
    PassResult,
    PassThresholds,
    PassTracker,
    ThroughputSampler,
    should_stop_pass,
)
from .session import MeasurementSession, SessionPublisher, Stage
from .stats import (
    bytes_to_mbps,
    calculate_jitter,
    format_bytes,
    format_latency,
    format_speed,
    trimmed_mean,
)
from .upload import UploadSampler

__all__ = [
    "DirectionResult",
    "DownloadSampler",
    "EmptyUploadError",
    "Endpoint",
    "LatencyProber",
    "LatencyResult",
    "MeasurementOrchestrator",
    "MeasurementSession",
    "PassResult",
    "PassThresholds",
    "PassTracker",
    "ProtocolError",
    "SessionBusyError",
    "SessionPublisher",
    "SpeedtestError",
    "Stage",
    "ThroughputSampler",
    "TransportError",
    "UploadSampler",
    "bytes_to_mbps",
    "calculate_jitter",
    "format_bytes",
    "format_latency",
    "format_speed",
    "should_stop_pass",
    "trimmed_mean",
]
