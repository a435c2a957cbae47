"""
Measurement session record and its publication channel.

The orchestrator is the only writer of a :class:`MeasurementSession`.  Every
change is pushed to subscribers as an independent copy, so a presentation
layer can hold on to what it received without seeing later mutations.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    """Named phase of a measurement run."""

    IDLE = "idle"
    STARTING = "starting"
    PING = "ping"
    DOWNLOAD = "download"
    UPLOAD = "upload"
    COMPLETE = "complete"
    ERROR = "error"

    @property
    def is_active(self) -> bool:
        return self in (Stage.STARTING, Stage.PING, Stage.DOWNLOAD, Stage.UPLOAD)

    @property
    def is_terminal(self) -> bool:
        return self in (Stage.COMPLETE, Stage.ERROR)


@dataclass
class MeasurementSession:
    """Progress of a single test run."""

    stage: Stage = Stage.IDLE
    ping_ms: float = 0.0
    download_mbps: float = 0.0
    upload_mbps: float = 0.0
    error: Optional[str] = None

    def snapshot(self) -> MeasurementSession:
        return replace(self)

    def to_dict(self) -> dict:
        result: dict = {
            "stage": self.stage.value,
            "ping": round(self.ping_ms, 2),
            "download": round(self.download_mbps, 2),
            "upload": round(self.upload_mbps, 2),
        }
        if self.error is not None:
            result["error"] = self.error
        return result


SessionListener = Callable[[MeasurementSession], None]


class SessionPublisher:
    """Fan-out of session snapshots to registered listeners."""

    def __init__(self) -> None:
        self._listeners: List[SessionListener] = []

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register *listener*; the returned callable unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def publish(self, session: MeasurementSession) -> None:
        for listener in list(self._listeners):
            try:
                listener(session.snapshot())
            except Exception:
                # A broken display must not stop the measurement.
                logger.exception("Session listener %r failed", listener)
