"""
Measurement orchestrator.

Runs ``latency -> download -> upload`` against one endpoint, owning the
single :class:`~client.session.MeasurementSession` of the run and publishing
a snapshot of it after every update::

    idle -> starting -> ping -> download -> upload -> complete
                 \\         \\         \\          \\
                  +---------+---------+----------+--> error

Entering a stage resets only that stage's metric.  A failure moves the
session to ``error``, zeroes every metric that was not already final, and
stops the run.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional, Set

import aiohttp

from .api import Endpoint
from .constants import COMMON_HEADERS, CONNECT_TIMEOUT, DEFAULT_PASSES, DEFAULT_PING_COUNT
from .download import DownloadSampler
from .errors import SessionBusyError, SpeedtestError
from .latency import LatencyProber, LatencyResult
from .sampling import DirectionResult, PassThresholds
from .session import MeasurementSession, SessionListener, SessionPublisher, Stage
from .upload import UploadSampler

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], aiohttp.ClientSession]

_METRIC_BY_STAGE = {
    Stage.PING: "ping_ms",
    Stage.DOWNLOAD: "download_mbps",
    Stage.UPLOAD: "upload_mbps",
}


def default_session_factory() -> aiohttp.ClientSession:
    timeout = aiohttp.ClientTimeout(total=None, connect=CONNECT_TIMEOUT)
    return aiohttp.ClientSession(headers=COMMON_HEADERS, timeout=timeout)


class MeasurementOrchestrator:
    """Sequences the three measurements and owns the session record."""

    def __init__(
        self,
        endpoint: Endpoint,
        ping_count: int = DEFAULT_PING_COUNT,
        passes: int = DEFAULT_PASSES,
        download_thresholds: Optional[PassThresholds] = None,
        upload_thresholds: Optional[PassThresholds] = None,
        session_factory: SessionFactory = default_session_factory,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.endpoint = endpoint
        self.prober = LatencyProber(endpoint, ping_count=ping_count, clock=clock)
        self.downloader = DownloadSampler(
            endpoint, thresholds=download_thresholds, passes=passes, clock=clock
        )
        self.uploader = UploadSampler(
            endpoint, thresholds=upload_thresholds, passes=passes, clock=clock
        )
        self._session_factory = session_factory
        self._publisher = SessionPublisher()
        self._session = MeasurementSession()
        self._completed: Set[Stage] = set()
        self._running = False

        self.latency_result: Optional[LatencyResult] = None
        self.download_result: Optional[DirectionResult] = None
        self.upload_result: Optional[DirectionResult] = None

        self.prober.on_sample = lambda ms: self._update(ping_ms=ms)
        self.downloader.on_progress = lambda mbps: self._update(download_mbps=mbps)
        self.downloader.on_aggregate = lambda mbps: self._update(download_mbps=mbps)
        self.uploader.on_progress = lambda mbps: self._update(upload_mbps=mbps)
        self.uploader.on_aggregate = lambda mbps: self._update(upload_mbps=mbps)

    # -- Public API ---------------------------------------------------------

    @property
    def session(self) -> MeasurementSession:
        """A copy of the current session state."""
        return self._session.snapshot()

    @property
    def is_running(self) -> bool:
        return self._running

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        return self._publisher.subscribe(listener)

    def reset(self) -> None:
        """Return a finished session to ``idle``."""
        if self._running:
            raise SessionBusyError("Cannot reset while a measurement is running")
        self._session = MeasurementSession()
        self._completed.clear()
        self._publish()

    async def run(self) -> MeasurementSession:
        """Execute one full run; the returned session is terminal."""
        if self._running:
            raise SessionBusyError("A measurement is already running")
        self._running = True

        try:
            self._start_run()
            async with self._session_factory() as http:
                await self._run_latency(http)
                await self._run_download(http)
                await self._run_upload(http)
            self._finish()
        except SpeedtestError as exc:
            self._fail(str(exc))
        except asyncio.TimeoutError:
            self._fail("Connection timed out")
        except (aiohttp.ClientError, OSError) as exc:
            self._fail(f"Connection error: {exc}")
        finally:
            self._running = False

        return self.session

    # -- Stages -------------------------------------------------------------

    def _start_run(self) -> None:
        self._completed.clear()
        self.latency_result = None
        self.download_result = None
        self.upload_result = None
        self._session = MeasurementSession(stage=Stage.STARTING)
        self._publish()
        logger.info("Starting measurement against %s", self.endpoint.base_url)

    async def _run_latency(self, http: aiohttp.ClientSession) -> None:
        self._enter(Stage.PING)
        self.latency_result = await self.prober.probe(http)
        self._complete(Stage.PING, self.latency_result.latency_ms)

    async def _run_download(self, http: aiohttp.ClientSession) -> None:
        self._enter(Stage.DOWNLOAD)
        self.download_result = await self.downloader.measure(http)
        self._complete(Stage.DOWNLOAD, self.download_result.speed_mbps)

    async def _run_upload(self, http: aiohttp.ClientSession) -> None:
        self._enter(Stage.UPLOAD)
        self.upload_result = await self.uploader.measure(http)
        self._complete(Stage.UPLOAD, self.upload_result.speed_mbps)

    def _enter(self, stage: Stage) -> None:
        self._session.stage = stage
        setattr(self._session, _METRIC_BY_STAGE[stage], 0.0)
        self._publish()

    def _complete(self, stage: Stage, value: float) -> None:
        setattr(self._session, _METRIC_BY_STAGE[stage], value)
        self._completed.add(stage)
        self._publish()
        logger.info("%s finished: %.2f", stage.value.capitalize(), value)

    def _finish(self) -> None:
        self._session.stage = Stage.COMPLETE
        self._publish()

    def _fail(self, cause: str) -> None:
        failed_stage = self._session.stage
        for stage, metric in _METRIC_BY_STAGE.items():
            if stage not in self._completed:
                setattr(self._session, metric, 0.0)
        self._session.stage = Stage.ERROR
        self._session.error = f"{failed_stage.value.capitalize()} failed: {cause}"
        self._publish()
        logger.error("Measurement aborted: %s", self._session.error)

    # -- Publication --------------------------------------------------------

    def _update(self, **changes: float) -> None:
        for name, value in changes.items():
            setattr(self._session, name, value)
        self._publish()

    def _publish(self) -> None:
        self._publisher.publish(self._session)
