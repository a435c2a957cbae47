"""Full client runs against real aiohttp servers over loopback."""

import asyncio
import json
import os
import sys
import tempfile
import time
import unittest

from aiohttp import web
from aiohttp.test_utils import AioHTTPTestCase

from client.api import Endpoint
from client.constants import DOWNLOAD_PATH, PING_PATH
from client.download import DownloadSampler
from client.errors import TransportError
from client.latency import LatencyProber
from client.orchestrator import MeasurementOrchestrator, default_session_factory
from client.sampling import PassThresholds
from client.session import Stage
from server.app import create_app


QUICK = PassThresholds(min_bytes=256 * 1024, min_duration_ms=50, max_duration_ms=2000)
REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


class TestLoopbackRun(AioHTTPTestCase):
    async def get_application(self):
        return create_app()

    def _orchestrator(self, url=None):
        endpoint = Endpoint.from_url(url or str(self.client.make_url("/")))
        return MeasurementOrchestrator(
            endpoint,
            ping_count=5,
            passes=3,
            download_thresholds=QUICK,
            upload_thresholds=QUICK,
        )

    async def test_complete_run(self):
        orchestrator = self._orchestrator()
        stages = []
        orchestrator.subscribe(lambda s: stages.append(s.stage))

        session = await orchestrator.run()

        self.assertEqual(session.stage, Stage.COMPLETE, session.error)
        self.assertGreater(session.ping_ms, 0.0)
        self.assertGreater(session.download_mbps, 0.0)
        self.assertGreater(session.upload_mbps, 0.0)
        self.assertEqual(stages[-1], Stage.COMPLETE)
        self.assertEqual(len(orchestrator.download_result.passes), 3)
        for p in orchestrator.upload_result.passes:
            self.assertGreaterEqual(p.bytes_transferred, 256 * 1024)

    async def test_unreachable_server_ends_in_error(self):
        orchestrator = self._orchestrator("http://127.0.0.1:9")
        session = await orchestrator.run()
        self.assertEqual(session.stage, Stage.ERROR)
        self.assertIn("Ping failed", session.error)
        self.assertEqual((session.ping_ms, session.download_mbps, session.upload_mbps), (0.0, 0.0, 0.0))


class TestStallingServer(AioHTTPTestCase):
    """A server that accepts connections but never sends response headers."""

    async def get_application(self):
        self.release = asyncio.Event()

        async def stall(request):
            await self.release.wait()
            return web.Response(text="late")

        app = web.Application()
        app.router.add_get(PING_PATH, stall)
        app.router.add_get(DOWNLOAD_PATH, stall)
        return app

    async def asyncTearDown(self):
        self.release.set()
        await super().asyncTearDown()

    def _endpoint(self):
        return Endpoint.from_url(str(self.client.make_url("/")))

    async def test_download_pass_ends_at_ceiling(self):
        thresholds = PassThresholds(min_bytes=1024, min_duration_ms=0, max_duration_ms=500)
        sampler = DownloadSampler(self._endpoint(), thresholds=thresholds, passes=1)
        started = time.perf_counter()
        async with default_session_factory() as http:
            result = await asyncio.wait_for(sampler.measure(http), timeout=5.0)
        self.assertLess(time.perf_counter() - started, 3.0)
        self.assertEqual(result.passes[0].bytes_transferred, 0)
        self.assertEqual(result.speed_mbps, 0.0)

    async def test_ping_times_out(self):
        prober = LatencyProber(self._endpoint(), ping_count=5, timeout=0.5)
        started = time.perf_counter()
        async with default_session_factory() as http:
            with self.assertRaises(TransportError):
                await asyncio.wait_for(prober.probe(http), timeout=5.0)
        self.assertLess(time.perf_counter() - started, 3.0)


class TestJsonCommandLine(AioHTTPTestCase):
    """``speedtest.py --json`` prints a single JSON document on stdout."""

    async def get_application(self):
        return create_app()

    async def test_stdout_is_json(self):
        with tempfile.TemporaryDirectory() as home:
            env = dict(os.environ, HOME=home)
            proc = await asyncio.create_subprocess_exec(
                sys.executable, os.path.join(REPO_ROOT, "speedtest.py"),
                "--json",
                "--url", str(self.client.make_url("/")),
                "--ping-count", "5",
                "--passes", "1",
                "--min-bytes", "65536",
                "--min-duration", "0.05",
                "--max-duration", "1",
                cwd=REPO_ROOT,
                env=env,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=60.0)

        self.assertEqual(proc.returncode, 0, stderr.decode(errors="replace"))
        result = json.loads(stdout.decode())
        self.assertEqual(result["stage"], "complete")
        self.assertGreater(result["download"], 0)
        # log records went to stderr
        self.assertIn(b"Starting measurement", stderr)


if __name__ == "__main__":
    unittest.main()
