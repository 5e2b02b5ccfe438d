"""
Backend invoker for tagscope.

Runs each selected driver as an external process, feeding it the sorted
root-relative file list on stdin. A failing driver is recorded and the
others still run.
"""

import logging
import subprocess
import sys
import time
from concurrent.futures import ThreadPoolExecutor

from tagscope.core.errors import DriverFailure
from tagscope.services.drivers import Driver
from tagscope.services.indexing_models import DriverResult, IndexJob, RunResult
from tagscope.services.output_layout import OutputLayout

logger = logging.getLogger(__name__)

# Diagnostics kept per failed driver
MAX_DIAGNOSTICS_CHARS = 4000


def _decode(output: bytes | None) -> str:
    if not output:
        return ""
    return output.decode("utf-8", "replace")


def _diagnostics(stderr: bytes | None, stdout: bytes | None) -> str:
    text = "\n".join(part for part in (_decode(stderr).strip(), _decode(stdout).strip()) if part)
    if len(text) > MAX_DIAGNOSTICS_CHARS:
        text = "..." + text[-MAX_DIAGNOSTICS_CHARS:]
    return text


class Invoker:
    """
    Spawns the backends of an ``IndexJob``.

    Drivers are run in the waves computed by the output layout; within a
    wave they run concurrently, one thread waiting on each process. There
    is no timeout: a backend that hangs blocks the run.
    """

    def __init__(self, layout: OutputLayout, require_all: bool = False):
        self._layout = layout
        self._require_all = require_all

    def run(self, job: IndexJob) -> RunResult:
        """
        Run every driver of the job.

        Returns:
            RunResult with one DriverResult per driver, in job order
        """
        start_time = time.time()
        listing = self._layout.relative_listing(job.files)
        # Paths may carry undecodable bytes from the filesystem
        payload = listing.encode(sys.getfilesystemencoding(), "surrogateescape")

        self._layout.prepare()

        results: dict[str, DriverResult] = {}
        for wave in self._layout.waves(job.drivers):
            if len(wave) == 1:
                driver = wave[0]
                results[driver.name] = self._run_driver(job, driver, payload)
                continue
            with ThreadPoolExecutor(
                max_workers=len(wave), thread_name_prefix="tagscope-driver"
            ) as executor:
                futures = {
                    driver.name: executor.submit(self._run_driver, job, driver, payload)
                    for driver in wave
                }
                for name, future in futures.items():
                    results[name] = future.result()

        return RunResult(
            total_files=len(job.files),
            results=[results[d.name] for d in job.drivers],
            require_all=self._require_all,
            duration_seconds=time.time() - start_time,
        )

    def _run_driver(self, job: IndexJob, driver: Driver, payload: bytes) -> DriverResult:
        """Run one driver and capture its outcome; never raises."""
        executable = job.executables.get(driver.name, driver.executables[0])
        command = self._layout.command_for(driver, executable)
        result = DriverResult(
            driver=driver.name,
            command=command,
            artifacts=self._layout.artifact_paths(driver),
        )

        logger.info(f"Running {driver.name}: {' '.join(command)}")
        start_time = time.time()
        try:
            proc = subprocess.run(
                command,
                input=payload,
                cwd=job.root,
                capture_output=True,
                check=False,
            )
        except OSError as e:
            result.failure = DriverFailure(driver.name, str(e))
            logger.error(f"Cannot run {driver.name}: {e}")
            return result
        finally:
            result.duration_seconds = time.time() - start_time

        if proc.returncode != 0:
            result.failure = DriverFailure(
                driver.name,
                _diagnostics(proc.stderr, proc.stdout),
                returncode=proc.returncode,
            )
            logger.error(f"{driver.name} exited with status {proc.returncode}")
        else:
            logger.info(f"{driver.name} finished in {result.duration_seconds:.2f}s")
        return result
