from __future__ import annotations

import logging
import threading
import time
from datetime import datetime
from typing import Callable

from baby_cry_analysis.pipeline.aggregator import ResultAggregator
from baby_cry_analysis.pipeline.client import InferenceClient
from baby_cry_analysis.pipeline.extractors.base import ChunkExtractor
from baby_cry_analysis.pipeline.media import MediaSource
from baby_cry_analysis.pipeline.orchestrator import (
    AnalysisOrchestrator,
    PipelineCallbacks,
    RunStatus,
    format_log_line,
    notify,
)


class LiveCaptureMonitor:
    """Scores the trailing seconds of a recording that is still being written.

    Shares the orchestrator's client contract but not its run: while the
    monitor holds live mode, on-demand analysis is refused and vice versa.
    """

    def __init__(
        self,
        orchestrator: AnalysisOrchestrator,
        source: MediaSource,
        extractor: ChunkExtractor,
        client: InferenceClient,
        interval_seconds: float = 10.0,
        trailing_seconds: float = 10.0,
        aggregator: ResultAggregator | None = None,
        callbacks: PipelineCallbacks | None = None,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.orchestrator = orchestrator
        self.source = source
        self.extractor = extractor
        self.client = client
        self.interval_seconds = interval_seconds
        self.trailing_seconds = trailing_seconds
        self.aggregator = aggregator or ResultAggregator()
        self.callbacks = callbacks or PipelineCallbacks()
        self.status = RunStatus.IDLE
        self.last_error: Exception | None = None
        self.log: list[str] = []
        self._monotonic = monotonic
        self._started_at: float | None = None
        self._ticks = 0
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self.orchestrator.begin_live()
        self._stop.clear()
        self.status = RunStatus.IDLE
        self.last_error = None
        self._started_at = self._monotonic()
        self._log(f"Live capture started (interval={self.interval_seconds:.0f}s window={self.trailing_seconds:.0f}s)")
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        """Ask the worker to finish; live mode is released once its current tick returns."""
        self._stop.set()
        thread = self._thread
        if thread is not None:
            thread.join(timeout=timeout)

    def run_forever(self, max_ticks: int = 0) -> None:
        """Blocking variant of :meth:`start` for command-line use."""
        self.orchestrator.begin_live()
        self._started_at = self._monotonic()
        try:
            self._loop(max_ticks=max_ticks)
        finally:
            self._finish()

    def _run(self) -> None:
        try:
            self._loop()
        finally:
            self._thread = None
            self._finish()

    def _loop(self, max_ticks: int = 0) -> None:
        while not self._stop.wait(self.interval_seconds):
            if not self.tick():
                break
            if max_ticks > 0 and self._ticks >= max_ticks:
                break

    def _finish(self) -> None:
        if self.status != RunStatus.FAILED:
            self.status = RunStatus.COMPLETE
        self.orchestrator.end_live()

    def _log(self, message: str) -> None:
        line = format_log_line(message, datetime.now())
        self.log.append(line)
        logging.info(message)
        notify("on_log", self.callbacks.on_log, line)

    def tick(self) -> bool:
        """Run one extract -> detect -> append step. Returns False once the monitor has failed or been stopped."""
        if self.status == RunStatus.FAILED:
            return False
        if self._started_at is None:
            self._started_at = self._monotonic()

        index = self._ticks
        elapsed_ms = int((self._monotonic() - self._started_at) * 1000)
        try:
            self.status = RunStatus.EXTRACTING
            payload = self.extractor.extract_trailing(self.source, self.trailing_seconds)
            self.status = RunStatus.AWAITING
            result = self.client.detect(payload, chunk_index=index, timestamp_ms=elapsed_ms)
        except Exception as exc:
            self.last_error = exc
            self.status = RunStatus.FAILED
            self._log(f"Live analysis stopped: {exc}")
            logging.error("Live capture failed on tick %d: %s", index + 1, exc)
            return False

        if self._stop.is_set():
            logging.info("Discarding live window %d received after stop", index + 1)
            return False

        self.aggregator.append(result)
        self._ticks += 1
        self.status = RunStatus.IDLE
        self._log(f"Live window {index + 1}: cry={result.any_cry} ratio={result.cry_ratio:.2f}")
        notify("on_chunk_result", self.callbacks.on_chunk_result, result, index)
        return True
