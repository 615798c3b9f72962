from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable

from baby_cry_analysis.pipeline.aggregator import DEFAULT_MAX_POINTS, DEFAULT_SMOOTHING_WINDOW, ResultAggregator
from baby_cry_analysis.pipeline.client import ChunkResult, InferenceClient
from baby_cry_analysis.pipeline.errors import RunInProgress
from baby_cry_analysis.pipeline.extractors.base import ChunkExtractor
from baby_cry_analysis.pipeline.media import MediaSource
from baby_cry_analysis.pipeline.planner import ChunkDescriptor, plan


class RunStatus(str, Enum):
    IDLE = "idle"
    PLANNING = "planning"
    EXTRACTING = "extracting"
    AWAITING = "awaiting"
    AGGREGATING = "aggregating"
    COMPLETE = "complete"
    FAILED = "failed"


BUSY_STATUSES = frozenset({RunStatus.PLANNING, RunStatus.EXTRACTING, RunStatus.AWAITING, RunStatus.AGGREGATING})


def format_log_line(message: str, now: datetime) -> str:
    return f"[{now.strftime('%H:%M:%S')}] {message}"


def notify(name: str, callback: Callable | None, *args) -> None:
    """Invoke a UI-side callback; its failures never reach the pipeline."""
    if callback is None:
        return
    try:
        callback(*args)
    except Exception:
        logging.exception("Pipeline callback %s failed", name)


@dataclass
class PipelineCallbacks:
    on_progress: Callable[[float], None] | None = None
    on_chunk_result: Callable[[ChunkResult, int], None] | None = None
    on_log: Callable[[str], None] | None = None


@dataclass
class AnalysisRun:
    generation: int
    source: MediaSource | None
    aggregator: ResultAggregator
    full_audio: bool = False
    status: RunStatus = RunStatus.IDLE
    chunks: list[ChunkDescriptor] = field(default_factory=list)
    progress: float = 0.0
    last_error: Exception | None = None
    failure_message: str = ""
    log: list[str] = field(default_factory=list)
    history: list[RunStatus] = field(default_factory=lambda: [RunStatus.IDLE])

    @property
    def is_busy(self) -> bool:
        return self.status in BUSY_STATUSES

    @property
    def results(self) -> dict[int, ChunkResult]:
        return {result.chunk_index: result for result in self.aggregator.results}


class AnalysisOrchestrator:
    """Drives plan -> extract -> detect -> aggregate, one chunk in flight at a time.

    The first failing chunk ends the run; results gathered before it stay on
    ``run_state.aggregator``. Selecting another source (or cancelling) bumps the
    run generation, and a worker still waiting on the old generation drops
    whatever it receives.
    """

    def __init__(
        self,
        extractor: ChunkExtractor,
        client: InferenceClient,
        chunk_ms: int = 4000,
        callbacks: PipelineCallbacks | None = None,
        smoothing_window: int = DEFAULT_SMOOTHING_WINDOW,
        max_points: int = DEFAULT_MAX_POINTS,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.extractor = extractor
        self.client = client
        self.chunk_ms = chunk_ms
        self.callbacks = callbacks or PipelineCallbacks()
        self.smoothing_window = smoothing_window
        self.max_points = max_points
        self._clock = clock
        self._lock = threading.Lock()
        self._generation = 0
        self._live_active = False
        self._thread: threading.Thread | None = None
        self.run_state = self._new_run(source=None)

    def _new_run(self, source: MediaSource | None, full_audio: bool = False) -> AnalysisRun:
        return AnalysisRun(
            generation=self._generation,
            source=source,
            aggregator=ResultAggregator(smoothing_window=self.smoothing_window, max_points=self.max_points),
            full_audio=full_audio,
        )

    def select_source(self, source: MediaSource | None) -> AnalysisRun:
        with self._lock:
            self._generation += 1
            self.run_state = self._new_run(source=source)
            return self.run_state

    def cancel(self) -> AnalysisRun:
        return self.select_source(self.run_state.source)

    def begin_live(self) -> None:
        with self._lock:
            if self._live_active:
                raise RunInProgress("Live capture is already running")
            if self.run_state.is_busy:
                raise RunInProgress(f"Analysis is {self.run_state.status.value}")
            self._live_active = True

    def end_live(self) -> None:
        with self._lock:
            self._live_active = False

    @property
    def live_active(self) -> bool:
        return self._live_active

    def _begin(self, source: MediaSource | None, full_audio: bool) -> AnalysisRun:
        with self._lock:
            if self._live_active:
                raise RunInProgress("Live capture is running")
            if self.run_state.is_busy:
                raise RunInProgress(f"Analysis is {self.run_state.status.value}")
            source = source if source is not None else self.run_state.source
            if source is None:
                raise ValueError("Please select a media source first")

            self._generation += 1
            run = self._new_run(source=source, full_audio=full_audio)
            run.status = RunStatus.PLANNING
            run.history.append(RunStatus.PLANNING)
            self.run_state = run
            return run

    def run(self, source: MediaSource | None = None, full_audio: bool = False) -> AnalysisRun:
        """Analyze ``source`` on the calling thread and return the finished run."""
        run = self._begin(source, full_audio)
        self._execute(run)
        return run

    def start(self, source: MediaSource | None = None, full_audio: bool = False) -> AnalysisRun:
        run = self._begin(source, full_audio)
        self._thread = threading.Thread(target=self._execute, args=(run,), daemon=True)
        self._thread.start()
        return run

    def wait(self, timeout: float | None = None) -> AnalysisRun:
        if self._thread is not None:
            self._thread.join(timeout=timeout)
        return self.run_state

    def _is_current(self, run: AnalysisRun) -> bool:
        return run.generation == self._generation

    def _log(self, run: AnalysisRun, message: str) -> None:
        line = format_log_line(message, self._clock())
        run.log.append(line)
        logging.info(message)
        notify("on_log", self.callbacks.on_log, line)

    def _transition(self, run: AnalysisRun, status: RunStatus) -> None:
        run.status = status
        run.history.append(status)

    def _fail(self, run: AnalysisRun, exc: Exception, chunk: ChunkDescriptor | None = None) -> None:
        run.last_error = exc
        total = len(run.chunks)
        if chunk is None:
            run.failure_message = f"Analysis failed: {exc}"
            self._log(run, f"Fatal error: {exc}")
        else:
            done = len(run.aggregator)
            run.failure_message = (
                f"Analysis stopped at chunk {chunk.index + 1}/{total} ({done}/{total} chunks analyzed): {exc}"
            )
            self._log(run, f"Error chunk {chunk.index + 1}: {exc}")
            self._log(run, "Stopping analysis due to error. Please check your connection or API URL.")
        logging.error("%s (%s)", run.failure_message, type(exc).__name__)
        self._transition(run, RunStatus.FAILED)

    def _execute(self, run: AnalysisRun) -> None:
        source = run.source
        self._log(run, f"Starting analysis of {source.name}")
        try:
            duration_ms = source.get_duration_ms()
            self._log(run, f"Media duration: {duration_ms}ms")
            chunks = plan(duration_ms, duration_ms if run.full_audio else self.chunk_ms)
        except Exception as exc:
            if self._is_current(run):
                self._fail(run, exc)
            return

        if not self._is_current(run):
            return
        run.chunks = chunks
        total = len(chunks)
        self._log(run, f"Split into {total} chunks")

        for chunk in chunks:
            if not self._is_current(run):
                return
            self._transition(run, RunStatus.EXTRACTING)
            self._log(run, f"Processing chunk {chunk.index + 1}/{total} ({chunk.start_ms}-{chunk.end_ms}ms)")
            try:
                if run.full_audio:
                    payload = self.extractor.extract_full(source)
                else:
                    payload = self.extractor.extract(source, chunk.start_ms, chunk.end_ms)
                if not self._is_current(run):
                    return
                self._log(run, f"Audio extracted: {len(payload)} bytes")

                self._transition(run, RunStatus.AWAITING)
                result = self.client.detect(payload, chunk_index=chunk.index, timestamp_ms=chunk.start_ms)
            except Exception as exc:
                if self._is_current(run):
                    self._fail(run, exc, chunk)
                return

            if not self._is_current(run):
                logging.info("Discarding result for chunk %d of a superseded run", chunk.index)
                return

            run.aggregator.append(result)
            run.progress = len(run.aggregator) / total * 100.0
            self._log(run, f"API response: cry={result.any_cry} ratio={result.cry_ratio:.2f}")
            notify("on_chunk_result", self.callbacks.on_chunk_result, result, chunk.index)
            notify("on_progress", self.callbacks.on_progress, run.progress)

        self._transition(run, RunStatus.AGGREGATING)
        summary = run.aggregator.summary()
        self._transition(run, RunStatus.COMPLETE)
        self._log(
            run,
            f"Analysis complete. Success: {summary.total_chunks}/{total} "
            f"(chunks with crying={summary.chunks_with_cry} segments={summary.total_segments})",
        )
