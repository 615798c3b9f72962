from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict
from pathlib import Path

from baby_cry_analysis.pipeline.client import InferenceClient
from baby_cry_analysis.pipeline.config import PipelineConfig
from baby_cry_analysis.pipeline.extractors import build_extractor, open_source
from baby_cry_analysis.pipeline.live import LiveCaptureMonitor
from baby_cry_analysis.pipeline.orchestrator import AnalysisOrchestrator, AnalysisRun, PipelineCallbacks, RunStatus


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Baby cry analysis")
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Analyze a recorded video or audio file chunk by chunk")
    analyze.add_argument("path", help="Media file to analyze")
    analyze.add_argument("--chunk-ms", type=int, default=0, help="Chunk length in ms (0=use CHUNK_MS)")
    analyze.add_argument("--full-audio", action="store_true", help="Send the whole file as a single chunk")
    analyze.add_argument("--json", action="store_true", help="Print the result as JSON")

    live = sub.add_parser("live", help="Periodically score the tail of a recording in progress")
    live.add_argument("path", help="Recording that is being written")
    live.add_argument("--max-ticks", type=int, default=0, help="Stop after N windows (0=run until Ctrl+C)")

    sub.add_parser("status", help="Print readiness")
    return parser


def _print_progress(percent: float) -> None:
    print(f"progress {percent:.0f}%")


def _run_payload(run: AnalysisRun) -> dict:
    summary = run.aggregator.summary()
    return {
        "status": run.status.value,
        "summary": asdict(summary),
        "results": [asdict(result) for result in run.aggregator.results],
        "series": [asdict(point) for point in run.aggregator.time_series()],
        "error": run.failure_message,
    }


def _print_run(run: AnalysisRun) -> None:
    for result in run.aggregator.results:
        print(
            f"chunk {result.chunk_index + 1} @ {result.timestamp_ms}ms: "
            f"cry={'yes' if result.any_cry else 'no'} ratio={result.cry_ratio * 100:.1f}% "
            f"segments={len(result.segments)}"
        )
    summary = run.aggregator.summary()
    average = "n/a" if summary.average_cry_ratio is None else f"{summary.average_cry_ratio * 100:.1f}%"
    print(
        f"total_chunks={summary.total_chunks} chunks_with_cry={summary.chunks_with_cry} "
        f"average_cry_ratio={average} total_segments={summary.total_segments}"
    )
    if run.status == RunStatus.FAILED:
        print(f"analysis_failed: {run.failure_message}")


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    if args.command == "status":
        print("pipeline_ready")
        return 0

    config = PipelineConfig.from_env()
    logging.basicConfig(level=getattr(logging, config.log_level, logging.INFO))

    path = Path(args.path)
    client = InferenceClient(config.inference_config())
    extractor = build_extractor(config.extractor, sample_rate=config.sample_rate)
    callbacks = PipelineCallbacks(on_progress=None if getattr(args, "json", False) else _print_progress)
    orchestrator = AnalysisOrchestrator(
        extractor=extractor,
        client=client,
        chunk_ms=config.chunk_ms,
        callbacks=callbacks,
        smoothing_window=config.smoothing_window,
        max_points=config.max_chart_points,
    )

    if args.command == "live":
        monitor = LiveCaptureMonitor(
            orchestrator=orchestrator,
            source=open_source(path, config.extractor),
            extractor=extractor,
            client=client,
            interval_seconds=config.live_interval_seconds,
            trailing_seconds=config.live_trailing_seconds,
        )
        try:
            monitor.run_forever(max_ticks=args.max_ticks)
        except KeyboardInterrupt:
            logging.info("Live capture interrupted")
        summary = monitor.aggregator.summary()
        print(f"windows={summary.total_chunks} with_cry={summary.chunks_with_cry}")
        return 1 if monitor.status == RunStatus.FAILED else 0

    if args.chunk_ms > 0:
        orchestrator.chunk_ms = args.chunk_ms
    run = orchestrator.run(open_source(path, config.extractor), full_audio=args.full_audio)

    if args.json:
        print(json.dumps(_run_payload(run), indent=2))
    else:
        _print_run(run)
    return 0 if run.status == RunStatus.COMPLETE else 1


if __name__ == "__main__":
    raise SystemExit(main())
