from __future__ import annotations

from dataclasses import asdict
import logging
from pathlib import Path
import uuid

from fastapi import FastAPI, File, UploadFile
from fastapi.responses import JSONResponse

from baby_cry_analysis.pipeline.client import InferenceClient
from baby_cry_analysis.pipeline.config import PipelineConfig
from baby_cry_analysis.pipeline.errors import (
    InferenceMalformed,
    InferenceRejected,
    InferenceUnreachable,
    RunInProgress,
)
from baby_cry_analysis.pipeline.extractors import ChunkExtractor, build_extractor, open_source
from baby_cry_analysis.pipeline.orchestrator import AnalysisOrchestrator


def create_app(
    config: PipelineConfig | None = None,
    client: InferenceClient | None = None,
    extractor: ChunkExtractor | None = None,
) -> FastAPI:
    app = FastAPI(title="Baby Cry Analysis", version="0.1.0")

    config = config or PipelineConfig.from_env()
    client = client or InferenceClient(config.inference_config())
    extractor = extractor or build_extractor(config.extractor, sample_rate=config.sample_rate)
    orchestrator = AnalysisOrchestrator(
        extractor=extractor,
        client=client,
        chunk_ms=config.chunk_ms,
        smoothing_window=config.smoothing_window,
        max_points=config.max_chart_points,
    )
    app.state.orchestrator = orchestrator

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/cry-detection/predict")
    def predict(audio: UploadFile = File(...)):
        payload = audio.file.read()
        if not payload:
            return JSONResponse({"error": "No audio file provided"}, status_code=400)

        try:
            data = client.post_raw(payload, filename=audio.filename or None, mime_type=audio.content_type or None)
        except InferenceRejected as exc:
            return JSONResponse(
                {"error": "Cry detection API error", "status": exc.status_code, "message": exc.body},
                status_code=exc.status_code,
            )
        except InferenceMalformed as exc:
            return JSONResponse({"error": "Invalid JSON response from API", "raw": exc.body}, status_code=500)
        except InferenceUnreachable as exc:
            return JSONResponse({"error": "Failed to proxy request", "message": str(exc)}, status_code=500)
        return JSONResponse(data)

    @app.post("/analyze")
    def analyze(video: UploadFile = File(...), full_audio: bool = False):
        suffix = Path(video.filename or "upload.mp4").suffix or ".mp4"
        upload_dir = Path(config.artifact_dir) / "uploads"
        upload_dir.mkdir(parents=True, exist_ok=True)
        target = upload_dir / f"{uuid.uuid4().hex}{suffix}"
        target.write_bytes(video.file.read())

        try:
            run = orchestrator.run(open_source(target, config.extractor), full_audio=full_audio)
        except RunInProgress as exc:
            return JSONResponse({"error": "Analysis already running", "message": str(exc)}, status_code=409)
        finally:
            target.unlink(missing_ok=True)

        return {
            "status": run.status.value,
            "chunks": len(run.chunks),
            "progress": run.progress,
            "summary": asdict(run.aggregator.summary()),
            "series": [asdict(point) for point in run.aggregator.time_series()],
            "error": run.failure_message,
            "log": run.log,
        }

    return app


def main() -> int:
    import uvicorn

    config = PipelineConfig.from_env()
    logging.basicConfig(level=getattr(logging, config.log_level, logging.INFO))
    uvicorn.run("baby_cry_analysis.pipeline.api:create_app", factory=True, host="0.0.0.0", port=8080)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
