"""Chunked cry-detection pipeline: plan, extract, detect, aggregate."""

from baby_cry_analysis.pipeline.aggregator import AnalysisSummary, ResultAggregator
from baby_cry_analysis.pipeline.client import ChunkResult, InferenceClient, InferenceConfig
from baby_cry_analysis.pipeline.config import PipelineConfig
from baby_cry_analysis.pipeline.orchestrator import AnalysisOrchestrator, AnalysisRun, RunStatus
from baby_cry_analysis.pipeline.planner import ChunkDescriptor, plan

__all__ = [
    "AnalysisOrchestrator",
    "AnalysisRun",
    "AnalysisSummary",
    "ChunkDescriptor",
    "ChunkResult",
    "InferenceClient",
    "InferenceConfig",
    "PipelineConfig",
    "ResultAggregator",
    "RunStatus",
    "plan",
]
