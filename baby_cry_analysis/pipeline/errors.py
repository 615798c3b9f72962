"""Errors raised by the analysis pipeline.

Every error here is scoped to a single run: the orchestrator catches them,
marks the run failed and keeps whatever results were already aggregated.
"""

from __future__ import annotations


class PipelineError(Exception):
    pass


class InvalidDuration(PipelineError):
    """Media reports a zero, negative or unreadable duration."""


class SourceUnavailable(PipelineError):
    """Media handle is missing or empty."""


class InferenceUnreachable(PipelineError):
    """Transport failure or timeout talking to the detection endpoint."""


class InferenceRejected(PipelineError):
    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"Cry detection failed: {status_code} - {body}")
        self.status_code = status_code
        self.body = body


class InferenceMalformed(PipelineError):
    """Endpoint answered 2xx with a body that does not fit the response schema."""

    def __init__(self, message: str, body: str = "") -> None:
        super().__init__(message)
        self.body = body


class RunInProgress(PipelineError):
    pass
