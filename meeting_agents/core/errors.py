"""Error taxonomy for the pipeline. Stages convert these into StageResults; the HTTP layer maps them to status codes."""
from typing import Optional


class PipelineError(Exception):
    """Base class for every error raised by the meeting pipeline."""


class InputError(PipelineError):
    """Missing, empty or invalid audio/text input. Raised before any backend is attempted."""


class BackendUnavailable(PipelineError):
    """A remote or local backend is not configured or its call failed. Triggers the next strategy."""


class RemoteResponseError(BackendUnavailable):
    """The remote service answered, but with a payload we cannot use (non-JSON or wrong schema)."""


class SpeechEngineError(BackendUnavailable):
    """The local speech-recognition engine failed or produced no text."""


class StageFailure(PipelineError):
    """A stage exhausted all of its strategies."""

    def __init__(self, stage: str, message: str, fatal: bool):
        super().__init__(message)
        self.stage = stage
        self.fatal = fatal


class NotFoundError(PipelineError):
    """Unknown job, task, objective or plan id."""

    def __init__(self, kind: str, key: str, message: Optional[str] = None):
        super().__init__(message or f"{kind} not found: {key}")
        self.kind = kind
        self.key = key


class InvalidTransitionError(PipelineError):
    """Status change that the lifecycle does not allow (terminal job, unknown task status...)."""
