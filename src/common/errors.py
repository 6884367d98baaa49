"""Exception types shared by the pipeline stages."""


class PipelineError(Exception):
    """Base class for pipeline errors."""


class UnrecoverableJobError(PipelineError):
    """A job failure that retrying cannot fix; the queue fails it immediately."""


class SourceUnavailableError(UnrecoverableJobError):
    """The requested source does not exist or is inactive."""

    def __init__(self, source_id: str):
        super().__init__(f"Source not found or inactive: {source_id}")
        self.source_id = source_id


class ContentValidationError(PipelineError):
    """Candidate content failed a process-stage precondition."""


class ServiceUnavailableError(PipelineError):
    """An external AI service failed, timed out or returned an unusable result."""


class UnsupportedSourceError(UnrecoverableJobError):
    """The source type has no fetch adapter."""


class FeedParseError(PipelineError):
    """A feed could not be parsed into entries."""
