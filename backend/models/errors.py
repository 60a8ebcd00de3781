"""Error taxonomy for the intake -> parse -> extract -> score pipeline.

Every error carries the HTTP status the API layer answers with.
Stage errors (subclasses of PipelineStageError) are recorded on the
resume as ``parsing_status=failed`` before being re-raised.
"""


class AtsError(Exception):
    """Base class for all pipeline errors."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(AtsError):
    """Unknown resume, job, or score."""

    status_code = 404


class InvalidRequestError(AtsError):
    """Input that passed schema checks but breaks a domain invariant."""

    status_code = 422


class ConflictingOperationError(AtsError):
    """Parsing is already in progress for this resume."""

    status_code = 409


class PipelineStageError(AtsError):
    """A parse or extraction stage failed for one resume."""

    status_code = 502


class DocumentUnavailableError(PipelineStageError):
    """The stored document could not be read."""


class ParseSubmissionError(PipelineStageError):
    """Submitting the document to the parse service failed. Not retried."""


class ParseServiceError(PipelineStageError):
    """Polling or fetching a submitted parse job failed at the transport level."""


class ParseJobError(PipelineStageError):
    """The parse service reported the job as failed."""

    def __init__(self, upstream_message: str) -> None:
        super().__init__(f"Parsing failed: {upstream_message}")
        self.upstream_message = upstream_message


class ParseTimeoutError(PipelineStageError):
    """Polling exhausted its attempts before the job reached a terminal state."""

    status_code = 504


class ExtractionError(PipelineStageError):
    """Structured extraction failed on otherwise usable parse text."""
