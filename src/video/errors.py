"""Error types shared by the subtitle and video pipeline.

Every failure surfaced to a caller derives from ``StudioError`` and carries a
human-readable message. Upstream failures keep the backend body or process
stderr verbatim so callers can show what actually went wrong.
"""


class StudioError(Exception):
    """Base class for all pipeline failures."""

    pass


class InputValidationError(StudioError):
    """A required input is missing or empty; no work was performed."""

    pass


class UpstreamServiceError(StudioError):
    """An external service or process reported failure."""

    pass


class RecognitionError(UpstreamServiceError):
    """The speech recognition backend returned a non-success response."""

    def __init__(self, message: str, status: int | None = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body


class RecognitionTransportError(RecognitionError):
    """The recognition request never produced a response (connection or timeout)."""

    pass


class ProcessExecutionError(UpstreamServiceError):
    """An external process exited with a non-zero status or timed out."""

    def __init__(self, message: str, stderr: str = ""):
        super().__init__(message)
        self.stderr = stderr


class MediaProbeError(ProcessExecutionError):
    """The media inspection tool could not report a duration."""

    pass


class MissingArtifactError(StudioError):
    """A process reported success but its expected output file is absent."""

    def __init__(self, message: str, expected_path=None):
        super().__init__(message)
        self.expected_path = expected_path


class MissingCredentialsError(StudioError):
    """No usable credential file was found for signed backend requests."""

    pass
