"""Error taxonomy shared by every pipeline stage."""

from enum import Enum

from config.defaults import DEFAULTS


def preview(text, limit=None):
    """Bounded excerpt of model output for diagnostics."""
    limit = DEFAULTS["preview_length"] if limit is None else limit
    text = text or ""
    if len(text) <= limit:
        return text
    return text[:limit] + f"... [{len(text) - limit} more chars]"


class ExtractionFailure(str, Enum):
    NO_JSON_FOUND = "no_json_found"
    PARSE_ERROR = "parse_error"
    TRUNCATED_RECOVERABLE = "truncated_recoverable"
    TRUNCATED_UNRECOVERABLE = "truncated_unrecoverable"


class ValidationError(Exception):
    """Input or output that is out of policy. Carries the field and the value."""

    def __init__(self, message, field, value=None):
        super().__init__(message)
        self.message = message
        self.field = field
        self.value = value

    def __str__(self):
        return f"{self.message} (field: {self.field})"


class ExtractionError(Exception):
    """Model output that could not be turned into structured data."""

    def __init__(self, kind, message, raw_text=""):
        super().__init__(message)
        self.kind = ExtractionFailure(kind)
        self.message = message
        self.preview = preview(raw_text)

    def __str__(self):
        return f"{self.message} [{self.kind.value}]"


class TransportError(Exception):
    """An external backend was unreachable, timed out or answered with an error."""

    def __init__(self, message, backend, status=None):
        super().__init__(message)
        self.message = message
        self.backend = backend
        self.status = status

    def __str__(self):
        if self.status:
            return f"{self.backend}: {self.message} (HTTP {self.status})"
        return f"{self.backend}: {self.message}"


class PipelineError(Exception):
    """Any failure of a pipeline run, tagged with the stage it reached."""

    def __init__(self, stage, cause):
        self.stage = stage
        self.cause = cause
        self.kind = type(cause).__name__
        super().__init__(f"{getattr(stage, 'value', stage)} failed: {cause}")
