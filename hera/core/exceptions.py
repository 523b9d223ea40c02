"""Custom exception hierarchy."""

class AppError(Exception):
    """Base exception for application errors."""
    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.original_error = original_error


class APIClientError(AppError):
    """Raised when an external API call fails."""
    pass


class APITimeoutError(APIClientError):
    """Raised when an external API call times out."""
    pass


class DatabaseError(AppError):
    """Raised when a database operation fails."""
    pass


class ValidationError(AppError):
    """Raised when input validation fails."""
    pass


class ConfigurationError(AppError):
    """Raised when configuration is invalid or missing."""
    pass


class PipelineError(AppError):
    """Base exception for ingestion pipeline errors."""
    pass


class SourceUnavailableError(PipelineError):
    """A source could not be reached after all retries."""

    def __init__(self, source: str, state: str, original_error: Exception = None):
        super().__init__(f"Source {source} unavailable for {state}", original_error=original_error)
        self.source = source
        self.state = state


class EnrichmentError(PipelineError):
    """The completion service returned nothing usable."""
    pass


class ClinicBatchError(PipelineError):
    """A generated clinic batch was short or malformed."""

    def __init__(self, state: str, expected: int, valid: int):
        super().__init__(f"Only generated {valid}/{expected} valid clinics for {state}")
        self.state = state
        self.expected = expected
        self.valid = valid
