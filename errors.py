"""
beatscope - Error types

Every analysis call is synchronous and deterministic, so nothing here is
retryable: the caller has to fix the input or the option set.
"""


class AnalysisError(Exception):
    """Base class for analysis failures. `kind` mirrors the error category."""
    kind = "processing"

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.details = details


class ValidationError(AnalysisError):
    """Malformed frame: empty arrays, mismatched lengths, bad sample rate."""
    kind = "validation"


class ConfigurationError(AnalysisError):
    """Nonsensical option set, e.g. an inverted frequency range."""
    kind = "configuration"
