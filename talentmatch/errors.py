"""
Error taxonomy for the matching pipeline.

Lower layers fail soft: a ValidationError, ParseError or ScorerError drops
a single item or batch, and only NotFoundError / ConfigurationError abort a
request outright.
"""


class MatchingError(Exception):
    """Base class for all talentmatch errors."""
    pass


class ConfigurationError(MatchingError):
    """Missing or invalid configuration (e.g. provider credentials)."""
    pass


class ValidationError(MatchingError):
    """Input rejected before reaching a provider (e.g. empty text)."""
    pass


class NotFoundError(MatchingError):
    """Vacancy or candidate does not exist in the store."""
    pass


class StoreError(MatchingError):
    """Storage layer failure."""
    pass


class ScorerError(MatchingError):
    """Language-model or embedding provider call failed."""
    pass


class RateLimitError(ScorerError):
    """Provider rejected the call because of rate limiting. Retriable."""
    pass


class ParseError(ScorerError):
    """Provider returned content that could not be parsed."""

    def __init__(self, message: str, content: str = ""):
        super().__init__(message)
        self.content = content
