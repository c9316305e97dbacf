"""Exceptions raised while talking to the media catalog."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Raised when the service is missing configuration needed to query TMDB."""


class CatalogRequestError(RuntimeError):
    """Raised when TMDB answers with a failure or cannot be reached."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_transient(self) -> bool:
        """Whether retrying the same request may succeed."""

        if self.status_code is None:
            return True
        return self.status_code == 429 or self.status_code >= 500
