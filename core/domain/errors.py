from __future__ import annotations

from typing import Optional


class TokenAnalyticsError(RuntimeError):
    """Base error for run-level failures surfaced to the caller."""


class InvalidInputError(TokenAnalyticsError):
    """Invalid or missing request input (dates, addresses, pagination)."""


class DataNotFoundError(TokenAnalyticsError):
    """A required input resource does not exist."""


class UpstreamServiceError(TokenAnalyticsError):
    """
    An external service (indexer, chain node) failed.

    The enclosing run aborts: the result could be incomplete rather than merely sparse.
    """

    def __init__(self, service: str, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(f"{service}: {message}")
        self.service = service
        self.status_code = status_code
