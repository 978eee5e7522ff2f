"""Persistence errors raised by data services."""


class DataServiceError(Exception):
    """Base exception for persistence failures (rejected or timed out calls)."""

    pass


class DataServiceAuthError(DataServiceError):
    """Authentication or authorization failed."""

    pass


class DataServiceNotFoundError(DataServiceError):
    """The targeted row does not exist."""

    pass
