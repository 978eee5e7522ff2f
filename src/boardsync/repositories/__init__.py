"""Repository layer for data access."""

from .errors import DataServiceAuthError, DataServiceError, DataServiceNotFoundError
from .factory import create_data_service
from .memory import InMemoryDataService
from .protocol import BOARDS, COLUMNS, COMMENTS, TASKS, DataServiceProtocol
from .rest import RestDataService

__all__ = [
    "BOARDS",
    "COLUMNS",
    "COMMENTS",
    "TASKS",
    "DataServiceAuthError",
    "DataServiceError",
    "DataServiceNotFoundError",
    "DataServiceProtocol",
    "InMemoryDataService",
    "RestDataService",
    "create_data_service",
]
