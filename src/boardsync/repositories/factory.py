"""Data service selection from settings."""

from __future__ import annotations

import logging

from ..config import Settings
from .memory import InMemoryDataService
from .protocol import DataServiceProtocol
from .rest import RestDataService

logger = logging.getLogger(__name__)


def create_data_service(settings: Settings) -> DataServiceProtocol:
    """Build the data service the settings point at.

    Uses the hosted backend when ``data_url`` is set, otherwise an
    in-memory service, seeded from ``seed_file`` when one is given.
    """
    if settings.data_url:
        logger.info("Using REST data service at %s", settings.data_url)
        return RestDataService(
            settings.data_url,
            settings.api_key,
            timeout=settings.request_timeout,
        )
    if settings.seed_file is not None:
        return InMemoryDataService.from_yaml(settings.seed_file)
    logger.info("Using empty in-memory data service")
    return InMemoryDataService()
