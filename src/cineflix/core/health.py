from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol

from cineflix.core.models import HealthRecord
from cineflix.core.transformers import health_record_from_payload

logger = logging.getLogger(__name__)


class HealthCheckable(Protocol):
    async def health_check(self) -> Any: ...


class HealthMonitor:
    """Polls every known service's health endpoint on demand.

    Nothing is cached and nothing is scheduled; callers choose the cadence.
    """

    def __init__(self, services: Mapping[str, HealthCheckable]) -> None:
        self._services = dict(services)

    @property
    def service_names(self) -> list[str]:
        return list(self._services)

    async def check_all(self) -> dict[str, HealthRecord]:
        results: dict[str, HealthRecord] = {}
        for name, service in self._services.items():
            try:
                payload = await service.health_check()
                results[name] = health_record_from_payload(payload)
            except Exception as e:
                logger.warning("Health check failed for %s: %s", name, e)
                results[name] = HealthRecord(status="unhealthy", error=str(e))
        return results


def is_service_healthy(record: HealthRecord | None) -> bool:
    return record is not None and record.is_healthy
