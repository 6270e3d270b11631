from __future__ import annotations

import asyncio

import pytest

from cineflix.core.health import HealthMonitor, is_service_healthy
from cineflix.core.models import HealthRecord


class FakeService:
    def __init__(self, healthy: bool) -> None:
        self.healthy = healthy
        self.checks = 0

    async def health_check(self):
        self.checks += 1
        if not self.healthy:
            raise RuntimeError("HTTP error! status: 503")
        return {"status": "healthy", "timestamp": "2024-01-01T00:00:00Z"}


@pytest.mark.parametrize(
    "down",
    [
        {"recommendation", "watchlist"},
        {"sorting", "wildcard"},
        {"recommendation", "wildcard"},
    ],
)
def test_check_all_isolates_failures(down: set[str]) -> None:
    names = ["recommendation", "watchlist", "sorting", "wildcard"]
    services = {n: FakeService(healthy=n not in down) for n in names}

    results = asyncio.run(HealthMonitor(services).check_all())

    assert set(results) == set(names)
    assert sum(r.status == "healthy" for r in results.values()) == 2
    assert sum(r.status == "unhealthy" for r in results.values()) == 2
    for name in down:
        assert results[name].error == "HTTP error! status: 503"
    assert all(s.checks == 1 for s in services.values())


def test_check_all_repolls_every_time() -> None:
    svc = FakeService(healthy=True)
    monitor = HealthMonitor({"wildcard": svc})

    asyncio.run(monitor.check_all())
    asyncio.run(monitor.check_all())

    assert svc.checks == 2
    assert monitor.service_names == ["wildcard"]


def test_is_service_healthy() -> None:
    assert is_service_healthy(HealthRecord(status="healthy"))
    assert not is_service_healthy(HealthRecord(status="unhealthy", error="x"))
    assert not is_service_healthy(None)
