"""Readiness checks for the two collaborators the vault cannot work without:
the relational store and the blob store.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from sqlalchemy import text
from sqlalchemy.orm import Session

from ..domain.documents.ports.blob_storage_port import BlobStoragePort
from .logging_config import get_logger

logger = get_logger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    status: HealthStatus
    message: Optional[str] = None
    latency_ms: Optional[float] = None


@dataclass
class HealthReport:
    components: Dict[str, ComponentHealth] = field(default_factory=dict)

    @property
    def status(self) -> HealthStatus:
        if all(c.status == HealthStatus.HEALTHY for c in self.components.values()):
            return HealthStatus.HEALTHY
        return HealthStatus.UNHEALTHY

    @property
    def http_status(self) -> int:
        return 200 if self.status == HealthStatus.HEALTHY else 503

    def as_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "components": {
                name: {
                    "status": component.status.value,
                    "message": component.message,
                    "latency_ms": component.latency_ms,
                }
                for name, component in self.components.items()
            },
        }


async def _check_component(name: str, check: Callable[[], Awaitable[None]]) -> ComponentHealth:
    started = time.perf_counter()
    try:
        await check()
    except Exception as e:
        logger.error(f"{name} health check failed: {e}", exc_info=True)
        return ComponentHealth(status=HealthStatus.UNHEALTHY, message=f"{name} error: {e}")

    return ComponentHealth(
        status=HealthStatus.HEALTHY,
        message=f"{name} OK",
        latency_ms=round((time.perf_counter() - started) * 1000, 2),
    )


async def run_health_checks(db: Session, storage: BlobStoragePort) -> HealthReport:
    """Check the database (SELECT 1) and the blob store (ensure_ready)."""

    async def ping_database() -> None:
        db.execute(text("SELECT 1"))

    return HealthReport(
        components={
            "database": await _check_component("Database", ping_database),
            "blob_storage": await _check_component("Blob storage", storage.ensure_ready),
        }
    )
