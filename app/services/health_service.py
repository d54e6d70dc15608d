"""Host resource sampling for the admin health check."""

from dataclasses import dataclass

import psutil

from app.constants import MEMORY_CRITICAL_PERCENT, MEMORY_WARNING_PERCENT

_MB = 1024 * 1024


@dataclass(frozen=True)
class SystemSnapshot:
    """Point-in-time resource usage. Memory figures are in megabytes."""

    memory_used: int
    memory_total: int
    memory_percent: float
    cpu_percent: float
    disk_percent: float

    @property
    def status(self) -> str:
        return health_status(self.memory_percent)

    def as_health(self) -> dict[str, float | str]:
        """Shape stored in ``SystemSettings.system_health``."""
        return {
            "status": self.status,
            "cpu_usage": self.cpu_percent,
            "memory_usage": self.memory_percent,
            "disk_usage": self.disk_percent,
        }


def health_status(memory_percent: float) -> str:
    """``critical`` above 95% memory, ``warning`` above 80%, else ``healthy``."""
    if memory_percent > MEMORY_CRITICAL_PERCENT:
        return "critical"
    if memory_percent > MEMORY_WARNING_PERCENT:
        return "warning"
    return "healthy"


def measure_system(disk_path: str = "/") -> SystemSnapshot:
    mem = psutil.virtual_memory()
    used = mem.total - mem.available
    return SystemSnapshot(
        memory_used=used // _MB,
        memory_total=mem.total // _MB,
        memory_percent=round(used / mem.total * 100, 2) if mem.total else 0.0,
        # interval=None compares against the previous call and never blocks
        cpu_percent=psutil.cpu_percent(interval=None),
        disk_percent=psutil.disk_usage(disk_path).percent,
    )
