"""
Health checks for the Fundex API service.

Reports host resources and whether the external collaborators (Document AI
and the GST registry) are configured.
"""

import os
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict

import psutil

logger = logging.getLogger("fundex.health")

MEMORY_DEGRADED_PERCENT = 85
MEMORY_UNHEALTHY_PERCENT = 95
DISK_DEGRADED_PERCENT = 85
DISK_UNHEALTHY_PERCENT = 95


class HealthStatus(str, Enum):
    """Health status values."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


_SEVERITY = {
    HealthStatus.HEALTHY: 0,
    HealthStatus.UNKNOWN: 1,
    HealthStatus.DEGRADED: 2,
    HealthStatus.UNHEALTHY: 3,
}


def _status_for(percent: float, degraded: float, unhealthy: float) -> HealthStatus:
    if percent > unhealthy:
        return HealthStatus.UNHEALTHY
    if percent > degraded:
        return HealthStatus.DEGRADED
    return HealthStatus.HEALTHY


def check_memory() -> Dict[str, Any]:
    """Check memory usage."""
    memory = psutil.virtual_memory()
    return {
        "status": _status_for(memory.percent, MEMORY_DEGRADED_PERCENT, MEMORY_UNHEALTHY_PERCENT),
        "memory_percent": memory.percent,
        "memory_available_mb": round(memory.available / (1024 * 1024), 1),
    }


def check_disk() -> Dict[str, Any]:
    """Check disk usage of the working directory, where logs are written."""
    disk_usage = psutil.disk_usage(os.getcwd())
    return {
        "status": _status_for(disk_usage.percent, DISK_DEGRADED_PERCENT, DISK_UNHEALTHY_PERCENT),
        "disk_percent": disk_usage.percent,
        "disk_free_gb": round(disk_usage.free / (1024 ** 3), 2),
    }


def check_configuration(config: Dict[str, Any]) -> Dict[str, Any]:
    """Check that OCR and GST validation are configured; either missing degrades the service."""
    processor_id = config.get("google_cloud", {}).get("ocr_processor_id")
    registry_url = config.get("gst", {}).get("registry_url")

    status = HealthStatus.HEALTHY
    if not processor_id or not registry_url:
        status = HealthStatus.DEGRADED

    return {
        "status": status,
        "ocr_processor_configured": bool(processor_id),
        "gst_registry_configured": bool(registry_url),
    }


def _run_check(name: str, check: Callable[[], Dict[str, Any]]) -> Dict[str, Any]:
    try:
        return check()
    except Exception as e:
        logger.warning(f"Health check {name} failed: {e}")
        return {"status": HealthStatus.UNKNOWN, "error": str(e)}


def get_health(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Run every health check and roll them up into one status.

    Args:
        config: Configuration dictionary

    Returns:
        dict: Overall status, per-check results and a timestamp
    """
    checks = {
        "memory": _run_check("memory", check_memory),
        "disk": _run_check("disk", check_disk),
        "configuration": _run_check("configuration", lambda: check_configuration(config)),
    }
    overall = max((result["status"] for result in checks.values()), key=_SEVERITY.__getitem__)

    return {
        "status": overall,
        "checks": checks,
        "timestamp": datetime.now().isoformat(),
    }
