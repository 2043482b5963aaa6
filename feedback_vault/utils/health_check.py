"""Health Check - liveness and readiness for the feedback API

Self-Explanatory: Is the process up, and can it reach its table and open envelopes?
Why: A wrong passphrase or a missing table only shows on first request otherwise.
How: Store ping + cipher round-trip; 200 when both pass, 503 otherwise.

K8s / load balancer integration:
- /health/live: Liveness check (is service running?)
- /health/ready: Readiness check (can serve traffic?)
"""

import time
from datetime import datetime, timezone
from typing import Dict

import structlog
from fastapi import status
from fastapi.responses import JSONResponse

from feedback_vault.feedback.service import FeedbackService

logger = structlog.get_logger()


class HealthStatus:
    """Health status constants"""
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class HealthChecker:
    """Dependency checks for one FeedbackService"""

    def __init__(self):
        self.start_time = time.time()

    def check_store(self, service: FeedbackService) -> Dict:
        """Check feedback store connectivity"""
        try:
            start = time.time()
            details = service.store.ping()
            latency_ms = (time.time() - start) * 1000

            return {
                "status": HealthStatus.HEALTHY,
                "latency_ms": round(latency_ms, 2),
                "details": details,
                "message": "Store reachable"
            }

        except Exception as e:
            logger.error("Store health check failed", error=str(e))
            return {
                "status": HealthStatus.UNHEALTHY,
                "error": str(e),
                "message": "Store unreachable"
            }

    def check_cipher(self, service: FeedbackService) -> Dict:
        """Round-trip a known value through the field cipher"""
        if service.cipher.self_test():
            return {"status": HealthStatus.HEALTHY, "message": "Cipher round-trip ok"}
        return {"status": HealthStatus.UNHEALTHY, "message": "Cipher round-trip failed"}

    async def liveness_check(self) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={
                "status": "alive",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "uptime_seconds": int(time.time() - self.start_time)
            }
        )

    async def readiness_check(self, service: FeedbackService) -> JSONResponse:
        """200 if the store and cipher are usable, 503 if not"""
        checks = {
            "store": self.check_store(service),
            "cipher": self.check_cipher(service),
        }
        is_ready = all(c["status"] == HealthStatus.HEALTHY for c in checks.values())

        return JSONResponse(
            status_code=status.HTTP_200_OK if is_ready else status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "ready" if is_ready else "not_ready",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "checks": checks,
            }
        )


# Global instance
health_checker = HealthChecker()
