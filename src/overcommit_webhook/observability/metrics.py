"""
Prometheus metrics for the overcommit webhook.

This module provides metrics collection for monitoring admission reviews and
the resource adjustments they produce, plus a small HTTP server exposing them
alongside liveness and readiness checks.
"""

import logging
import time
from collections.abc import Callable

from aiohttp.web import (
    Application,
    AppRunner,
    Request,
    Response,
    TCPSite,
    json_response,
)
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

logger = logging.getLogger(__name__)

# Global metrics registry
_metrics_registry: CollectorRegistry | None = None

# Metrics definitions
ADMISSION_REQUESTS_TOTAL = Counter(
    "overcommit_webhook_admission_requests_total",
    "Total number of admission reviews answered, by outcome",
    ["outcome"],
    registry=None,  # Registered in get_metrics_registry()
)

ADMISSION_DURATION = Histogram(
    "overcommit_webhook_admission_duration_seconds",
    "Time spent handling one admission review",
    buckets=[0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.5],
    registry=None,
)

CONTAINER_ADJUSTMENTS_TOTAL = Counter(
    "overcommit_webhook_container_adjustments_total",
    "Total number of container resource requests written by patches",
    ["resource"],
    registry=None,
)


def get_metrics_registry() -> CollectorRegistry:
    """Get or create the global metrics registry."""
    global _metrics_registry

    if _metrics_registry is None:
        _metrics_registry = CollectorRegistry()

        for metric in [
            ADMISSION_REQUESTS_TOTAL,
            ADMISSION_DURATION,
            CONTAINER_ADJUSTMENTS_TOTAL,
        ]:
            _metrics_registry.register(metric)

    return _metrics_registry


class MetricsCollector:
    """Collects and manages metrics for the overcommit webhook."""

    def __init__(self):
        self.registry = get_metrics_registry()

    def record_admission(self, outcome: str, duration: float) -> None:
        """
        Record one answered admission review.

        Args:
            outcome: Terminal outcome (patched, unchanged, filtered, invalid, error)
            duration: Handling time in seconds
        """
        ADMISSION_REQUESTS_TOTAL.labels(outcome=outcome).inc()
        ADMISSION_DURATION.observe(duration)

    def record_adjustment(self, resource: str) -> None:
        """Record one resource request written into a patch."""
        CONTAINER_ADJUSTMENTS_TOTAL.labels(resource=resource).inc()


class MetricsServer:
    """HTTP server for exposing Prometheus metrics and health checks."""

    def __init__(
        self,
        port: int = 8081,
        host: str = "0.0.0.0",
        readiness_check: Callable[[], bool] | None = None,
    ):
        """
        Initialize metrics server.

        Args:
            port: Port to serve metrics on
            host: Host interface to bind to
            readiness_check: Returns True once the webhook can serve reviews
        """
        self.port = port
        self.host = host
        self.readiness_check = readiness_check
        self.app = Application()
        self.runner: AppRunner | None = None
        self.site: TCPSite | None = None
        self._setup_routes()

    def _setup_routes(self) -> None:
        """Set up HTTP routes for the metrics server."""
        self.app.router.add_get("/metrics", self._metrics_handler)
        self.app.router.add_get("/ready", self._ready_handler)
        self.app.router.add_get("/healthz", self._healthz_handler)

    async def _metrics_handler(self, request: Request) -> Response:
        """Handle /metrics endpoint for Prometheus scraping."""
        try:
            registry = get_metrics_registry()
            metrics_data = generate_latest(registry)
            return Response(body=metrics_data, content_type=CONTENT_TYPE_LATEST)
        except Exception as e:
            logger.error(f"Failed to generate metrics: {e}")
            return Response(
                text=f"Error generating metrics: {type(e).__name__}. Check logs for details.",
                status=500,
            )

    async def _ready_handler(self, request: Request) -> Response:
        """Handle /ready endpoint for readiness checks."""
        ready = self.readiness_check() if self.readiness_check else True
        return json_response(
            {"status": "ready" if ready else "not_ready", "timestamp": time.time()},
            status=200 if ready else 503,
        )

    async def _healthz_handler(self, request: Request) -> Response:
        """Handle /healthz endpoint for Kubernetes liveness checks."""
        return Response(text="ok")

    async def start(self) -> None:
        """Start the metrics server."""
        try:
            self.runner = AppRunner(self.app)
            await self.runner.setup()

            self.site = TCPSite(self.runner, self.host, self.port)
            await self.site.start()

            logger.info(f"Metrics server started on {self.host}:{self.port}")
        except Exception as e:
            logger.error(f"Failed to start metrics server: {e}")
            raise

    async def stop(self) -> None:
        """Stop the metrics server."""
        try:
            if self.site:
                await self.site.stop()
                self.site = None

            if self.runner:
                await self.runner.cleanup()
                self.runner = None

            logger.info("Metrics server stopped")
        except Exception as e:
            logger.error(f"Error stopping metrics server: {e}")

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()


# Global metrics collector instance
metrics_collector = MetricsCollector()
