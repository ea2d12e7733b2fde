"""Scrape endpoint and runtime management API using FastAPI."""
from typing import List, Optional
from fastapi import FastAPI, HTTPException, Response
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest
from pydantic import BaseModel
import logging
import time

from couchbase_exporter.collectors import SubsystemCollector

logger = logging.getLogger(__name__)


class LogLevelRequest(BaseModel):
    """Request to change log level, optionally for a single collector."""
    level: str
    subsystem: Optional[str] = None


class ExporterAPI:
    """FastAPI app serving /metrics plus health and status endpoints."""

    def __init__(self, registry: CollectorRegistry, collectors: List[SubsystemCollector]):
        self.registry = registry
        self.collectors = collectors
        self.start_time = time.time()
        self.app = FastAPI(title="Couchbase Exporter")

        self._setup_routes()

    def _setup_routes(self):
        """Setup API routes."""

        # Sync handler, scrapes run in the threadpool
        @self.app.get("/metrics")
        def metrics():
            """Prometheus scrape endpoint."""
            return Response(
                content=generate_latest(self.registry),
                media_type=CONTENT_TYPE_LATEST,
            )

        @self.app.get("/healthz")
        async def healthz():
            """Health check endpoint."""
            return {
                "status": "healthy",
                "collectors": len(self.collectors),
                "timestamp": time.time(),
            }

        @self.app.get("/status")
        async def status():
            """Configured collectors and their enabled metrics."""
            return {
                "uptime_seconds": time.time() - self.start_time,
                "collectors": [
                    {
                        "subsystem": c.subsystem,
                        "namespace": c.config.namespace,
                        "enabled_metrics": [m.name for m in c.config.enabled_metrics()],
                    }
                    for c in self.collectors
                ],
            }

        @self.app.post("/control/loglevel")
        async def set_log_level(request: LogLevelRequest):
            """Change the root log level, or one collector's when a subsystem is given."""
            level = request.level.upper()

            if level not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
                raise HTTPException(
                    status_code=400,
                    detail=f"Invalid log level: {level}"
                )

            if request.subsystem is None:
                target = logging.getLogger()
            else:
                collector = next(
                    (c for c in self.collectors if c.subsystem == request.subsystem), None
                )
                if collector is None:
                    raise HTTPException(
                        status_code=404,
                        detail=f"No collector for subsystem '{request.subsystem}'"
                    )
                target = collector.logger

            target.setLevel(getattr(logging, level))
            logger.info(f"Log level of '{target.name}' changed to: {level}")

            return {
                "status": "log_level_changed",
                "logger": target.name,
                "level": level,
            }

    def run(self, host: str = "0.0.0.0", port: int = 9420):
        """Run the API server."""
        import uvicorn
        uvicorn.run(self.app, host=host, port=port, log_level="info")
