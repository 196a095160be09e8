"""Control API for on-demand conformance checks using FastAPI."""
from typing import Dict, List
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field
import logging
import time

from metricscheck.checker import ConformanceChecker
from metricscheck.config import COMPONENT_KINDS
from metricscheck.series import observed_from_labels

logger = logging.getLogger(__name__)


class CheckRequest(BaseModel):
    """Already-parsed samples: metric name -> label sets, one per sample."""
    metrics: Dict[str, List[Dict[str, str]]] = Field(default_factory=dict)


class LogLevelRequest(BaseModel):
    """Request to change log level."""
    level: str


class ControlAPI:
    """FastAPI-based API exposing the conformance checker."""

    def __init__(self, checker: ConformanceChecker):
        """
        Initialize control API.

        Args:
            checker: Checker holding the schema registry to validate against
        """
        self.checker = checker
        self.start_time = time.time()
        self.app = FastAPI(title="Metrics Conformance Checker API")

        self._setup_routes()

    def _setup_routes(self):
        """Setup API routes."""

        @self.app.get("/healthz")
        async def healthz():
            """Health check endpoint."""
            return {"status": "healthy", "timestamp": time.time()}

        @self.app.get("/schemas")
        async def schemas():
            """List components and how many metrics each declares."""
            registry = self.checker.schemas
            return {
                "common_metrics": len(registry.common),
                "components": {
                    kind: len(registry.for_component(kind)) for kind in COMPONENT_KINDS
                },
            }

        @self.app.post("/check/{component}")
        async def check(component: str, request: CheckRequest):
            """Check posted samples against a component's schema."""
            if component not in COMPONENT_KINDS:
                raise HTTPException(
                    status_code=404,
                    detail=f"Component '{component}' not found. Available components: {list(COMPONENT_KINDS)}"
                )

            result = self.checker.report(component, observed_from_labels(request.metrics))
            if not result.ok:
                logger.warning(f"Check request failed - {result.describe()}")
                raise HTTPException(status_code=422, detail=result.to_dict())

            logger.info(f"Check request passed for {component}")
            return result.to_dict()

        @self.app.post("/control/loglevel")
        async def set_log_level(request: LogLevelRequest):
            """Change log level at runtime."""
            level = request.level.upper()

            if level not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
                raise HTTPException(
                    status_code=400,
                    detail=f"Invalid log level: {level}"
                )

            logging.getLogger().setLevel(getattr(logging, level))
            logger.info(f"Log level changed to: {level}")

            return {
                "status": "log_level_changed",
                "level": level,
                "timestamp": time.time()
            }

    def run(self, host: str = "0.0.0.0", port: int = 8081):
        """Run the API server."""
        import uvicorn
        uvicorn.run(self.app, host=host, port=port, log_level="info")
