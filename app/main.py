"""FastAPI application entrypoint."""
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import settings
from app.api.errors import register_error_handlers
from app.api.routers import approvals, instances
from app.infra.db.connection import init_db
from app.infra.logging import setup_logging, CorrelationIdMiddleware
from app.infra.metrics import get_metrics

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

# Setup structured logging with correlation IDs
setup_logging(use_json=settings.log_json)

logger = logging.getLogger(__name__)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to track HTTP request metrics."""

    async def dispatch(self, request: Request, call_next):
        """Track request duration and status."""
        start_time = time.time()
        metrics = get_metrics()
        endpoint = request.url.path

        try:
            response = await call_next(request)
        except Exception:
            metrics.http_requests.labels(
                method=request.method,
                endpoint=endpoint,
                status=500
            ).inc()
            metrics.http_request_duration.labels(
                method=request.method,
                endpoint=endpoint
            ).observe(time.time() - start_time)
            raise

        # Label by route template so IDs do not explode cardinality
        route = request.scope.get("route")
        endpoint = getattr(route, "path", endpoint)

        metrics.http_requests.labels(
            method=request.method,
            endpoint=endpoint,
            status=response.status_code
        ).inc()
        metrics.http_request_duration.labels(
            method=request.method,
            endpoint=endpoint
        ).observe(time.time() - start_time)

        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting Workflow Core...")
    init_db()
    get_metrics()
    logger.info(
        f"Definition policy: {settings.workflow_definition_policy.value}, "
        f"context merge: {settings.workflow_context_merge_strategy.value}"
    )
    yield
    logger.info("Shutting down Workflow Core...")


# Create FastAPI app
app = FastAPI(
    title="Workflow Core",
    description="Workflow instance engine and approval consensus engine",
    version="1.0.0",
    lifespan=lifespan,
)

# Add correlation ID middleware
app.add_middleware(CorrelationIdMiddleware)

# Add metrics middleware
app.add_middleware(MetricsMiddleware)

register_error_handlers(app)

# Include routers
app.include_router(instances.router)
app.include_router(approvals.router)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "workflow-core"}


@app.get("/metrics")
def metrics_endpoint():
    """Prometheus metrics endpoint.

    Returns metrics in Prometheus text format for scraping.
    """
    metrics = get_metrics()
    return Response(
        content=metrics.export_metrics(),
        media_type=metrics.get_content_type()
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.env == "development",
    )
