"""
Presentation Scheduling Backend - Unified Application Entry Point
Mounts the scheduling service under a single versioned FastAPI application
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from database import init_database
from services.presentations.app import app as presentations_app, register_exception_handlers
from shared.utils import config, setup_logging

logger = setup_logging("scheduling-backend")


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Create database tables before serving requests"""
    init_database()
    yield


app = FastAPI(
    lifespan=lifespan,
    title="Presentation Scheduling Backend API",
    description="""
    Unified API for scheduling presentation slots, booking them and grading them.

    All endpoints are documented below. Service routes are organized by tag.
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {
            "name": "Health",
            "description": "Service health and status endpoints",
        },
        {
            "name": "Presentations",
            "description": "Presentation scheduling service - mounted at /api/v1/presentations",
        },
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.get("allowed_origins", ["*"]),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Routes to exclude (internal FastAPI docs routes)
EXCLUDED_PATHS = {"/openapi.json", "/docs", "/docs/oauth2-redirect", "/redoc"}

# Include Presentation routes with prefix
for route in presentations_app.routes:
    if hasattr(route, "path") and hasattr(route, "endpoint"):
        if route.path in EXCLUDED_PATHS:
            continue
        route_kwargs = {
            "path": f"/api/v1/presentations{route.path}",
            "endpoint": route.endpoint,
            "methods": route.methods,
            "tags": ["Presentations"],
        }
        if hasattr(route, "name"):
            route_kwargs["name"] = f"presentations_{route.name}"
        if hasattr(route, "response_model"):
            route_kwargs["response_model"] = route.response_model
        if hasattr(route, "status_code"):
            route_kwargs["status_code"] = route.status_code
        app.add_api_route(**route_kwargs)


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint with service information and API navigation"""
    return {
        "service": "Presentation Scheduling Backend API",
        "version": "1.0.0",
        "services": {
            "presentations": {
                "base_url": "/api/v1/presentations",
                "health": "/api/v1/presentations/health",
            },
        },
        "documentation": {
            "swagger_ui": "/docs",
            "redoc": "/redoc",
            "openapi_json": "/openapi.json",
        },
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for all services"""
    return {
        "status": "healthy",
        "services": {
            "api_gateway": "operational",
            "presentations": "operational",
        },
    }


if __name__ == "__main__":
    import uvicorn

    logger.info("Starting Presentation Scheduling Backend on http://0.0.0.0:8000")
    uvicorn.run("app:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
