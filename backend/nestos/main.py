# backend/nestos/main.py
import logging
from contextlib import asynccontextmanager

from docker.errors import APIError, NotFound
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from nestos.config import get_settings
from nestos.api.system import router as system_router
from nestos.api.docker import router as docker_router
from nestos.services.docker_service import DockerUnavailableError

logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events for startup and shutdown."""
    logger.info(f"{settings.app_name} system service {settings.app_version} starting")
    yield
    logger.info(f"{settings.app_name} system service stopped")


API_DESCRIPTION = """
# NestOS System Service

Privileged backend for the NestOS control panel. Reports host health,
manages Docker containers and images, and triggers reboot, shutdown and
package updates.

## Endpoints

- **System**: `/api/system/*` (info, performance test, logs, reboot, shutdown, update)
- **Docker**: `/api/docker/*` (containers, images, engine info, live stats)

## API Documentation

- **OpenAPI JSON**: `/openapi.json`
- **Swagger UI**: `/docs`
"""

app = FastAPI(
    title=settings.app_name,
    description=API_DESCRIPTION,
    version=settings.app_version,
    lifespan=lifespan,
    openapi_tags=[
        {"name": "system", "description": "Host information and system control"},
        {"name": "docker", "description": "Docker container and image management"},
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(APIError)
async def docker_api_error_handler(request: Request, exc: APIError):
    """Answer Docker Engine errors with the Engine's own status code."""
    status_code = exc.status_code or (404 if isinstance(exc, NotFound) else 500)
    logger.error(f"Docker API error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.explanation or str(exc)},
    )


@app.exception_handler(DockerUnavailableError)
async def docker_unavailable_handler(request: Request, exc: DockerUnavailableError):
    logger.error(f"Docker unavailable on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": str(exc)},
    )


# Include routers
app.include_router(system_router, prefix="/api")
app.include_router(docker_router, prefix="/api")


@app.get("/health")
async def health_check():
    return {"status": "healthy", "app": settings.app_name}


@app.get("/api/version")
async def get_version():
    """Return application version information."""
    return {
        "version": settings.app_version,
        "commit": settings.git_commit,
        "build_date": settings.build_date,
        "app_name": settings.app_name,
    }


def run() -> None:
    """Console entry point: serve the API with uvicorn."""
    import uvicorn

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(
        "nestos.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=settings.debug,
    )
