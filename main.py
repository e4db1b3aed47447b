import os
import sys
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Ensure local imports resolve
sys.path.append(os.path.dirname(__file__))

# Core
from core.config import settings
from core.context import build_context
from core.errors import HostelError, Unauthenticated
from core.logging_config import logger

# -------------------------------------------------
# Routers
# -------------------------------------------------
from routers.issues import router as issues_router
from routers.dashboard import router as dashboard_router
from routers.search import router as search_router
from routers.students import router as students_router
from routers.staff import router as staff_router
from routers.rooms import router as rooms_router
from routers.profile import router as profile_router

from routers.health import router as health_router
from routers.notice_board import router as notice_board_router


# -------------------------------------------------
# Create the Application
# -------------------------------------------------
def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version="1.0.0",
        description="Hostel Management API: role-scoped issues, dashboards and directories",
    )

    # One context per process; tests replace it via dependency_overrides
    app.state.context = build_context()

    # -------------------------------------------------
    # CORS
    # -------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -------------------------------------------------
    # Startup logging
    # -------------------------------------------------
    @app.on_event("startup")
    async def on_startup():
        logger.info(f"Starting {settings.PROJECT_NAME} ({settings.ENV})")
        for route in app.routes:
            methods = ",".join(sorted(getattr(route, "methods", None) or []))
            logger.debug(f"{methods:10s} {route.path}")

    # -------------------------------------------------
    # Error handling
    # -------------------------------------------------
    @app.exception_handler(HostelError)
    async def handle_domain(request: Request, exc: HostelError):
        if exc.status_code in (401, 403, 500):
            logger.warning(
                f"HTTP {exc.status_code} at {request.url.path}: {exc.detail}"
            )
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=headers,
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http(request: Request, exc: StarletteHTTPException):
        if exc.status_code in (401, 403, 500):
            logger.warning(
                f"HTTP {exc.status_code} at {request.url.path}: {exc.detail}"
            )
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    @app.exception_handler(Exception)
    async def handle_unhandled(request: Request, exc: Exception):
        logger.error("Unhandled error at %s", request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    # -------------------------------------------------
    # Register Routers
    # -------------------------------------------------

    # Issues + dashboards
    app.include_router(issues_router)
    app.include_router(dashboard_router)
    app.include_router(search_router)

    # Directories
    app.include_router(students_router)
    app.include_router(staff_router)
    app.include_router(rooms_router)
    app.include_router(profile_router)

    # Health
    app.include_router(health_router)

    # Public (guest-readable maintenance board)
    app.include_router(notice_board_router)

    return app


# Create the global FastAPI instance
app = create_app()
