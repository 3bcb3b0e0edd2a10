import os
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from edupresence.config import Settings, load_settings
from edupresence.database.base import AttendanceStore
from edupresence.database.factory import build_store
from edupresence.errors import AttendanceError
from edupresence.routes.attendance import router as attendance_router
from edupresence.routes.realtime import router as realtime_router
from edupresence.routes.sessions import router as sessions_router
from edupresence.services.notifications import ConnectionHub
from edupresence.utils.logger import logger
from edupresence.utils.tokens import SessionTokenCodec

SERVICE_NAME = "EduPresence Backend"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 Starting %s", SERVICE_NAME)
    if app.state.store is None:
        app.state.store = build_store(app.state.settings)
    yield
    logger.info("🛑 Shutting down")


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[AttendanceStore] = None,
    hub: Optional[ConnectionHub] = None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    """Builds the API. Tests pass their own store, hub and clock."""
    settings = settings or load_settings()
    if settings.secret_is_ephemeral:
        logger.warning("JWT_SECRET is not set; using a per-process secret. Tokens will not verify on other instances.")

    app = FastAPI(title="EduPresence Attendance API", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.hub = hub or ConnectionHub()
    app.state.clock = clock
    app.state.codec = SessionTokenCodec(settings.jwt_secret)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    # --- ERROR MAPPING ---

    @app.exception_handler(AttendanceError)
    async def attendance_error_handler(request: Request, exc: AttendanceError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        fields = sorted({str(err["loc"][-1]) for err in exc.errors() if err.get("loc")})
        message = "Invalid request"
        if fields:
            message = f"Invalid request: {', '.join(fields)}"
        return JSONResponse(status_code=400, content={"error": message})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        message = "Endpoint not found" if exc.status_code == 404 else str(exc.detail)
        return JSONResponse(status_code=exc.status_code, content={"error": message})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    # --- ROUTES ---

    @app.get("/health")
    def health():
        return {
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": SERVICE_NAME,
            "connections": app.state.hub.connection_count,
        }

    app.include_router(sessions_router)
    app.include_router(attendance_router)
    app.include_router(realtime_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", str(app.state.settings.port)))
    logger.info("%s running on port %d", SERVICE_NAME, port)
    uvicorn.run("edupresence.main:app", host="0.0.0.0", port=port)
