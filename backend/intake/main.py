import logging
import time
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import Settings, get_settings
from .db.record_store import RecordStore
from .logging_config import configure_logging
from .routers import applications, health

logger = logging.getLogger(__name__)

INVALID_BODY_MESSAGE = "无效的请求数据格式"
NOT_FOUND_MESSAGE = "Not Found"
INDEX_FILENAME = "index.html"


def _resolve_frontend_file(root: Path, requested: str) -> Path | None:
    base = root.resolve()
    if requested:
        candidate = (base / requested).resolve()
        if candidate.is_relative_to(base) and candidate.is_file():
            return candidate
    index = base / INDEX_FILENAME
    return index if index.is_file() else None


def _register_frontend(app: FastAPI, frontend_dir: Path) -> None:
    if (frontend_dir / "static").is_dir():
        app.mount("/static", StaticFiles(directory=frontend_dir / "static"), name="static")

    @app.get("/{full_path:path}", include_in_schema=False)
    def serve_frontend(full_path: str):
        if full_path == "api" or full_path.startswith("api/"):
            return JSONResponse(status_code=404, content={"message": NOT_FOUND_MESSAGE})
        target = _resolve_frontend_file(frontend_dir, full_path)
        if target is None:
            return JSONResponse(status_code=404, content={"message": NOT_FOUND_MESSAGE})
        return FileResponse(target)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Application Intake API", version=__version__)
    app.state.settings = settings
    app.state.store = RecordStore(settings.data_dir)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", "Authorization"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info("%s %s -> %s (%.1f ms)", request.method, request.url.path, response.status_code, elapsed_ms)
        return response

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(_request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def invalid_body_handler(request: Request, exc: RequestValidationError):
        logger.info("Invalid request data for %s %s: %s", request.method, request.url.path, exc.errors())
        return JSONResponse(status_code=400, content={"message": INVALID_BODY_MESSAGE})

    @app.on_event("startup")
    async def startup() -> None:
        store: RecordStore = app.state.store
        store.ensure_data_dir()
        if store.check_writable():
            logger.info("Data will be saved to: %s", store.data_dir)
        else:
            logger.warning("Data directory %s is not writable; submissions will fail", store.data_dir)

    app.include_router(health.router)
    app.include_router(applications.router)
    _register_frontend(app, settings.frontend_dir)
    return app


def run() -> None:
    import uvicorn

    settings = get_settings()
    logger.info("Starting intake server on %s:%s", settings.host, settings.port)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


app = create_app()


if __name__ == "__main__":
    run()
