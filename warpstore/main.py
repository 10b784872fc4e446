# warpstore/main.py
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from warpstore.api.v1.router import api_router
from warpstore.config import Settings, get_settings
from warpstore.i18n import DynamicMessages, LocaleManager
from warpstore.services.errors import NoSuchWarp, NotModifiable, NotUsable, PrivateLimitReached, WarpNameTaken
from warpstore.services.warp_service import WarpService
from warpstore.storage import DataConnection, StorageError, open_data_connection

logger = logging.getLogger(__name__)
msg = DynamicMessages()


def _error(status_code: int, key: str, **kwargs) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": msg.get_string(key, **kwargs)})


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NoSuchWarp)
    async def no_such_warp_handler(request: Request, exc: NoSuchWarp):
        return _error(status.HTTP_404_NOT_FOUND, "error.no-such-warp", warp=exc.warp_name)

    @app.exception_handler(NotModifiable)
    async def not_modifiable_handler(request: Request, exc: NotModifiable):
        return _error(status.HTTP_403_FORBIDDEN, "error.no-permission.modify", warp=exc.warp_name)

    @app.exception_handler(NotUsable)
    async def not_usable_handler(request: Request, exc: NotUsable):
        return _error(status.HTTP_403_FORBIDDEN, "error.no-permission.use", warp=exc.warp_name)

    @app.exception_handler(PrivateLimitReached)
    async def private_limit_handler(request: Request, exc: PrivateLimitReached):
        return _error(status.HTTP_409_CONFLICT, "limit.private.reached", limit=exc.limit)

    @app.exception_handler(WarpNameTaken)
    async def name_taken_handler(request: Request, exc: WarpNameTaken):
        return _error(status.HTTP_409_CONFLICT, "error.warp-name-taken", warp=exc.warp_name)

    # Driver messages stay in the log
    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        logger.error(f"Storage error on {request.method} {request.url.path}: {exc!r} (cause: {exc.__cause__!r})")
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, "error.storage-unavailable")


def create_app(settings: Optional[Settings] = None, data_connection: Optional[DataConnection] = None) -> FastAPI:
    """
    Create the API application.

    Args:
        settings: Defaults to the environment settings.
        data_connection: An already open connection to use instead of opening
            the configured backend. The caller stays responsible for closing it.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        LocaleManager.set_default_locale(settings.DEFAULT_LOCALE)
        connection = data_connection
        if connection is None:
            try:
                connection = await asyncio.wrap_future(open_data_connection(settings))
            except StorageError as exc:
                logger.error(f"Unable to open warp storage: {exc!r} (cause: {exc.__cause__!r})")
                raise

        warp_service = WarpService(connection, max_private_warps=settings.MAX_PRIVATE_WARPS)
        count = await run_in_threadpool(warp_service.reload)
        logger.info(f"Serving {count} warps")
        app.state.warp_service = warp_service
        try:
            yield
        finally:
            if data_connection is None:
                connection.close()

    app = FastAPI(
        title="Warp Storage API",
        description="Read and manage persisted warps of a game server",
        version="0.1.0",
        lifespan=lifespan,
    )
    register_exception_handlers(app)

    # Include API routes
    app.include_router(api_router, prefix=settings.API_PREFIX)

    @app.get("/")
    async def root():
        """Health check"""
        return {
            "message": "Warp storage is running",
            "status": "online",
            "version": "0.1.0"
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=get_settings().LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    uvicorn.run("warpstore.main:app", host="0.0.0.0", port=8000)
