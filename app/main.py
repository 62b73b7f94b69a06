import logging
import time
from dotenv import load_dotenv

# Load environment variables from .env file before anything else
load_dotenv()

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.core.config import Settings, settings as default_settings
from app.core.logging import request_id_ctx, setup_logging
from app.api.router import api_router
from app.platform.provider_registry import ProviderRegistry

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, registry: ProviderRegistry | None = None) -> FastAPI:
    settings = settings or default_settings
    setup_logging(settings)
    app = FastAPI(title=settings.APP_NAME)
    app.state.registry = registry or ProviderRegistry.from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["Content-Length", "Content-Range", "Accept-Ranges", "X-Cache", "X-Cache-Age"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()

        response = await call_next(request)

        process_time = (time.time() - start_time) * 1000
        route = request.scope.get("route")
        endpoint = getattr(route, "path", request.url.path)
        app.state.registry.request_metrics.track_request(endpoint, response.status_code < 400, process_time)
        if response.status_code >= 400:
            app.state.registry.request_metrics.track_error(endpoint, f"HTTP {response.status_code}", response.status_code)
        logger.info(
            f"Request: {request.method} {request.url.path} - Response: {response.status_code} - Time: {process_time:.2f}ms"
        )
        return response

    # registered last so it runs first and the request id is set for the logging middleware
    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        rid = request.headers.get("x-request-id", "-")
        token = request_id_ctx.set(rid)
        try:
            return await call_next(request)
        finally:
            request_id_ctx.reset(token)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.critical(f"Unhandled exception for request {request.method} {request.url.path}", exc_info=True)
        app.state.registry.request_metrics.track_error(request.url.path, repr(exc), 500)
        return JSONResponse(
            status_code=500,
            content={"message": "An internal server error occurred."},
        )

    @app.on_event("startup")
    async def on_startup():
        await app.state.registry.start()

    @app.on_event("shutdown")
    async def on_shutdown():
        await app.state.registry.close()

    app.include_router(api_router, prefix=settings.API_PREFIX)
    return app


app = create_app()
