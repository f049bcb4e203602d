import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers
from starlette.exceptions import HTTPException as StarletteHTTPException

from velox.core.config import Settings, settings as default_settings
from velox.core.errors import SubscriptionError, StoreError
from velox.core.logging_config import setup_logging
from velox.db.session import Database
from velox.routes.subscribers import router as subscribers_router
from velox.services.subscriptions import validation_errors

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Initializing database...")
    db: Database = app.state.db
    await db.create_all()

    yield

    # Shutdown
    logger.info("Shutting down...")
    await db.dispose()
    logger.info("Shutdown complete.")

def register_exception_handlers(app: FastAPI):
    @app.exception_handler(SubscriptionError)
    async def subscription_error_handler(request: Request, exc: SubscriptionError):
        if isinstance(exc, StoreError):
            logger.error(f"Store failure on {request.method} {request.url.path}: {exc.__cause__ or exc}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"success": False, "message": "Validation failed", "errors": validation_errors(exc)}
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        message = "Route not found" if exc.status_code == 404 else str(exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": message},
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"success": False, "message": "Internal server error"})

class BodySizeLimitMiddleware:
    """Rejects request bodies over `max_body_bytes`, declared or streamed."""

    def __init__(self, app, max_body_bytes: int):
        self.app = app
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        content_length = Headers(scope=scope).get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.max_body_bytes:
            response = JSONResponse(status_code=413, content={"success": False, "message": "Request body too large"})
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive():
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_bytes:
                    # Chunked bodies carry no Content-Length; FastAPI re-raises HTTPException from body reads
                    raise StarletteHTTPException(status_code=413, detail="Request body too large")
            return message

        await self.app(scope, limited_receive, send)

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings

    app = FastAPI(title="Velox Subscribers API", lifespan=lifespan)

    # Attach to app state for dependency injection
    app.state.settings = settings
    app.state.db = Database(settings.DATABASE_URL)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_URL],
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=settings.MAX_BODY_BYTES)

    register_exception_handlers(app)
    app.include_router(subscribers_router)
    return app

# Initialize logging
setup_logging()

app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("velox.main:app", host=default_settings.HOST, port=default_settings.PORT)
