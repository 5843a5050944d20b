import logging
import sys
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request

from api.shared.dtos import ErrorResponse
from api.shared.exceptions import ChatServiceException
from core.settings import SETTINGS
from di.container import ApplicationContainer as DependencyContainer

# Configure logging
logging.basicConfig(
    level=SETTINGS.APP.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger("chat")


class CustomFastAPI(FastAPI):
    container: DependencyContainer


@asynccontextmanager
async def lifespan(_app: CustomFastAPI):
    logger.info("Starting application initialization...")
    start_time = time.time()

    try:
        logger.info("Initializing database connection...")
        db_start = time.time()
        db_resource = _app.container.infrastructure.database()
        await db_resource.init()
        async with db_resource.engine.begin() as _conn:
            await _conn.execute(text("SELECT 1"))
        logger.info(f"Database connection established in {time.time() - db_start:.2f}s")

        logger.info("Initializing completion client...")
        completion_resource = _app.container.infrastructure.completion()
        await completion_resource.init()
        logger.info(
            f"Completion client ready for {SETTINGS.COMPLETION.COMPLETION_BASE_URL}"
        )

        logger.info(f"Application startup completed in {time.time() - start_time:.2f}s")
    except Exception as e:
        logger.exception(f"Failed to initialize application: {e}")
        raise

    yield

    try:
        await _app.container.infrastructure.completion().shutdown()
        await _app.container.infrastructure.database().shutdown()
        logger.info("Application shutdown complete")
    except Exception:
        logger.exception("Error during shutdown")


def create_fastapi_app() -> CustomFastAPI:
    _app = CustomFastAPI(
        title="Chat API",
        description="Conversational assistant backed by a persistent transcript store",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Initialize dependency container
    _app.container = DependencyContainer()
    _app.container.infrastructure.config.from_dict(SETTINGS.model_dump())
    _app.container.wire(modules=[sys.modules[__name__]])
    _app.container.init_resources()

    _app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://localhost:8501"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-User-Id"],
    )

    from api.features.conversation.router import router as conversation_router

    _app.include_router(conversation_router, prefix="/api/v1/chats", tags=["Chats"])

    register_exception_handlers(_app)
    return _app


def register_exception_handlers(_app: FastAPI) -> None:
    @_app.exception_handler(ChatServiceException)
    async def chat_exception_handler(request: Request, exc: ChatServiceException):
        if exc.status_code >= 500:
            logger.error(f"{exc.error_code} on {request.url.path}: {exc.message}")
        else:
            logger.info(f"{exc.error_code} on {request.url.path}: {exc.message}")
        body = ErrorResponse(
            error_code=exc.error_code, message=exc.message, details=exc.details
        )
        return JSONResponse(status_code=exc.status_code, content=body.model_dump(mode="json"))

    @_app.exception_handler(404)
    async def not_found_handler(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=404,
            content={
                "error": "Not Found",
                "detail": f"{exc.detail} : {request.url}",
                "status_code": 404,
            },
        )

    @_app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content={"error": "Validation Error", "detail": str(exc), "status_code": 422},
        )

    @_app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal Server Error",
                "detail": "An unexpected error occurred",
                "status_code": 500,
            },
        )


app = create_fastapi_app()


@app.get("/")
async def root():
    return {"message": "Chat API is running", "status": "ok"}


@app.get("/health")
async def health():
    return {"status": "ok"}
