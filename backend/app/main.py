import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import ChatConfig, get_settings, mask
from .core.logging import close_log_handlers, configure_logging

# Get settings
settings = get_settings()

# Configure logging
configure_logging(settings.LOG_LEVEL, settings.LOG_FILE)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    config = ChatConfig.from_settings(get_settings())
    logger.info(
        "Chat proxy config: provider=%s model=%s url=%s max_tokens=%s temperature=%s timeout_s=%s denylist_terms=%d",
        config.provider, config.model, config.api_url, config.max_tokens,
        config.temperature, config.timeout_s, len(config.denylist),
    )
    if not config.configured:
        logger.warning(
            "No LLM API key configured for provider=%s; chat requests will fail until one is set",
            config.provider,
        )
    else:
        logger.info("Using LLM key (masked): %s", mask(config.api_key))
    try:
        yield
    finally:
        close_log_handlers()


# Initialize FastAPI app with lifespan
app = FastAPI(
    title=f"{settings.PROJECT_NAME} API",
    description="Moderated proxy in front of a chat-completion endpoint",
    version=settings.VERSION,
    docs_url=f"{settings.API_PREFIX}/docs",
    redoc_url=f"{settings.API_PREFIX}/redoc",
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    lifespan=lifespan,
)

# Set up CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_origin_regex=settings.CORS_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health check endpoint
@app.get(f"{settings.API_PREFIX}/health")
async def health_check():
    s = get_settings()
    return {
        "status": "ok",
        "service": s.PROJECT_NAME,
        "environment": s.ENVIRONMENT,
        "llm_configured": bool(s.resolve_api_key()),
    }


# Import and include routers
from .api.routers import chat  # noqa: E402

app.include_router(chat.router, prefix=settings.API_PREFIX)


# Root endpoint
@app.get("/")
async def root():
    return {
        "message": f"Welcome to {settings.PROJECT_NAME} API",
        "docs": f"{settings.API_PREFIX}/docs",
        "version": settings.VERSION,
    }


# Error handlers
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "invalid_input", "message": "Please provide a valid message"},
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc):
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )
