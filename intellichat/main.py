"""IntelliChat Server - FastAPI application."""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from intellichat.api import (
    chats_router,
    credits_router,
    messages_router,
    users_router,
    webhooks_router,
)
from intellichat.config import get_settings
from intellichat.db import close_db, init_db
from intellichat.errors import IntelliChatError
from intellichat.logging import configure_logging, get_logger


logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - initialize database on startup."""
    await init_db()
    yield
    await close_db()


settings = get_settings()
configure_logging(settings.log_level)

app = FastAPI(
    title=f"{settings.app_name} API",
    description="Chat assistant API with credit-metered text and image generation",
    version="1.0.0",
    debug=settings.debug,
    lifespan=lifespan,
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(users_router)
app.include_router(chats_router)
app.include_router(messages_router)
app.include_router(credits_router)
app.include_router(webhooks_router)


# ============= Error Handlers =============

@app.exception_handler(IntelliChatError)
async def handle_app_error(request: Request, exc: IntelliChatError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message},
        headers={"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None,
    )


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg", message)

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"success": False, "message": message},
    )


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception("unhandled_error", path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "message": "Server error"},
    )


# ============= Health Endpoints =============

@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "intellichat-api"}


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": f"{settings.app_name} API",
        "version": "1.0.0",
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
