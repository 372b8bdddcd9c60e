import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from resumeflow.config import get_settings
from resumeflow.deps import close_clients, get_gemini_client
from resumeflow.exceptions import (
    BaseHTTPException,
    common_exception_handler,
    starlette_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from resumeflow.logging_config import setup_logging
from resumeflow.routes_auth import auth_router
from resumeflow.routes_gemini import gemini_router
from resumeflow.routes_interview import interview_router
from resumeflow.routes_resume import resume_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    # no API key means no service: fail at startup, not on the first request
    get_gemini_client()
    logger.info("ResumeFlow API started")
    yield
    await close_clients()


def prepare_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.APP_NAME,
        description="AI resume feedback and interview preparation",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(gemini_router, prefix="/api/gemini", tags=["gemini"])
    app.include_router(resume_router, prefix="/api", tags=["resume"])
    app.include_router(interview_router, prefix="/api/interview", tags=["interview"])
    app.include_router(auth_router, prefix="/api/auth", tags=["auth"])

    app.add_exception_handler(BaseHTTPException, common_exception_handler)
    app.add_exception_handler(StarletteHTTPException, starlette_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    return app


def start_service() -> None:
    settings = get_settings()
    uvicorn.run(
        prepare_app(),
        host=settings.APP_ADDRESS,
        port=settings.APP_PORT,
    )


app = prepare_app()

if __name__ == "__main__":
    start_service()
