import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api import admin, answers, bank, participants, sessions
from app.core.config import settings
from app.core.db import create_tables, dispose_engine, wait_for_db
from app.services.errors import QuizError, RateLimited


logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await wait_for_db()
    if settings.AUTO_CREATE_TABLES:
        await create_tables()
    yield
    await dispose_engine()


def create_app(use_lifespan: bool = True) -> FastAPI:
    app = FastAPI(
        title="Expo Quiz Backend",
        version="0.1.0",
        lifespan=lifespan if use_lifespan else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(QuizError)
    async def quiz_error_handler(request: Request, exc: QuizError):
        # каждая категория ошибки — свой code, чтобы клиент отличал "повтори позже" от "нельзя"
        headers = None
        if isinstance(exc, RateLimited):
            headers = {"Retry-After": str(exc.retry_after)}
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "code": exc.code},
            headers=headers,
        )

    app.include_router(admin.router)
    app.include_router(sessions.router)
    app.include_router(bank.router)
    app.include_router(participants.router)
    app.include_router(answers.router)

    @app.get("/")
    async def root():
        return {"message": "Hello, Expo Quiz!"}

    return app


app = create_app()
