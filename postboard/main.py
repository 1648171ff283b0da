import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from postboard import __version__
from postboard.api.http import health_router, posts_router
from postboard.core.config import settings
from postboard.core.db import init_models
from postboard.core.exceptions import (
    NotFound, PostboardError, StoreUnavailable, Unauthenticated, Unauthorized, ValidationError
)

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    Unauthenticated: status.HTTP_401_UNAUTHORIZED,
    Unauthorized: status.HTTP_403_FORBIDDEN,
    NotFound: status.HTTP_404_NOT_FOUND,
    StoreUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.auto_create_schema:
        await init_models()
        logger.info("Database schema created")
    yield


app = FastAPI(
    title="Postboard",
    description="Слой доступа к постам с кэшем запроса и сбросом кэша при записи",
    version=__version__,
    lifespan=lifespan
)

# Настройка CORS для работы с frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # В продакшене указать конкретные домены
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PostboardError)
async def postboard_error_handler(request: Request, exc: PostboardError):
    status_code = next(
        (code for error_type, code in ERROR_STATUS.items() if isinstance(exc, error_type)),
        status.HTTP_500_INTERNAL_SERVER_ERROR
    )
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")

    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return JSONResponse(status_code=status_code, content={"detail": str(exc)}, headers=headers)


# Подключаем роутеры
app.include_router(health_router)
app.include_router(posts_router)
