from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from postboard.core.config import settings
from postboard.db.base import Base

# Асинхронный движок
engine = create_async_engine(settings.database_url, future=True, echo=settings.db_echo)

# Сессии
SessionLocal = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


async def init_models(bind: AsyncEngine = engine) -> None:
    """Создание таблиц по метаданным моделей (без миграций)"""
    import postboard.db.models  # noqa: F401  регистрирует модели в Base.metadata

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# Функция для dependency injection в FastAPI
async def get_db():
    async with SessionLocal() as session:
        yield session
