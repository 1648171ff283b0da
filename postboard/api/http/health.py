from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from postboard import __version__
from postboard.core.db import get_db
from postboard.core.exceptions import StoreUnavailable

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(db: AsyncSession = Depends(get_db)):
    """Проверка доступности сервиса и БД"""
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        raise StoreUnavailable("Database is unavailable") from e
    return {"status": "ok", "version": __version__}
