from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from interview_pipeline.core.config import settings


engine = create_async_engine(settings.database_url, echo=settings.database_echo, pool_pre_ping=True)
SessionLocal = async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)
