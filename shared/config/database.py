from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from shared.config import settings

# Per-service schemas keep the tables of each service isolated in one database
SERVICE_SCHEMAS = ("product_schema", "order_schema", "payment_schema")

engine = create_async_engine(settings.DATABASE_URL, echo=settings.SQL_ECHO)

AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False)

Base = declarative_base()


async def get_db():
    async with AsyncSessionLocal() as session:
        yield session


async def create_all(bind=engine):
    """Creates the service schemas (PostgreSQL only) and every registered table."""
    async with bind.begin() as conn:
        if conn.dialect.name == "postgresql":
            for schema in SERVICE_SCHEMAS:
                await conn.exec_driver_sql(f"CREATE SCHEMA IF NOT EXISTS {schema}")
        await conn.run_sync(Base.metadata.create_all)
