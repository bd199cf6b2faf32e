from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from .config import settings
from .base import Base

engine = create_async_engine(settings.DATABASE_URL, pool_pre_ping=True)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

def import_models():
    # registers every table on Base.metadata
    from app.modules.categories import models as _categories  # noqa: F401
    from app.modules.doctors import models as _doctors  # noqa: F401
    from app.modules.patients import models as _patients  # noqa: F401
    from app.modules.tasks import models as _tasks  # noqa: F401
    from app.modules.appointments import models as _appointments  # noqa: F401

async def get_session():
    async with SessionLocal() as session:
        yield session

def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return SessionLocal

async def init_models():
    ## In dev-only "create_all" mode create tables; otherwise, migrations own the schema.
    if settings.DB_MANAGE == "create_all":
        import_models()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
