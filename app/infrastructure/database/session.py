"""Engine and session factory construction for the gallery database."""
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine
)


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine for a database URL.

    Args:
        database_url: SQLAlchemy URL with an async driver
            (e.g. ``sqlite+aiosqlite:///data/gallery.db``)
        echo: Log every statement
    """
    return create_async_engine(database_url, echo=echo)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the session factory bound to an engine.

    Objects stay readable after commit, since records are converted to
    identities once the transaction has closed.
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False
    )
