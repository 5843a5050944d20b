"""Infrastructure resources: database engine and completion API client.

This module is part of the infra layer and must not import from application features.
"""
from typing import Optional

from openai import AsyncOpenAI
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine


class DatabaseResource:
    """Database resource for dependency injection."""

    def __init__(self, database_url: str):
        self.database_url = database_url
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    async def init(self):
        """Initialize database connection."""
        self.engine = create_async_engine(
            self.database_url,
            echo=False,
            pool_pre_ping=True,
            pool_recycle=3600,
        )
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        return self

    def get_session(self) -> AsyncSession:
        """Get database session (synchronous accessor)."""
        if self.session_factory is None:
            raise RuntimeError("Database not initialized. Call init() first.")
        return self.session_factory()

    async def shutdown(self):
        """Shutdown database connection."""
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self.session_factory = None


class CompletionResource:
    """Holds the OpenAI-compatible client for the lifetime of the application.

    Retries are disabled on the client; whether to retry a generation is the
    caller's decision.
    """

    def __init__(self, api_key: str, base_url: str):
        self.api_key = api_key
        self.base_url = base_url
        self.client: Optional[AsyncOpenAI] = None

    async def init(self):
        """Create the HTTP client."""
        self.client = AsyncOpenAI(
            api_key=self.api_key,
            base_url=self.base_url,
            max_retries=0,
        )
        return self

    def get_client(self) -> AsyncOpenAI:
        if self.client is None:
            raise RuntimeError("Completion client not initialized. Call init() first.")
        return self.client

    async def shutdown(self):
        """Close the underlying HTTP connection pool."""
        if self.client is not None:
            await self.client.close()
            self.client = None
