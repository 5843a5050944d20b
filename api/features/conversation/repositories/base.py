"""Error translation shared by the conversation repositories."""
from functools import wraps

import structlog
from sqlalchemy.exc import SQLAlchemyError

from api.features.conversation.exceptions import MessageStorageError

logger = structlog.get_logger("chat.storage")


def storage_guard(operation: str):
    """Roll back and re-raise database failures as ``MessageStorageError``.

    The decorated coroutine must be a method of a repository exposing
    ``self.session``.
    """

    def decorator(func):
        @wraps(func)
        async def wrapper(self, *args, **kwargs):
            try:
                return await func(self, *args, **kwargs)
            except SQLAlchemyError as e:
                logger.error("storage_failure", operation=operation, error=str(e))
                await self.session.rollback()
                raise MessageStorageError(operation, str(e)) from e

        return wrapper

    return decorator
