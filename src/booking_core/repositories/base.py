"""Base repository shared by the booking repositories."""

import logging
from typing import Any, Generic, Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from booking_core.database.models import Base
from booking_core.exceptions import DatabaseError

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Row-level operations keyed by the string primary key ``id``.

    Writes only flush; committing is left to the service that owns the session.
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        self.model = model
        self.session = session

    @property
    def _name(self) -> str:
        return self.model.__name__

    async def get_by_id(self, id: str) -> Optional[ModelType]:
        """Return the row with ``id``, or ``None``."""
        try:
            result = await self.session.execute(select(self.model).where(self.model.id == id))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error loading {self._name} {id}: {e}")
            raise DatabaseError(f"Failed to retrieve {self._name}") from e

    async def create(self, **values: Any) -> ModelType:
        """Insert a row and return it with server defaults loaded."""
        try:
            instance = self.model(**values)
            self.session.add(instance)
            await self.session.flush()
            await self.session.refresh(instance)
        except SQLAlchemyError as e:
            logger.error(f"Error inserting {self._name}: {e}")
            await self.session.rollback()
            raise DatabaseError(f"Failed to create {self._name}") from e
        logger.debug(f"Inserted {self._name} {instance.id}")
        return instance

    async def update(self, id: str, **values: Any) -> Optional[ModelType]:
        """Set the given attributes on the row with ``id``; ``None`` if it is missing."""
        instance = await self.get_by_id(id)
        if instance is None:
            return None
        try:
            for field, value in values.items():
                if hasattr(instance, field):
                    setattr(instance, field, value)
            await self.session.flush()
            await self.session.refresh(instance)
        except SQLAlchemyError as e:
            logger.error(f"Error updating {self._name} {id}: {e}")
            await self.session.rollback()
            raise DatabaseError(f"Failed to update {self._name}") from e
        return instance

    async def delete(self, id: str) -> bool:
        """Delete the row with ``id``. Returns ``False`` if it did not exist."""
        instance = await self.get_by_id(id)
        if instance is None:
            return False
        try:
            await self.session.delete(instance)
            await self.session.flush()
        except SQLAlchemyError as e:
            logger.error(f"Error deleting {self._name} {id}: {e}")
            await self.session.rollback()
            raise DatabaseError(f"Failed to delete {self._name}") from e
        logger.debug(f"Deleted {self._name} {id}")
        return True
