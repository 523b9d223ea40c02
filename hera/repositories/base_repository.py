from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hera.core.exceptions import DatabaseError
from hera.utils.logging import get_logger

# Define a generic type for SQLAlchemy models
ModelType = TypeVar("ModelType")

LOGGER = get_logger(__name__)


class BaseRepository(Generic[ModelType]):
    """Keyed record store over one table.

    Lookups filter by exact field equality; writes commit immediately so that
    one entity's write never waits on another's.
    """

    def __init__(self, session: AsyncSession, model: Type[ModelType]):
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session
            model: The SQLAlchemy model class this repository manages
        """
        self.session = session
        self.model = model
        self.logger = LOGGER

    def _apply_filters(self, query, filters: Optional[Dict[str, Any]]):
        if filters:
            for field, value in filters.items():
                if not hasattr(self.model, field):
                    raise ValueError(f"{self.model.__name__} has no field {field!r}")
                query = query.where(getattr(self.model, field) == value)
        return query

    async def find_first(self, filters: Dict[str, Any]) -> Optional[ModelType]:
        """Return the first record matching every filter, or None."""
        try:
            query = self._apply_filters(select(self.model), filters).limit(1)
            result = await self.session.execute(query)
            return result.scalars().first()
        except SQLAlchemyError as e:
            await self.session.rollback()
            self.logger.error(
                f"Error finding {self.model.__name__} by {filters}: {str(e)}",
                exc_info=True
            )
            raise DatabaseError(f"Lookup failed for {self.model.__name__}", original_error=e) from e

    async def find_many(
        self,
        filters: Optional[Dict[str, Any]] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[ModelType]:
        """Return records matching the filters, ordered by primary key."""
        try:
            query = self._apply_filters(select(self.model), filters).order_by(self.model.id)
            query = query.offset(skip)
            if limit is not None:
                query = query.limit(limit)
            result = await self.session.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            await self.session.rollback()
            self.logger.error(
                f"Error listing {self.model.__name__}: {str(e)}",
                exc_info=True
            )
            raise DatabaseError(f"Listing failed for {self.model.__name__}", original_error=e) from e

    async def create(self, **kwargs) -> ModelType:
        """Insert a new record and commit."""
        try:
            instance = self.model(**kwargs)
            self.session.add(instance)
            await self.session.flush()
            await self.session.commit()
            return instance
        except SQLAlchemyError as e:
            await self.session.rollback()
            self.logger.error(
                f"Error creating {self.model.__name__}: {str(e)}",
                exc_info=True
            )
            raise DatabaseError(f"Insert failed for {self.model.__name__}", original_error=e) from e

    async def update_where(self, filters: Dict[str, Any], **values) -> int:
        """Overwrite ``values`` on every record matching ``filters``.

        Returns:
            Number of rows updated
        """
        if not filters:
            raise ValueError("update_where requires at least one filter")
        try:
            stmt = self._apply_filters(update(self.model), filters).values(**values)
            result = await self.session.execute(stmt)
            await self.session.commit()
            return result.rowcount
        except SQLAlchemyError as e:
            await self.session.rollback()
            self.logger.error(
                f"Error updating {self.model.__name__} where {filters}: {str(e)}",
                exc_info=True
            )
            raise DatabaseError(f"Update failed for {self.model.__name__}", original_error=e) from e

    async def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        """Count records matching filters."""
        try:
            query = self._apply_filters(select(func.count()).select_from(self.model), filters)
            result = await self.session.execute(query)
            return result.scalar_one()
        except SQLAlchemyError as e:
            await self.session.rollback()
            self.logger.error(
                f"Error counting {self.model.__name__}: {str(e)}",
                exc_info=True
            )
            raise DatabaseError(f"Count failed for {self.model.__name__}", original_error=e) from e
