from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from hera.database.models import LegalInfo
from hera.repositories.base_repository import BaseRepository


class LegalInfoRepository(BaseRepository[LegalInfo]):
    """Repository for per-state legal information."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, LegalInfo)

    async def get_by_state(self, state: str) -> Optional[LegalInfo]:
        """Get the legal information row for a state name."""
        return await self.find_first({"state": state})
