from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from hera.database.models import Clinic
from hera.repositories.base_repository import BaseRepository


class ClinicRepository(BaseRepository[Clinic]):
    """Repository for clinic records."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Clinic)

    async def list_by_state(self, state: str) -> List[Clinic]:
        """All clinics stored for a state."""
        return await self.find_many({"state": state})
