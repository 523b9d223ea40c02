"""Insert-or-update of canonical records by natural key."""

from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict

from sqlalchemy.ext.asyncio import AsyncSession

from hera.repositories.clinic_repository import ClinicRepository
from hera.repositories.legal_info_repository import LegalInfoRepository
from hera.schemas.records import ClinicRecord, LegalInfoRecord
from hera.utils.logging import get_logger

LOGGER = get_logger(__name__)


class UpsertOutcome(str, Enum):
    INSERTED = "inserted"
    UPDATED = "updated"
    SKIPPED = "skipped"


class ClinicIdentity(str, Enum):
    """Which fields decide that a clinic is already stored.

    ``NAME`` treats any stored clinic with the same name as the same clinic,
    even at a different address.
    """

    NAME = "name"
    NAME_AND_ADDRESS = "name_and_address"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UpsertCoordinator:
    """Decides insert vs. update for legal info and insert vs. skip for clinics."""

    def __init__(
        self,
        legal_repository: LegalInfoRepository,
        clinic_repository: ClinicRepository,
        clinic_identity: ClinicIdentity = ClinicIdentity.NAME,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.legal_repository = legal_repository
        self.clinic_repository = clinic_repository
        self.clinic_identity = ClinicIdentity(clinic_identity)
        self._now = now

    @classmethod
    def for_session(cls, session: AsyncSession, clinic_identity: ClinicIdentity = ClinicIdentity.NAME) -> "UpsertCoordinator":
        return cls(
            LegalInfoRepository(session),
            ClinicRepository(session),
            clinic_identity=clinic_identity,
        )

    async def upsert_legal_info(self, record: LegalInfoRecord) -> UpsertOutcome:
        """Write ``record`` keyed by state.

        An existing row has every mutable field overwritten and its
        ``last_verified``/``last_updated`` stamps refreshed. A new row also
        gets an ``effective_date``.
        """
        now = self._now()
        columns = record.to_columns()
        existing = await self.legal_repository.get_by_state(record.state)

        if existing is not None:
            columns.pop("state")
            await self.legal_repository.update_where(
                {"state": record.state},
                **columns,
                last_verified=now,
                last_updated=now,
            )
            LOGGER.info(f"Updated legal info for {record.state}", extra={"state": record.state})
            return UpsertOutcome.UPDATED

        await self.legal_repository.create(
            **columns,
            effective_date=now,
            last_verified=now,
            last_updated=now,
        )
        LOGGER.info(f"Inserted legal info for {record.state}", extra={"state": record.state})
        return UpsertOutcome.INSERTED

    def _clinic_filters(self, clinic: ClinicRecord) -> Dict[str, str]:
        if self.clinic_identity is ClinicIdentity.NAME_AND_ADDRESS:
            return {"name": clinic.name, "address": clinic.address}
        return {"name": clinic.name}

    async def upsert_clinic(self, clinic: ClinicRecord) -> UpsertOutcome:
        """Insert ``clinic`` unless a clinic with the same identity is already stored."""
        existing = await self.clinic_repository.find_first(self._clinic_filters(clinic))
        if existing is not None:
            LOGGER.info(
                f"Clinic {clinic.name} already exists, skipping",
                extra={"state": clinic.state, "identity": self.clinic_identity.value},
            )
            return UpsertOutcome.SKIPPED

        await self.clinic_repository.create(**clinic.to_columns())
        LOGGER.info(f"Added clinic: {clinic.name} in {clinic.state}", extra={"state": clinic.state})
        return UpsertOutcome.INSERTED
