from hera.repositories.base_repository import BaseRepository
from hera.repositories.clinic_repository import ClinicRepository
from hera.repositories.legal_info_repository import LegalInfoRepository
from hera.repositories.notification_repository import (
    LegalUpdateNotificationRepository,
    PushSubscriptionRepository,
)

__all__ = [
    "BaseRepository",
    "ClinicRepository",
    "LegalInfoRepository",
    "LegalUpdateNotificationRepository",
    "PushSubscriptionRepository",
]
