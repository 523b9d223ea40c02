"""Database models for the ingestion pipeline and legal-update notifications."""

from hera.database.models import Clinic, LegalInfo, LegalUpdateNotification, PushSubscription

__all__ = ["Clinic", "LegalInfo", "LegalUpdateNotification", "PushSubscription"]
