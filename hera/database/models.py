"""SQLAlchemy models for clinics, legal information and push notifications.

Column names follow the snake_case form of the record fields the front end
reads (``acceptedInsurance`` -> ``accepted_insurance``); renaming any of them
breaks consumers.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, Integer, Numeric, String, Text, TIMESTAMP, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from hera.core.database import Base


class Clinic(Base):
    """A reproductive-healthcare clinic."""

    __tablename__ = "clinics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    address: Mapped[str] = mapped_column(Text, nullable=False)
    state: Mapped[str] = mapped_column(String, nullable=False, index=True)
    phone: Mapped[str] = mapped_column(String, nullable=False)
    services: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    accepted_insurance: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    latitude: Mapped[Decimal | None] = mapped_column(Numeric, nullable=True)
    longitude: Mapped[Decimal | None] = mapped_column(Numeric, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=text("NOW()")
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=text("NOW()")
    )


class LegalInfo(Base):
    """Per-state legal information, one row per state."""

    __tablename__ = "legal_info"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    state: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    restrictions: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    requirements: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    recent_updates: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    effective_date: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    source_urls: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    last_verified: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=text("NOW()"), nullable=False
    )
    additional_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    emergency_contacts: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    last_updated: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=text("NOW()")
    )
    official_documents: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    legal_resources: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    state_website: Mapped[str | None] = mapped_column(Text, nullable=True)
    health_dept_info: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    news_articles: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)


class PushSubscription(Base):
    """A browser push subscription and the states it follows."""

    __tablename__ = "push_subscriptions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    endpoint: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    p256dh: Mapped[str] = mapped_column(Text, nullable=False)
    auth: Mapped[str] = mapped_column(Text, nullable=False)
    states: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=text("NOW()")
    )
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class LegalUpdateNotification(Base):
    """A broadcast legal update; ``notified_at`` is set once dispatch has run."""

    __tablename__ = "legal_update_notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    state: Mapped[str] = mapped_column(String, nullable=False, index=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    urgency: Mapped[str] = mapped_column(String, nullable=False, default="normal")
    effective_date: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=text("NOW()")
    )
    notified_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
