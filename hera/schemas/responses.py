"""HTTP response bodies.

Stored rows are returned with the camelCase field names the front end was
built against.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field

from hera.schemas.records import RecordModel


class RowModel(RecordModel):
    model_config = ConfigDict(from_attributes=True)


class ClinicResponse(RowModel):
    id: int
    name: str
    address: str
    state: str
    phone: str
    services: List[str] = Field(default_factory=list)
    accepted_insurance: List[str] = Field(default_factory=list)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LegalInfoResponse(RowModel):
    id: int
    state: str
    restrictions: List[str] = Field(default_factory=list)
    requirements: List[str] = Field(default_factory=list)
    recent_updates: List[Dict[str, Any]] = Field(default_factory=list)
    effective_date: Optional[datetime] = None
    source_urls: List[str] = Field(default_factory=list)
    last_verified: Optional[datetime] = None
    additional_notes: Optional[str] = None
    emergency_contacts: List[Dict[str, Any]] = Field(default_factory=list)
    last_updated: Optional[datetime] = None
    official_documents: List[Dict[str, Any]] = Field(default_factory=list)
    legal_resources: List[Dict[str, Any]] = Field(default_factory=list)
    state_website: Optional[str] = None
    health_dept_info: Dict[str, Any] = Field(default_factory=dict)
    news_articles: List[Dict[str, Any]] = Field(default_factory=list)


class MessageResponse(RecordModel):
    message: str = Field(..., description="Human-readable status")


class PopulateResponse(RecordModel):
    message: str = Field(..., description="Human-readable status")
    count: int = Field(..., description="Total stored records after the run")


class HealthCheckResponse(RecordModel):
    status: str = Field(..., description="Health check status")
    version: str = Field(..., description="Running application version")
    service: str = Field(..., description="Service name")
    database: Dict[str, Any] = Field(default_factory=dict, description="Database health details")


class NotificationResponse(RowModel):
    id: int
    state: str
    title: str
    description: str
    urgency: str
    effective_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    notified_at: Optional[datetime] = None


class BroadcastResponse(RecordModel):
    message: str = Field(..., description="Human-readable status")
    notification: NotificationResponse
    delivered: int = Field(default=0, description="Subscribers the push reached")
    expired: int = Field(default=0, description="Subscriptions removed as expired")
    failed: int = Field(default=0, description="Deliveries that failed")


class VapidKeyResponse(RecordModel):
    public_key: str
