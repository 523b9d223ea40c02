"""Record shapes flowing through the ingestion pipeline.

Attributes are snake_case; serialized keys are the camelCase names the front
end reads (``recentUpdates``, ``acceptedInsurance``), so records are always
dumped with ``by_alias=True`` before they are stored or returned.
"""

import math
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class RecordModel(BaseModel):
    """Base for pipeline records: camelCase aliases, unknown keys ignored."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class LegalUpdate(RecordModel):
    """A dated change in a state's law."""

    date: str
    description: str
    impact: str = "Impact under assessment"


class NewsArticle(RecordModel):
    title: str
    url: str
    source: str
    date: str
    summary: str = ""
    state: str = ""


class OfficialDocument(RecordModel):
    title: str
    url: str
    type: str = Field(..., description="legislation | guidance | policy")


class LegalResource(RecordModel):
    name: str
    url: str
    description: str = ""


class EmergencyContact(RecordModel):
    name: str
    phone: str
    available_24x7: bool = Field(default=False, alias="available24x7")


class HealthDeptInfo(RecordModel):
    """State health department contact details; every field optional."""

    name: Optional[str] = None
    website: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None

    def is_empty(self) -> bool:
        return not any((self.name, self.website, self.phone, self.email))


class LegalInfoPartial(RecordModel):
    """One source's contribution for one state.

    ``None`` means the source had no opinion on that field; an empty list
    means it looked and found nothing. Both merge identically.
    """

    source: str
    restrictions: Optional[List[str]] = None
    requirements: Optional[List[str]] = None
    recent_updates: Optional[List[LegalUpdate]] = None
    source_urls: Optional[List[str]] = None
    official_documents: Optional[List[OfficialDocument]] = None
    legal_resources: Optional[List[LegalResource]] = None
    state_website: Optional[str] = None
    health_dept_info: Optional[HealthDeptInfo] = None
    news_articles: Optional[List[NewsArticle]] = None
    additional_notes: Optional[str] = None
    emergency_contacts: Optional[List[EmergencyContact]] = None

    def is_empty(self) -> bool:
        """True when the partial carries no facts at all."""
        for name in LIST_FIELDS:
            if getattr(self, name):
                return False
        if self.state_website or self.additional_notes:
            return False
        return self.health_dept_info is None or self.health_dept_info.is_empty()


LIST_FIELDS = (
    "restrictions",
    "requirements",
    "recent_updates",
    "source_urls",
    "official_documents",
    "legal_resources",
    "news_articles",
    "emergency_contacts",
)


class LegalInfoRecord(RecordModel):
    """Merged (and possibly enriched) legal information for one state."""

    state: str
    restrictions: List[str] = Field(default_factory=list)
    requirements: List[str] = Field(default_factory=list)
    recent_updates: List[LegalUpdate] = Field(default_factory=list)
    source_urls: List[str] = Field(default_factory=list)
    official_documents: List[OfficialDocument] = Field(default_factory=list)
    legal_resources: List[LegalResource] = Field(default_factory=list)
    state_website: Optional[str] = None
    health_dept_info: HealthDeptInfo = Field(default_factory=HealthDeptInfo)
    news_articles: List[NewsArticle] = Field(default_factory=list)
    additional_notes: Optional[str] = None
    emergency_contacts: List[EmergencyContact] = Field(default_factory=list)

    def to_columns(self) -> dict:
        """Column values for the ``legal_info`` table (JSON payloads camelCased)."""
        return {
            "state": self.state,
            "restrictions": list(self.restrictions),
            "requirements": list(self.requirements),
            "recent_updates": [u.model_dump(by_alias=True) for u in self.recent_updates],
            "source_urls": list(self.source_urls),
            "official_documents": [d.model_dump(by_alias=True) for d in self.official_documents],
            "legal_resources": [r.model_dump(by_alias=True) for r in self.legal_resources],
            "state_website": self.state_website,
            "health_dept_info": self.health_dept_info.model_dump(by_alias=True, exclude_none=True),
            "news_articles": [a.model_dump(by_alias=True) for a in self.news_articles],
            "additional_notes": self.additional_notes,
            "emergency_contacts": [c.model_dump(by_alias=True) for c in self.emergency_contacts],
        }


class ClinicRecord(RecordModel):
    """A clinic as produced by a source; every identifying field and both coordinates are mandatory."""

    name: str
    address: str
    state: str
    phone: str
    services: List[str] = Field(default_factory=list)
    accepted_insurance: List[str] = Field(default_factory=list)
    latitude: float
    longitude: float

    @field_validator("name", "address", "state", "phone")
    @classmethod
    def _required_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("latitude", "longitude")
    @classmethod
    def _finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("coordinate must be finite")
        return value

    def to_columns(self) -> dict:
        return {
            "name": self.name,
            "address": self.address,
            "state": self.state,
            "phone": self.phone,
            "services": list(self.services),
            "accepted_insurance": list(self.accepted_insurance),
            "latitude": self.latitude,
            "longitude": self.longitude,
        }
