"""Completion-service adapters: legal-info enrichment and clinic generation.

Enrichment is best effort. Whatever goes wrong with the completion call, the
merged record comes back unchanged, and on success the sourced entries always
stay ahead of the AI-supplied ones.
"""

import asyncio
import math
from typing import Any, Awaitable, Callable, List, Optional, Protocol, Sequence, Union

from pydantic import Field, ValidationError, field_validator

from hera.core.exceptions import APIClientError, ClinicBatchError, EnrichmentError
from hera.pipeline.merge import merge_into
from hera.prompts.system_prompts import (
    CLINIC_GENERATION_PROMPT,
    CLINIC_GENERATION_SYSTEM_PROMPT,
    LEGAL_ENRICHMENT_PROMPT,
    LEGAL_ENRICHMENT_SYSTEM_PROMPT,
)
from hera.schemas.records import (
    ClinicRecord,
    EmergencyContact,
    LegalInfoPartial,
    LegalInfoRecord,
    LegalUpdate,
    NewsArticle,
    OfficialDocument,
    RecordModel,
)
from hera.utils.json_parser import parse_json_safely
from hera.utils.logging import get_logger
from hera.utils.phone import normalize_phone

LOGGER = get_logger(__name__)

STANDARD_SERVICES = [
    "Medical Abortion",
    "Surgical Abortion",
    "Family Planning",
    "Counseling Services",
    "Birth Control",
]

STANDARD_INSURANCE = [
    "Medicaid",
    "Blue Cross Blue Shield",
    "UnitedHealthcare",
    "Aetna",
    "Cigna",
]


class CompletionService(Protocol):
    async def generate_content(
        self,
        contents: Union[str, List[Any]],
        system_instruction: Optional[str] = None,
        generation_config: Optional[dict] = None,
    ) -> str:
        ...


class LegalEnrichmentPayload(RecordModel):
    """JSON object the completion service must return for legal enrichment."""

    restrictions: List[str] = Field(default_factory=list)
    requirements: List[str] = Field(default_factory=list)
    recent_updates: List[LegalUpdate] = Field(default_factory=list)
    news_articles: List[NewsArticle] = Field(default_factory=list)
    emergency_contacts: List[EmergencyContact] = Field(default_factory=list)
    official_documents: List[OfficialDocument] = Field(default_factory=list)
    additional_notes: Optional[str] = None

    def to_partial(self) -> LegalInfoPartial:
        return LegalInfoPartial(
            source="ai",
            restrictions=self.restrictions,
            requirements=self.requirements,
            recent_updates=self.recent_updates,
            news_articles=self.news_articles,
            emergency_contacts=self.emergency_contacts,
            official_documents=self.official_documents,
            additional_notes=self.additional_notes,
        )


class LegalInfoEnricher:
    """Supplement a merged legal record with completion-service output."""

    def __init__(self, llm_client: CompletionService, temperature: float = 0.3, enabled: bool = True):
        self.llm_client = llm_client
        self.temperature = temperature
        self.enabled = enabled

    async def enrich(self, state: str, merged: LegalInfoRecord) -> LegalInfoRecord:
        """Return ``merged`` unioned with the AI answer for ``state``.

        Args:
            state: State name embedded in the prompt
            merged: Record built from live sources

        Returns:
            The enriched record, or ``merged`` itself on any failure
        """
        if not self.enabled:
            return merged

        try:
            payload = await self._request_payload(state)
        except (APIClientError, EnrichmentError) as e:
            LOGGER.warning(f"AI enrichment skipped for {state}: {e}", extra={"state": state})
            return merged

        enriched = merge_into(merged, payload.to_partial())
        LOGGER.info(
            f"AI enrichment applied for {state}",
            extra={
                "state": state,
                "added_restrictions": len(enriched.restrictions) - len(merged.restrictions),
                "added_requirements": len(enriched.requirements) - len(merged.requirements),
            },
        )
        return enriched

    async def _request_payload(self, state: str) -> LegalEnrichmentPayload:
        response_text = await self.llm_client.generate_content(
            contents=LEGAL_ENRICHMENT_PROMPT.format(state=state),
            system_instruction=LEGAL_ENRICHMENT_SYSTEM_PROMPT,
            generation_config={
                "temperature": self.temperature,
                "response_mime_type": "application/json",
            },
        )

        parsed = parse_json_safely(response_text)
        if not isinstance(parsed, dict):
            raise EnrichmentError(f"Completion for {state} is not a JSON object")

        try:
            return LegalEnrichmentPayload.model_validate(parsed)
        except ValidationError as e:
            raise EnrichmentError(f"Completion for {state} does not match the enrichment schema", original_error=e) from e


class GeneratedClinic(RecordModel):
    """One clinic as produced by the completion service."""

    name: str
    address: str
    phone: str
    latitude: float
    longitude: float

    @field_validator("name", "address", "phone", mode="before")
    @classmethod
    def _non_empty_string(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("must be a non-empty string")
        return value.strip()

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _numeric(cls, value: Any) -> float:
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise ValueError("must be a finite number")
        return float(value)

    @field_validator("phone")
    @classmethod
    def _format_phone(cls, value: str) -> str:
        return normalize_phone(value)

    def to_record(self, state: str) -> ClinicRecord:
        return ClinicRecord(
            name=self.name,
            address=self.address,
            state=state,
            phone=self.phone,
            services=list(STANDARD_SERVICES),
            accepted_insurance=list(STANDARD_INSURANCE),
            latitude=self.latitude,
            longitude=self.longitude,
        )


def validate_clinic_batch(state: str, items: Any, count: int) -> List[ClinicRecord]:
    """Accept the batch only if it holds exactly ``count`` well-formed clinics.

    Raises:
        ClinicBatchError: On a non-list, a short or long batch, or any invalid item
    """
    if not isinstance(items, list):
        raise ClinicBatchError(state, expected=count, valid=0)

    records = []
    for item in items:
        try:
            records.append(GeneratedClinic.model_validate(item).to_record(state))
        except ValidationError as e:
            LOGGER.warning(
                f"Invalid generated clinic for {state}: {e.errors()[0].get('msg')}",
                extra={"state": state, "clinic": str(item)[:200]},
            )

    if len(items) != count or len(records) != count:
        raise ClinicBatchError(state, expected=count, valid=min(len(records), count))
    return records


class ClinicGenerator:
    """Synthesize a full batch of clinics for a state from the completion service."""

    def __init__(
        self,
        llm_client: CompletionService,
        temperature: float = 0.5,
        max_batch_attempts: int = 3,
        retry_delay: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize the generator.

        Args:
            llm_client: Completion service
            temperature: Sampling temperature for generation
            max_batch_attempts: Whole-batch attempts before giving up on a state
            retry_delay: Fixed seconds between batch attempts
            sleep: Awaitable sleep, injectable for tests
        """
        self.llm_client = llm_client
        self.temperature = temperature
        self.max_batch_attempts = max_batch_attempts
        self.retry_delay = retry_delay
        self._sleep = sleep

    async def generate(self, state: str, count: int = 10) -> List[ClinicRecord]:
        """Generate exactly ``count`` clinics for ``state``.

        A short or malformed batch is never partially accepted; the whole
        batch is requested again.

        Raises:
            ClinicBatchError: When no attempt produced a complete batch
        """
        last_error: Optional[ClinicBatchError] = None

        for attempt in range(1, self.max_batch_attempts + 1):
            try:
                return await self._generate_batch(state, count)
            except ClinicBatchError as e:
                last_error = e
            except APIClientError as e:
                last_error = ClinicBatchError(state, expected=count, valid=0)
                last_error.original_error = e

            LOGGER.warning(
                f"Clinic batch attempt {attempt}/{self.max_batch_attempts} failed for {state}: {last_error}",
                extra={"state": state, "valid": last_error.valid, "expected": count},
            )
            if attempt < self.max_batch_attempts:
                await self._sleep(self.retry_delay)

        raise last_error

    async def _generate_batch(self, state: str, count: int) -> Sequence[ClinicRecord]:
        response_text = await self.llm_client.generate_content(
            contents=CLINIC_GENERATION_PROMPT.format(state=state, count=count),
            system_instruction=CLINIC_GENERATION_SYSTEM_PROMPT,
            generation_config={"temperature": self.temperature},
        )
        return validate_clinic_batch(state, parse_json_safely(response_text), count)
