"""Dependencies shared by the ingestion pipelines.

One context is built per process (by the application lifespan) and handed to
each pipeline. Nothing in the pipeline package reaches for a module-level
client or queue, so tests can pass fakes for any of these.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hera.core.config import CrawlerSettings, Settings
from hera.core.exceptions import ConfigurationError
from hera.pipeline.enrichment import ClinicGenerator, CompletionService, LegalInfoEnricher
from hera.pipeline.fallback import FallbackProvider
from hera.pipeline.retry import RetryPolicy
from hera.pipeline.task_queue import RateLimitedQueue
from hera.pipeline.upsert import ClinicIdentity, UpsertCoordinator
from hera.sources.clinic_sources import CLINIC_DIRECTORIES, DirectoryScraperSource, PlannedParenthoodClinicSource
from hera.sources.geocoder import GeocodioGeocoder
from hera.sources.legal_sources import (
    ACLUSource,
    GuttmacherSource,
    KFFSource,
    LegalSource,
    NewsSource,
    NWLCSource,
    PlannedParenthoodLegalSource,
    StateGovernmentSource,
    StateResourcesSource,
    StateSlugStrategy,
)
from hera.utils.logging import get_logger

LOGGER = get_logger(__name__)


def legal_retry_policy(crawler: CrawlerSettings) -> RetryPolicy:
    return RetryPolicy(
        max_attempts=crawler.legal_max_attempts,
        initial_interval=crawler.retry_initial_interval,
        backoff_coefficient=crawler.legal_backoff_coefficient,
        maximum_interval=crawler.legal_maximum_interval,
        jitter=crawler.legal_retry_jitter,
    )


def clinic_retry_policy(crawler: CrawlerSettings) -> RetryPolicy:
    # Directory sites answer 403/404 to bursts as often as 429
    return RetryPolicy(
        max_attempts=crawler.clinic_max_attempts,
        initial_interval=crawler.retry_initial_interval,
        backoff_coefficient=crawler.clinic_backoff_coefficient,
        maximum_interval=crawler.clinic_maximum_interval,
        jitter=crawler.clinic_retry_jitter,
        retry_statuses=frozenset({403, 404, 429}),
    )


@dataclass
class PipelineContext:
    """Everything a pipeline run needs, constructed explicitly."""

    session_factory: async_sessionmaker[AsyncSession]
    http_client: httpx.AsyncClient
    crawler: CrawlerSettings = field(default_factory=CrawlerSettings)
    llm_client: Optional[CompletionService] = None
    geocoder: Optional[GeocodioGeocoder] = None
    fallback: FallbackProvider = field(default_factory=FallbackProvider)
    enable_enrichment: bool = True
    enrichment_temperature: float = 0.3
    generation_temperature: float = 0.5
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    clock: Callable[[], float] = time.monotonic

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
        http_client: httpx.AsyncClient,
        llm_client: Optional[CompletionService] = None,
    ) -> "PipelineContext":
        geocoder = GeocodioGeocoder(
            http_client,
            api_key=settings.geocoder.api_key,
            api_url=settings.geocoder.api_url,
        )
        return cls(
            session_factory=session_factory,
            http_client=http_client,
            crawler=settings.crawler,
            llm_client=llm_client,
            geocoder=geocoder,
            enable_enrichment=settings.llm.enable_enrichment,
            enrichment_temperature=settings.llm.enrichment_temperature,
            generation_temperature=settings.llm.generation_temperature,
        )

    @property
    def legal_retry_policy(self) -> RetryPolicy:
        return legal_retry_policy(self.crawler)

    @property
    def clinic_retry_policy(self) -> RetryPolicy:
        return clinic_retry_policy(self.crawler)

    @property
    def clinic_identity(self) -> ClinicIdentity:
        return ClinicIdentity(self.crawler.clinic_identity)

    def create_queue(self, concurrency: int, interval: float, name: str) -> RateLimitedQueue:
        return RateLimitedQueue(concurrency=concurrency, interval=interval, clock=self.clock, sleep=self.sleep, name=name)

    def upsert_coordinator(self, session: AsyncSession) -> UpsertCoordinator:
        return UpsertCoordinator.for_session(session, clinic_identity=self.clinic_identity)

    def _source_args(self, policy: RetryPolicy) -> dict:
        return {
            "http_client": self.http_client,
            "retry_policy": policy,
            "user_agent": self.crawler.user_agent,
            "sleep": self.sleep,
        }

    def legal_sources(self) -> List[LegalSource]:
        """Legal sources in source-priority order."""
        args = self._source_args(self.legal_retry_policy)
        return [
            PlannedParenthoodLegalSource(**args),
            ACLUSource(**args),
            GuttmacherSource(**args),
            StateGovernmentSource(**args, slug_strategy=StateSlugStrategy(self.crawler.state_slug_strategy)),
            KFFSource(**args),
            NWLCSource(**args),
            StateResourcesSource(**args),
            NewsSource(**args),
        ]

    def planned_parenthood_clinic_source(self) -> PlannedParenthoodClinicSource:
        return PlannedParenthoodClinicSource(
            **self._source_args(self.clinic_retry_policy),
            geocoder=self.geocoder,
            page_size=self.crawler.clinic_page_size,
            detail_delay=self.crawler.clinic_detail_delay,
        )

    def directory_sources(self) -> List[DirectoryScraperSource]:
        args = self._source_args(self.clinic_retry_policy)
        return [
            DirectoryScraperSource(**args, geocoder=self.geocoder, name=name, url_template=template)
            for name, template in CLINIC_DIRECTORIES.items()
        ]

    def enricher(self) -> Optional[LegalInfoEnricher]:
        if not self.enable_enrichment or self.llm_client is None:
            return None
        return LegalInfoEnricher(self.llm_client, temperature=self.enrichment_temperature)

    def clinic_generator(self) -> ClinicGenerator:
        if self.llm_client is None:
            raise ConfigurationError("Clinic generation needs a completion client (set LLM_API_KEY)")
        return ClinicGenerator(
            self.llm_client,
            temperature=self.generation_temperature,
            max_batch_attempts=self.crawler.generation_max_attempts,
            retry_delay=self.crawler.generation_retry_delay,
            sleep=self.sleep,
        )
