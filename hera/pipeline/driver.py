"""Pipeline driver: every state through the queue, one task per state.

Each state moves PENDING -> FETCHING -> MERGING -> ENRICHING -> PERSISTING ->
DONE, or to FAILED from any step on an unrecovered error. A failed state never
affects its siblings, and a run is COMPLETE once the queue is idle however many
states failed. Runs do not resume; every run starts all states from PENDING.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence

from hera.core.exceptions import ClinicBatchError, DatabaseError
from hera.pipeline.context import PipelineContext
from hera.pipeline.merge import dedupe_clinics, merge_legal_partials
from hera.pipeline.states import STATES
from hera.pipeline.task_queue import RateLimitedQueue
from hera.pipeline.upsert import UpsertOutcome
from hera.schemas.records import ClinicRecord, LegalInfoPartial
from hera.sources.base import BaseSource
from hera.sources.clinic_sources import ClinicSource
from hera.sources.legal_sources import LegalSource
from hera.utils.logging import get_logger

LOGGER = get_logger(__name__)


class EntityState(str, Enum):
    PENDING = "pending"
    FETCHING = "fetching"
    MERGING = "merging"
    ENRICHING = "enriching"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


class PipelineStatus(str, Enum):
    RUNNING = "running"
    COMPLETE = "complete"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PipelineReport:
    """Outcome of one pipeline run."""

    pipeline: str
    status: PipelineStatus = PipelineStatus.RUNNING
    entity_states: Dict[str, EntityState] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)
    succeeded: int = 0
    failed: int = 0
    records_written: int = 0
    started_at: datetime = field(default_factory=_utcnow)
    finished_at: Optional[datetime] = None

    def mark(self, entity: str, state: EntityState) -> None:
        self.entity_states[entity] = state


class BasePipeline:
    """Shared run loop; subclasses implement ``process`` for one state."""

    name = "pipeline"

    def __init__(self, context: PipelineContext):
        self.context = context

    def create_queue(self) -> RateLimitedQueue:
        raise NotImplementedError

    async def process(self, entity: str, report: PipelineReport) -> int:
        """Run one state through the steps; returns the number of records written."""
        raise NotImplementedError

    async def run(self, entities: Iterable[str] = STATES) -> PipelineReport:
        """Queue every entity, wait for the queue to drain, and report.

        Args:
            entities: States to process, in submission order

        Returns:
            The completed report
        """
        entities = list(entities)
        report = PipelineReport(pipeline=self.name)
        for entity in entities:
            report.mark(entity, EntityState.PENDING)

        LOGGER.info(f"Starting {self.name} for {len(entities)} states")

        queue = self.create_queue()
        try:
            for entity in entities:
                queue.add(lambda entity=entity: self._run_entity(entity, report), name=entity)
            await queue.on_idle()
        finally:
            await queue.close()

        report.status = PipelineStatus.COMPLETE
        report.finished_at = _utcnow()
        LOGGER.info(
            f"{self.name} completed: {report.succeeded} succeeded, {report.failed} failed, "
            f"{report.records_written} records written",
            extra={"pipeline": self.name, "failed_states": sorted(report.errors)},
        )
        return report

    async def _run_entity(self, entity: str, report: PipelineReport) -> None:
        LOGGER.info(f"Processing {entity}...")
        try:
            written = await self.process(entity, report)
        except Exception as e:
            report.mark(entity, EntityState.FAILED)
            report.failed += 1
            report.errors[entity] = str(e)
            LOGGER.error(f"Error processing {entity}: {e}", exc_info=True, extra={"state": entity})
            return

        report.records_written += written
        report.succeeded += 1
        report.mark(entity, EntityState.DONE)
        LOGGER.info(f"Successfully processed {entity}", extra={"state": entity, "records_written": written})

    async def collect_from(self, entity: str, sources: Sequence[BaseSource]) -> List[tuple]:
        """Query ``sources`` concurrently; returns (source, result) for those that did not crash.

        Order follows ``sources``, so callers keep their source priority.
        """
        results = await asyncio.gather(
            *(source.collect(entity) for source in sources),
            return_exceptions=True,
        )
        answered = []
        for source, result in zip(sources, results):
            if isinstance(result, BaseException):
                LOGGER.error(f"Source {source.name} crashed for {entity}: {result}", extra={"state": entity})
                continue
            answered.append((source, result))
        return answered

    async def persist_clinics(self, entity: str, clinics: Sequence[ClinicRecord]) -> int:
        """Store clinics one by one; a failed write is logged and skipped."""
        inserted = 0
        async with self.context.session_factory() as session:
            coordinator = self.context.upsert_coordinator(session)
            for clinic in clinics:
                try:
                    outcome = await coordinator.upsert_clinic(clinic)
                except DatabaseError as e:
                    LOGGER.error(f"Error storing clinic {clinic.name}: {e}", extra={"state": entity})
                    continue
                if outcome is UpsertOutcome.INSERTED:
                    inserted += 1
        return inserted


class LegalInfoPipeline(BasePipeline):
    """Crawl, merge, enrich and store legal information per state."""

    name = "legal_info_crawler"

    def __init__(self, context: PipelineContext, sources: Optional[List[LegalSource]] = None):
        super().__init__(context)
        self.sources = sources if sources is not None else context.legal_sources()
        self.enricher = context.enricher()

    def create_queue(self) -> RateLimitedQueue:
        crawler = self.context.crawler
        return self.context.create_queue(crawler.legal_concurrency, crawler.legal_interval, name=self.name)

    async def process(self, entity: str, report: PipelineReport) -> int:
        report.mark(entity, EntityState.FETCHING)
        answered = await self.collect_from(entity, self.sources)

        report.mark(entity, EntityState.MERGING)
        partials: List[LegalInfoPartial] = [partial for _, partial in answered]
        live_found = any(source.is_live and not partial.is_empty() for source, partial in answered)

        fallback = None if live_found else self.context.fallback.legal_info(entity)
        if fallback is not None:
            LOGGER.info(f"Using fallback data for {entity}", extra={"state": entity})
            record = fallback
        else:
            record = merge_legal_partials(entity, partials)

        report.mark(entity, EntityState.ENRICHING)
        if fallback is None and self.enricher is not None:
            record = await self.enricher.enrich(entity, record)

        report.mark(entity, EntityState.PERSISTING)
        async with self.context.session_factory() as session:
            await self.context.upsert_coordinator(session).upsert_legal_info(record)
        return 1


class ClinicPipeline(BasePipeline):
    """Discover clinics from the Planned Parenthood directory and HTML directories."""

    name = "clinic_crawler"

    def __init__(
        self,
        context: PipelineContext,
        primary_source: Optional[ClinicSource] = None,
        directory_sources: Optional[List[ClinicSource]] = None,
    ):
        super().__init__(context)
        self.primary_source = primary_source if primary_source is not None else context.planned_parenthood_clinic_source()
        self.directory_sources = directory_sources if directory_sources is not None else context.directory_sources()

    def create_queue(self) -> RateLimitedQueue:
        crawler = self.context.crawler
        return self.context.create_queue(crawler.clinic_concurrency, crawler.clinic_interval, name=self.name)

    async def fetch_clinics(self, entity: str) -> List[ClinicRecord]:
        clinics: List[ClinicRecord] = []
        for _, result in await self.collect_from(entity, [self.primary_source, *self.directory_sources]):
            clinics.extend(result)
        return clinics

    async def process(self, entity: str, report: PipelineReport) -> int:
        report.mark(entity, EntityState.FETCHING)
        found = await self.fetch_clinics(entity)

        report.mark(entity, EntityState.MERGING)
        clinics = dedupe_clinics(found, state=entity)
        if not clinics:
            clinics = self.context.fallback.clinics(entity)
            if clinics:
                LOGGER.info(f"Using fallback data for {entity}", extra={"state": entity})

        report.mark(entity, EntityState.ENRICHING)
        if not clinics:
            LOGGER.info(f"No clinic data found for {entity}", extra={"state": entity})
            return 0
        LOGGER.info(f"Found {len(clinics)} clinics for {entity}", extra={"state": entity})

        report.mark(entity, EntityState.PERSISTING)
        return await self.persist_clinics(entity, clinics)


class ClinicGenerationPipeline(BasePipeline):
    """Generate clinics per state with the completion service and store them."""

    name = "clinic_generation"

    def __init__(self, context: PipelineContext, count: Optional[int] = None):
        super().__init__(context)
        self.generator = context.clinic_generator()
        self.count = count if count is not None else context.crawler.generation_count

    def create_queue(self) -> RateLimitedQueue:
        crawler = self.context.crawler
        return self.context.create_queue(crawler.generation_concurrency, crawler.generation_interval, name=self.name)

    async def process(self, entity: str, report: PipelineReport) -> int:
        report.mark(entity, EntityState.FETCHING)
        try:
            generated = await self.generator.generate(entity, count=self.count)
        except ClinicBatchError as e:
            LOGGER.error(
                f"Skipping {entity}: {e}",
                extra={"state": entity, "valid": e.valid, "expected": e.expected},
            )
            raise

        report.mark(entity, EntityState.MERGING)
        clinics = dedupe_clinics(generated, state=entity)

        report.mark(entity, EntityState.PERSISTING)
        written = await self.persist_clinics(entity, clinics)
        LOGGER.info(f"Successfully added {written} clinics for {entity}", extra={"state": entity})
        return written
