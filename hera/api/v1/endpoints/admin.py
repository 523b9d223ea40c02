"""Admin endpoints that trigger the ingestion pipelines.

Each pipeline has a fire-and-forget variant that answers immediately and an
awaited variant that answers with the stored record count once the run is
complete. Per-state failures never surface here; they are only logged.
The legal-update broadcast is stored first and then pushed to the state's
subscribers.
"""

from typing import Annotated, Callable

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status

from hera.api.deps import (
    get_broadcast_coordinator,
    get_clinic_repository,
    get_legal_info_repository,
    get_pipeline_context,
)
from hera.core.exceptions import AppError
from hera.notifications.broadcast import BroadcastCoordinator
from hera.pipeline.context import PipelineContext
from hera.pipeline.driver import BasePipeline, ClinicGenerationPipeline, ClinicPipeline, LegalInfoPipeline
from hera.repositories.clinic_repository import ClinicRepository
from hera.repositories.legal_info_repository import LegalInfoRepository
from hera.schemas.requests import BroadcastRequest
from hera.schemas.responses import BroadcastResponse, MessageResponse, NotificationResponse, PopulateResponse
from hera.utils.logging import get_logger

LOGGER = get_logger(__name__)

router = APIRouter()


async def run_pipeline_in_background(pipeline: BasePipeline) -> None:
    """Run ``pipeline`` to completion, logging instead of raising."""
    try:
        report = await pipeline.run()
        LOGGER.info(
            f"{pipeline.name} finished in background",
            extra={"succeeded": report.succeeded, "failed": report.failed},
        )
    except Exception as e:
        LOGGER.error(f"{pipeline.name} failed: {e}", exc_info=True)


def _build(factory: Callable[[PipelineContext], BasePipeline], context: PipelineContext, failure: str) -> BasePipeline:
    try:
        return factory(context)
    except AppError as e:
        LOGGER.error(f"{failure}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=failure) from e


@router.post(
    "/start-legal-crawler",
    response_model=MessageResponse,
    summary="Start the legal information crawler",
    operation_id="start_legal_crawler",
)
async def start_legal_crawler(
    background_tasks: BackgroundTasks,
    context: Annotated[PipelineContext, Depends(get_pipeline_context)],
) -> MessageResponse:
    LOGGER.info("Starting legal info crawler...")
    pipeline = _build(LegalInfoPipeline, context, "Failed to start legal info crawler")
    background_tasks.add_task(run_pipeline_in_background, pipeline)
    return MessageResponse(message="Legal info crawler started")


@router.post(
    "/populate-legal-info",
    response_model=PopulateResponse,
    summary="Run the legal information crawler and wait for it",
    operation_id="populate_legal_info",
)
async def populate_legal_info(
    context: Annotated[PipelineContext, Depends(get_pipeline_context)],
    repository: Annotated[LegalInfoRepository, Depends(get_legal_info_repository)],
) -> PopulateResponse:
    """Crawl all states, then report how many states have legal information stored."""
    LOGGER.info("Starting legal info population...")
    pipeline = _build(LegalInfoPipeline, context, "Failed to populate legal information")
    try:
        await pipeline.run()
        count = await repository.count()
    except AppError as e:
        LOGGER.error(f"Error populating legal info: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to populate legal information",
        ) from e

    return PopulateResponse(message="Legal information populated successfully", count=count)


@router.post(
    "/start-clinic-crawler",
    response_model=MessageResponse,
    summary="Start the clinic crawler",
    operation_id="start_clinic_crawler",
)
async def start_clinic_crawler(
    background_tasks: BackgroundTasks,
    context: Annotated[PipelineContext, Depends(get_pipeline_context)],
) -> MessageResponse:
    LOGGER.info("Starting clinic crawler...")
    pipeline = _build(ClinicPipeline, context, "Failed to start clinic crawler")
    background_tasks.add_task(run_pipeline_in_background, pipeline)
    return MessageResponse(message="Clinic crawler started")


@router.post(
    "/populate-clinics",
    response_model=PopulateResponse,
    summary="Run the clinic crawler and wait for it",
    operation_id="populate_clinics",
)
async def populate_clinics(
    context: Annotated[PipelineContext, Depends(get_pipeline_context)],
    repository: Annotated[ClinicRepository, Depends(get_clinic_repository)],
) -> PopulateResponse:
    LOGGER.info("Starting clinic population...")
    pipeline = _build(ClinicPipeline, context, "Failed to populate clinics")
    try:
        await pipeline.run()
        count = await repository.count()
    except AppError as e:
        LOGGER.error(f"Error populating clinics: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to populate clinics",
        ) from e

    return PopulateResponse(message="Clinics populated successfully", count=count)


@router.post(
    "/start-clinic-generation",
    response_model=MessageResponse,
    summary="Start AI clinic generation",
    operation_id="start_clinic_generation",
)
async def start_clinic_generation(
    background_tasks: BackgroundTasks,
    context: Annotated[PipelineContext, Depends(get_pipeline_context)],
) -> MessageResponse:
    LOGGER.info("Starting clinic data generation...")
    pipeline = _build(ClinicGenerationPipeline, context, "Failed to start clinic generation")
    background_tasks.add_task(run_pipeline_in_background, pipeline)
    return MessageResponse(message="Clinic generation started")


@router.post(
    "/generate-clinics",
    response_model=PopulateResponse,
    summary="Generate clinics with the completion service and wait for it",
    operation_id="generate_clinics",
)
async def generate_clinics(
    context: Annotated[PipelineContext, Depends(get_pipeline_context)],
    repository: Annotated[ClinicRepository, Depends(get_clinic_repository)],
) -> PopulateResponse:
    LOGGER.info("Starting clinic data generation...")
    pipeline = _build(ClinicGenerationPipeline, context, "Failed to generate clinics")
    try:
        await pipeline.run()
        count = await repository.count()
    except AppError as e:
        LOGGER.error(f"Error generating clinics: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate clinics",
        ) from e

    return PopulateResponse(message="Clinics generated successfully", count=count)


@router.post(
    "/broadcast-legal-update",
    response_model=BroadcastResponse,
    summary="Store a legal update and push it to the state's subscribers",
    operation_id="broadcast_legal_update",
)
async def broadcast_legal_update(
    update: BroadcastRequest,
    coordinator: Annotated[BroadcastCoordinator, Depends(get_broadcast_coordinator)],
) -> BroadcastResponse:
    LOGGER.info(f"Broadcasting legal update for {update.state}...")
    try:
        result = await coordinator.broadcast(update.state, update.title, update.description, update.urgency)
    except AppError as e:
        LOGGER.error(f"Error broadcasting update: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to broadcast update",
        ) from e

    return BroadcastResponse(
        message="Update broadcasted successfully",
        notification=NotificationResponse.model_validate(result.notification),
        delivered=result.delivered,
        expired=result.expired,
        failed=result.failed,
    )
