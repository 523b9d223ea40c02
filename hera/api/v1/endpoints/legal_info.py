from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from hera.api.deps import get_legal_info_repository
from hera.repositories.legal_info_repository import LegalInfoRepository
from hera.schemas.responses import LegalInfoResponse
from hera.utils.logging import get_logger

LOGGER = get_logger(__name__)

router = APIRouter()


@router.get(
    "/{state}",
    response_model=LegalInfoResponse,
    summary="Get legal information for a state",
    operation_id="get_legal_info",
)
async def get_legal_info(
    state: str,
    repository: Annotated[LegalInfoRepository, Depends(get_legal_info_repository)],
) -> LegalInfoResponse:
    """Stored legal information for ``state`` (exact state name).

    Raises:
        HTTPException 404: No record for this state yet
    """
    record = await repository.get_by_state(state)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Legal information not found for this state",
        )
    return LegalInfoResponse.model_validate(record)
