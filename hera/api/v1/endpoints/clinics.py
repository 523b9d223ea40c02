from typing import Annotated, List

from fastapi import APIRouter, Depends

from hera.api.deps import get_clinic_repository
from hera.repositories.clinic_repository import ClinicRepository
from hera.schemas.responses import ClinicResponse

router = APIRouter()


@router.get(
    "/all",
    response_model=List[ClinicResponse],
    summary="List every stored clinic",
    operation_id="list_all_clinics",
)
async def list_all_clinics(
    repository: Annotated[ClinicRepository, Depends(get_clinic_repository)],
) -> List[ClinicResponse]:
    clinics = await repository.find_many()
    return [ClinicResponse.model_validate(clinic) for clinic in clinics]


@router.get(
    "/{state}",
    response_model=List[ClinicResponse],
    summary="List clinics stored for a state",
    operation_id="list_state_clinics",
)
async def list_state_clinics(
    state: str,
    repository: Annotated[ClinicRepository, Depends(get_clinic_repository)],
) -> List[ClinicResponse]:
    clinics = await repository.list_by_state(state)
    return [ClinicResponse.model_validate(clinic) for clinic in clinics]
