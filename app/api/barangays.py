"""
Barangay reference data API endpoints
"""

from typing import List, Optional
from fastapi import APIRouter, Depends

from ..models.barangay_models import (
    AdminAssignmentRequest,
    Barangay,
    BarangayCreateRequest,
    PollutionTypeRequest,
    StreetRequest,
)
from ..models.user_models import AppUser
from .dependencies import get_barangay_service, get_current_user

router = APIRouter(prefix="/barangays", tags=["barangays"])


@router.get("", response_model=List[Barangay])
async def list_barangays(barangays=Depends(get_barangay_service)) -> List[Barangay]:
    """All barangays sorted by name"""
    return await barangays.list_barangays()


@router.get("/{barangay_id}", response_model=Barangay)
async def get_barangay(barangay_id: str, barangays=Depends(get_barangay_service)) -> Barangay:
    return await barangays.get_barangay(barangay_id)


@router.post("", response_model=Barangay, status_code=201)
async def create_barangay(
    request: BarangayCreateRequest,
    actor: Optional[AppUser] = Depends(get_current_user),
    barangays=Depends(get_barangay_service),
) -> Barangay:
    return await barangays.create_barangay(request, actor)


@router.delete("/{barangay_id}")
async def delete_barangay(
    barangay_id: str,
    actor: Optional[AppUser] = Depends(get_current_user),
    barangays=Depends(get_barangay_service),
):
    await barangays.delete_barangay(barangay_id, actor)
    return {"success": True, "message": f"Barangay {barangay_id} deleted"}


@router.post("/{barangay_id}/streets", response_model=Barangay)
async def add_street(
    barangay_id: str,
    request: StreetRequest,
    actor: Optional[AppUser] = Depends(get_current_user),
    barangays=Depends(get_barangay_service),
) -> Barangay:
    """Add a street by name or as {name, lat, lng}"""
    return await barangays.add_street(barangay_id, request.street, actor)


@router.delete("/{barangay_id}/streets/{name}", response_model=Barangay)
async def remove_street(
    barangay_id: str,
    name: str,
    actor: Optional[AppUser] = Depends(get_current_user),
    barangays=Depends(get_barangay_service),
) -> Barangay:
    return await barangays.remove_street(barangay_id, name, actor)


@router.post("/{barangay_id}/pollution-types", response_model=Barangay)
async def add_pollution_type(
    barangay_id: str,
    request: PollutionTypeRequest,
    actor: Optional[AppUser] = Depends(get_current_user),
    barangays=Depends(get_barangay_service),
) -> Barangay:
    return await barangays.add_pollution_type(barangay_id, request.type, actor)


@router.delete("/{barangay_id}/pollution-types/{pollution_type}", response_model=Barangay)
async def remove_pollution_type(
    barangay_id: str,
    pollution_type: str,
    actor: Optional[AppUser] = Depends(get_current_user),
    barangays=Depends(get_barangay_service),
) -> Barangay:
    return await barangays.remove_pollution_type(barangay_id, pollution_type, actor)


@router.post("/{barangay_id}/admins", response_model=Barangay)
async def assign_admin(
    barangay_id: str,
    request: AdminAssignmentRequest,
    actor: Optional[AppUser] = Depends(get_current_user),
    barangays=Depends(get_barangay_service),
) -> Barangay:
    return await barangays.assign_admin(barangay_id, request.uid, actor)


@router.delete("/{barangay_id}/admins/{uid}", response_model=Barangay)
async def remove_admin(
    barangay_id: str,
    uid: str,
    actor: Optional[AppUser] = Depends(get_current_user),
    barangays=Depends(get_barangay_service),
) -> Barangay:
    return await barangays.remove_admin(barangay_id, uid, actor)
