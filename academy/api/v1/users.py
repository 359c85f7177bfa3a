"""
Users API endpoints
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from academy.core.auth import CurrentAccount
from academy.core.database import get_db
from academy.schemas.device import DeviceListResponse, DeviceResponse
from academy.services.device_registry import DeviceRegistry

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me/devices", response_model=DeviceListResponse)
async def list_my_devices(
    current: CurrentAccount,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> DeviceListResponse:
    """Devices registered to the current account."""
    devices = await DeviceRegistry(db).list_devices(current.id)
    return DeviceListResponse(
        total=len(devices),
        devices=[DeviceResponse.model_validate(d) for d in devices],
    )
