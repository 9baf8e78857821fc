from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from croptech.core.security import verify_jwt
from croptech.services.reverse_geocoder import get_pin_from_coordinates

router = APIRouter(prefix="/geolocation", tags=["Geolocation"], dependencies=[Depends(verify_jwt)])


class PinCodeResponse(BaseModel):
    pin_code: Optional[str] = None


@router.get("/pin", response_model=PinCodeResponse)
async def get_pin_code(
    lat: float = Query(..., ge=-90, le=90, description="Latitude"),
    lng: float = Query(..., ge=-180, le=180, description="Longitude"),
):
    """
    Get the 6-digit PIN code for a coordinate. A null PIN means the caller
    should analyze the coordinates directly.
    """
    return PinCodeResponse(pin_code=await get_pin_from_coordinates(lat, lng))
