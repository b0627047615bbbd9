"""
Locations API Endpoint
District and city lists for the checkout address form
"""
import json
import logging
from functools import lru_cache
from pathlib import Path

from fastapi import APIRouter, HTTPException

from app.domain.order import LocationData

logger = logging.getLogger(__name__)

router = APIRouter()

LOCATIONS_FILE = Path(__file__).resolve().parent.parent / "data" / "locations.json"


@lru_cache(maxsize=1)
def load_locations() -> LocationData:
    with open(LOCATIONS_FILE, encoding="utf-8") as f:
        return LocationData.model_validate(json.load(f))


@router.get("")
async def get_locations():
    """Get districts and their cities"""
    try:
        return load_locations().model_dump()

    except (OSError, ValueError) as e:
        logger.error(f"Error reading locations: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch locations")
