from typing import List, Optional
from fastapi import APIRouter, Depends, BackgroundTasks, Query
from sqlalchemy.ext.asyncio import AsyncSession

from common.core.database import get_db
from common.schemas.auth import AuthContext
from common.schemas.geography import VenueMarker
from common.application.map_data_service import MapDataService
from common.exceptions import GeoAuthorizationError, AuthorizationDenied
from app.api.deps import get_auth_context
from app.api.errors import http_error, denial_response

router = APIRouter()

@router.get("/map/venues", response_model=List[VenueMarker])
async def get_venue_markers(
    background_tasks: BackgroundTasks,
    geographic_area_ids: Optional[List[str]] = Query(None),
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db)
):
    """Venue markers under any of the given areas, or every venue the caller can reach."""
    service = MapDataService(db)
    try:
        return await service.venue_markers(ctx, geographic_area_ids)
    except AuthorizationDenied as e:
        return denial_response(e, ctx, "map_venues", background_tasks)
    except GeoAuthorizationError as e:
        raise http_error(e)
