from typing import List, Optional, Union
from fastapi import APIRouter, Depends, BackgroundTasks
from sqlalchemy.ext.asyncio import AsyncSession

from common.core.database import get_db
from common.schemas.auth import AuthContext
from common.schemas.authorization import AreaAccessRead
from common.schemas.geography import (
    GeographicAreaRead, GeographicAreaCreate, AreaNode, VenueMarker,
    BatchAreaRequest, BatchAncestorsResponse, BatchDetailsResponse
)
from common.schemas.pagination import PaginatedResponse
from common.application.geographic_area_service import GeographicAreaService
from common.application.map_data_service import MapDataService
from common.exceptions import GeoAuthorizationError, AuthorizationDenied
from app.api.deps import get_auth_context, require_editor
from app.api.errors import http_error, denial_response

router = APIRouter()

@router.get("/geographic-areas", response_model=PaginatedResponse[GeographicAreaRead])
async def list_geographic_areas(
    background_tasks: BackgroundTasks,
    geographic_area_id: Optional[str] = None,
    depth: Optional[int] = None,
    skip: int = 0,
    limit: int = 100,
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db)
):
    """
    Areas the caller may see, optionally scoped to one area's subtree.
    Ancestors of the results are included for breadcrumb rendering.
    """
    service = GeographicAreaService(db)
    try:
        return await service.list_areas(ctx, geographic_area_id, depth, skip, limit)
    except AuthorizationDenied as e:
        return denial_response(e, ctx, "list_areas", background_tasks)
    except GeoAuthorizationError as e:
        raise http_error(e)

@router.post("/geographic-areas", response_model=GeographicAreaRead, status_code=201)
async def create_geographic_area(
    area_in: GeographicAreaCreate,
    background_tasks: BackgroundTasks,
    ctx: AuthContext = Depends(require_editor),
    db: AsyncSession = Depends(get_db)
):
    service = GeographicAreaService(db)
    try:
        return await service.create_area(ctx, area_in)
    except AuthorizationDenied as e:
        return denial_response(e, ctx, "create_area", background_tasks)
    except GeoAuthorizationError as e:
        raise http_error(e)

@router.get("/geographic-areas/tree", response_model=Union[PaginatedResponse[AreaNode], List[AreaNode]])
async def get_geographic_area_tree(
    background_tasks: BackgroundTasks,
    root_id: Optional[str] = None,
    depth: int = 0,
    skip: Optional[int] = None,
    limit: Optional[int] = None,
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db)
):
    """
    Nested forest under `root_id`. Note: depth N returns N+1 levels below the
    root; depth 0 is the direct children. With `skip` or `limit` the top
    level is paginated and each node on the page keeps its nested children.
    """
    service = GeographicAreaService(db)
    try:
        if skip is None and limit is None:
            return await service.get_tree(ctx, root_id, depth)
        return await service.get_tree_page(
            ctx,
            root_id,
            depth,
            skip if skip is not None else 0,
            limit if limit is not None else 100
        )
    except AuthorizationDenied as e:
        return denial_response(e, ctx, "get_tree", background_tasks)
    except GeoAuthorizationError as e:
        raise http_error(e)

@router.post("/geographic-areas/batch-ancestors", response_model=BatchAncestorsResponse)
async def batch_ancestors(
    request: BatchAreaRequest,
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db)
):
    service = GeographicAreaService(db)
    try:
        return BatchAncestorsResponse(data=await service.batch_ancestors(ctx, request.area_ids))
    except GeoAuthorizationError as e:
        raise http_error(e)

@router.post("/geographic-areas/batch-details", response_model=BatchDetailsResponse)
async def batch_details(
    request: BatchAreaRequest,
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db)
):
    service = GeographicAreaService(db)
    try:
        return BatchDetailsResponse(data=await service.batch_details(ctx, request.area_ids))
    except GeoAuthorizationError as e:
        raise http_error(e)

@router.get("/geographic-areas/{area_id}", response_model=GeographicAreaRead)
async def get_geographic_area(
    area_id: str,
    background_tasks: BackgroundTasks,
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db)
):
    service = GeographicAreaService(db)
    try:
        return await service.get_area(ctx, area_id)
    except AuthorizationDenied as e:
        return denial_response(e, ctx, "get_area", background_tasks)
    except GeoAuthorizationError as e:
        raise http_error(e)

@router.get(
    "/geographic-areas/{area_id}/children",
    response_model=Union[PaginatedResponse[GeographicAreaRead], List[GeographicAreaRead]]
)
async def get_geographic_area_children(
    area_id: str,
    background_tasks: BackgroundTasks,
    skip: Optional[int] = None,
    limit: Optional[int] = None,
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db)
):
    """Visible children; paginated only when `skip` or `limit` is given."""
    service = GeographicAreaService(db)
    try:
        children = await service.get_children(ctx, area_id)
        if skip is None and limit is None:
            return children
        return PaginatedResponse[GeographicAreaRead].from_sequence(
            children,
            skip if skip is not None else 0,
            limit if limit is not None else 100
        )
    except AuthorizationDenied as e:
        return denial_response(e, ctx, "get_children", background_tasks)
    except GeoAuthorizationError as e:
        raise http_error(e)

@router.get("/geographic-areas/{area_id}/ancestors", response_model=List[GeographicAreaRead])
async def get_geographic_area_ancestors(
    area_id: str,
    background_tasks: BackgroundTasks,
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db)
):
    service = GeographicAreaService(db)
    try:
        return await service.get_ancestors(ctx, area_id)
    except AuthorizationDenied as e:
        return denial_response(e, ctx, "get_ancestors", background_tasks)
    except GeoAuthorizationError as e:
        raise http_error(e)

@router.get("/geographic-areas/{area_id}/access", response_model=AreaAccessRead)
async def get_geographic_area_access(
    area_id: str,
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db)
):
    """The caller's own access level on an area. Never denied; NONE is a valid answer."""
    service = GeographicAreaService(db)
    try:
        return await service.get_access(ctx, area_id)
    except GeoAuthorizationError as e:
        raise http_error(e)

@router.get("/geographic-areas/{area_id}/venues", response_model=List[VenueMarker])
async def get_geographic_area_venues(
    area_id: str,
    background_tasks: BackgroundTasks,
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db)
):
    service = MapDataService(db)
    try:
        return await service.area_venues(ctx, area_id)
    except AuthorizationDenied as e:
        return denial_response(e, ctx, "get_area_venues", background_tasks)
    except GeoAuthorizationError as e:
        raise http_error(e)
