from typing import Optional, List, Dict
from pydantic import BaseModel, ConfigDict, Field
from common.models import AreaType

class GeographicAreaRead(BaseModel):
    id: str
    name: str
    area_type: AreaType
    parent_id: Optional[str] = None
    child_count: Optional[int] = None
    model_config = ConfigDict(from_attributes=True)

class GeographicAreaCreate(BaseModel):
    name: str = Field(min_length=1)
    area_type: AreaType
    parent_id: Optional[str] = None

class AreaNode(GeographicAreaRead):
    """Node of a depth-limited forest; `children` is None below the last fetched level."""
    children: Optional[List["AreaNode"]] = None

class BatchAreaRequest(BaseModel):
    area_ids: List[str] = Field(default_factory=list)

class BatchAncestorsResponse(BaseModel):
    # area id -> parent id (None for roots)
    data: Dict[str, Optional[str]]

class BatchDetailsResponse(BaseModel):
    data: Dict[str, GeographicAreaRead]

class VenueMarker(BaseModel):
    id: str
    name: str
    geographic_area_id: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    model_config = ConfigDict(from_attributes=True)
