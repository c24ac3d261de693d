import enum
from datetime import datetime
from typing import Set
from pydantic import BaseModel, ConfigDict, Field
from common.models import AreaType, RuleType

class AccessLevel(str, enum.Enum):
    NONE = "NONE"
    READ_ONLY = "READ_ONLY"
    FULL = "FULL"

class AuthorizationRuleCreate(BaseModel):
    geographic_area_id: str
    rule_type: RuleType

class AuthorizationRuleRead(BaseModel):
    id: str
    user_id: str
    geographic_area_id: str
    rule_type: RuleType
    created_by: str
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)

class AuthorizationInfo(BaseModel):
    """
    Whole-user authorization summary, computed once per request.

    `has_restrictions=False` means every area is implicitly FULL; the empty
    sets carry no meaning in that case.
    """
    has_restrictions: bool
    authorized_area_ids: Set[str] = Field(default_factory=set)
    # Ancestors of ALLOW targets. An area can also sit in authorized_area_ids
    # when it is itself allowed; FULL then wins and this only marks it as
    # navigation context.
    read_only_area_ids: Set[str] = Field(default_factory=set)

    @classmethod
    def unrestricted(cls) -> "AuthorizationInfo":
        return cls(has_restrictions=False)

    def access_level(self, area_id: str) -> AccessLevel:
        if not self.has_restrictions or area_id in self.authorized_area_ids:
            return AccessLevel.FULL
        if area_id in self.read_only_area_ids:
            return AccessLevel.READ_ONLY
        return AccessLevel.NONE

    def is_ancestor_context(self, area_id: str) -> bool:
        return area_id in self.read_only_area_ids

    def visible_area_ids(self) -> Set[str]:
        return self.authorized_area_ids | self.read_only_area_ids

class AuthorizedArea(BaseModel):
    geographic_area_id: str
    geographic_area_name: str
    area_type: AreaType
    access_level: AccessLevel
    is_descendant: bool = False
    is_ancestor: bool = False

class AreaAccessRead(BaseModel):
    geographic_area_id: str
    access_level: AccessLevel
    is_ancestor: bool = False
    has_restrictions: bool
