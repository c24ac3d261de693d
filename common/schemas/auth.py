import enum
from pydantic import BaseModel, ConfigDict

class UserRole(str, enum.Enum):
    ADMINISTRATOR = "ADMINISTRATOR"
    EDITOR = "EDITOR"
    READ_ONLY = "READ_ONLY"
    PII_RESTRICTED = "PII_RESTRICTED"

class AuthContext(BaseModel):
    """
    Request-scoped identity handed to every engine entry point.
    Built once per request from the verified bearer token.
    """
    user_id: str
    role: UserRole = UserRole.READ_ONLY
    model_config = ConfigDict(frozen=True)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMINISTRATOR
