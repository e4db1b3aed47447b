from typing import Optional, Set

from pydantic import BaseModel, Field

from .enums import Role


# -------------------------------------------------
# Role-dependent restriction attributes
# -------------------------------------------------
class IdentityScope(BaseModel):
    assigned_hostel_id: Optional[str] = None
    assigned_floor_ids: Set[str] = Field(default_factory=set)


# -------------------------------------------------
# Resolved once per request, never persisted
# -------------------------------------------------
class Identity(BaseModel):
    id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    role: Optional[Role] = None
    scope: IdentityScope = Field(default_factory=IdentityScope)

    @property
    def has_role(self) -> bool:
        return self.role is not None
