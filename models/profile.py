from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# -------------------------------------------------
# PATCH /profile
# -------------------------------------------------
class ProfileUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    email: Optional[str] = None
    profile_picture_url: Optional[str] = Field(None, alias="profilePictureUrl")

    @field_validator("email", mode="before")
    def lowercase_email(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v


# -------------------------------------------------
# POST /profile/picture (base64 or data URI)
# -------------------------------------------------
class ProfilePictureUpload(BaseModel):
    image: str = Field(..., description="Base64 string or data URI")
