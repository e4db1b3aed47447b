from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    # -------------------------------------------------
    # General
    # -------------------------------------------------
    PROJECT_NAME: str = "Hostel Management API"
    ENV: str = "development"

    # -------------------------------------------------
    # Frontend Domains
    # -------------------------------------------------
    FRONTEND_ORIGINS: List[str] = [
        "http://localhost:3000",
    ]

    # -------------------------------------------------
    # CORS (auto-built below)
    # -------------------------------------------------
    BACKEND_CORS_ORIGINS: List[str] = []

    # -------------------------------------------------
    # Supabase (document store + identity provider)
    # -------------------------------------------------
    SUPABASE_URL: Optional[str] = Field(None, env="SUPABASE_URL")
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = Field(None, env="SUPABASE_SERVICE_ROLE_KEY")

    # -------------------------------------------------
    # Blob storage (S3 + optional CDN in front of it)
    # -------------------------------------------------
    AWS_ACCESS_KEY_ID: Optional[str] = Field(None, env="AWS_ACCESS_KEY_ID")
    AWS_SECRET_ACCESS_KEY: Optional[str] = Field(None, env="AWS_SECRET_ACCESS_KEY")
    AWS_BUCKET_NAME: Optional[str] = Field(None, env="AWS_BUCKET_NAME")
    AWS_REGION: str = Field("us-east-2", env="AWS_REGION")
    CDN_BASE_URL: Optional[str] = Field(None, env="CDN_BASE_URL")

    # -------------------------------------------------
    # Listing / pagination bounds
    # -------------------------------------------------
    DEFAULT_ISSUE_LIMIT: int = Field(100, env="DEFAULT_ISSUE_LIMIT")
    MAX_ISSUE_LIMIT: int = Field(1000, env="MAX_ISSUE_LIMIT")
    DEFAULT_PAGE_SIZE: int = Field(100, env="DEFAULT_PAGE_SIZE")

    # Uploads larger than this are rejected before reaching S3
    MAX_IMAGE_BYTES: int = Field(10 * 1024 * 1024, env="MAX_IMAGE_BYTES")

    # -------------------------------------------------
    # Model Config
    # -------------------------------------------------
    class Config:
        case_sensitive = True


# Instantiate settings
settings = Settings()

# -------------------------------------------------
# Build CORS list dynamically after loading settings
# -------------------------------------------------
cors_origins = []

for origin in settings.FRONTEND_ORIGINS:
    if not origin:
        continue
    if not origin.startswith("http"):
        origin = f"https://{origin}"
    cors_origins.append(origin.rstrip("/"))

# remove duplicates
settings.BACKEND_CORS_ORIGINS = sorted(list(set(cors_origins)))
