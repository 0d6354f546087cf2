from __future__ import annotations

from pydantic import BaseModel


class Settings(BaseModel):
    app_name: str = "mediavault"

    # JWT Configuration
    jwt_secret: str = "dev-secret"
    jwt_issuer: str = "mediavault"
    jwt_exp_hours: int = 24

    # Database Configuration
    # Use a simple SQLite file by default; override via `database_url` in config or env
    database_url: str = "sqlite:///./mediavault.db"
    database_echo: bool = False

    # S3 / MinIO Configuration
    s3_endpoint_url: str = "http://localhost:9000"
    s3_region: str = "us-east-1"
    s3_access_key: str = "minioadmin"
    s3_secret_key: str = "minioadmin"
    s3_bucket: str | None = None
    s3_use_path_style: bool = True
    s3_connect_timeout: float = 5.0
    s3_read_timeout: float = 120.0
    s3_max_attempts: int = 3

    # Blob layout
    blob_folder: str = "user_uploads"
    blob_public_base_url: str | None = None

    # Uploads
    upload_max_bytes: int = 100 * 1024 * 1024
    upload_max_files: int = 10

    # Quota (15 GiB plan ceiling)
    storage_plan_bytes: int = 15 * 1024 ** 3

    # Trash
    trash_retention_days: int = 15
    reaper_enabled: bool = True
    reaper_interval_seconds: int = 24 * 60 * 60

    # Locked folder
    locked_session_minutes: int = 5
    locked_password_min_length: int = 6
    locked_reference_secret: str = "dev-locked-reference-secret"

    # Logging
    log_level: str = "INFO"
