# pointbook/settings.py
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    # Storage settings
    # "json" keeps one file per key under data_dir; "sqlite" uses db_url
    storage_backend: str = "json"
    data_dir: str = "data"
    db_url: str = "sqlite:///data/pointbook.db"

    # Keys are "<storage_namespace>_<project name>"
    storage_namespace: str = "pointbook_rn"
    project_index_key: str = "pointbook_rn_list"
    user_initials_key: str = "pointbook_user_initials"

    # Roughly what a browser grants localStorage per origin
    storage_quota_bytes: int = Field(
        default=5_000_000,
        ge=0,
        description="Upper bound for the sum of all stored values (bytes)",
    )

    # Limits
    max_projects: int = Field(default=50, ge=1)
    max_documents: int = Field(default=10, ge=1)

    # Placement / viewport
    proximity_threshold_px: float = Field(
        default=18.0,
        gt=0,
        description="Minimum screen distance between two points on the same page",
    )
    min_zoom: float = 1.0
    max_zoom: float = 4.0
    wheel_zoom_step: float = 1.1
    min_visible_px: float = 40.0
    tap_slop_px: float = 6.0

    # Photos
    photo_max_side: int = 1600
    photo_jpeg_quality: int = Field(default=80, ge=1, le=95)

    # Archive
    export_page_snapshots: bool = True
    snapshot_width_px: int = 1600
    backup_dir: str = "backups"
    export_dir: str = "exports"

    model_config = SettingsConfigDict(
        env_prefix="POINTBOOK_",
        env_file=".env",
        extra="ignore",
    )

    def project_key(self, project_name: str) -> str:
        return f"{self.storage_namespace}_{project_name}"


_settings_instance: Optional[Settings] = None

def get_settings() -> Settings:
    """Singleton pattern for settings."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
