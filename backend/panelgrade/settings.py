"""Application settings loaded from environment variables."""

from pathlib import Path

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[1]
DEFAULT_LOCAL_DATA_DIR = BASE_DIR / "data"


class Settings(BaseSettings):
    """Runtime configuration for the PanelGrade backend."""

    model_config = SettingsConfigDict(env_prefix="PANELGRADE_", extra="ignore")

    app_name: str = "PanelGrade API"
    data_dir: str = Field(
        default=str(DEFAULT_LOCAL_DATA_DIR),
        validation_alias=AliasChoices("PANELGRADE_DATA_DIR", "DATA_DIR"),
    )
    sqlite_path: str | None = Field(
        default=None,
        validation_alias=AliasChoices("PANELGRADE_SQLITE_PATH", "SQLITE_PATH"),
    )
    log_level: str = "INFO"

    # Notification delivery
    notifier_backend: str = "inbox"
    review_recipient_id: str = "admin"

    # Session concurrency and review policy
    cas_max_retries: int = Field(default=5, ge=1)
    strict_override_check: bool = True
    override_tolerance: float = Field(default=0.005, ge=0)

    # CORS configuration
    cors_allow_origins: str = Field(
        default="*",
        validation_alias=AliasChoices("PANELGRADE_CORS_ALLOW_ORIGINS", "CORS_ALLOW_ORIGINS"),
    )

    @model_validator(mode="after")
    def _set_sqlite_path(self) -> "Settings":
        if not self.sqlite_path:
            self.sqlite_path = str(Path(self.data_dir) / "panelgrade.db")
        return self

    @property
    def sqlite_url(self) -> str:
        return f"sqlite:///{self.sqlite_path}"

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir)

    @property
    def cors_origin_list(self) -> list[str]:
        if self.cors_allow_origins.strip() == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_allow_origins.split(",") if origin.strip()]


settings = Settings()
