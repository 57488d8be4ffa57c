from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    artifact_dir: str = "temp"
    artifact_ttl_seconds: int = 300
    sweep_interval_seconds: int = 60
    max_upload_bytes: int = 50 * 1024 * 1024

    tool_timeout_seconds: int = 120
    compression_binaries: list[str] = ["gswin64c", "gswin32c", "gs"]
    conversion_binaries: list[str] = ["soffice", "libreoffice"]

    document_engine: str = "pymupdf"
    validation_risky_bytes: int = 5 * 1024 * 1024
    producer_tag: str = "College Submission Toolkit"
