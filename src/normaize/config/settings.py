from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """
    Application settings managed via Pydantic Settings.
    Reads variables from environment and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # --- Application Meta ---
    APP_NAME: str = "Normaize"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_FILE: str = "app.log"
    LOG_TO_FILE: bool = True

    # --- Server Configuration ---
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # --- Upload Validation ---
    MAX_UPLOAD_SIZE_MB: int = 100
    BLOCKED_EXTENSIONS: List[str] = Field(
        default_factory=lambda: [".exe", ".bat", ".cmd", ".ps1", ".sh", ".dll", ".so", ".dylib"]
    )

    # --- Data Processing Limits ---
    MAX_ROWS_PER_DATASET: int = 10000
    MAX_COLUMNS_PER_DATASET: int = 100
    MAX_PREVIEW_ROWS: int = 100
    MAX_PREVIEW_REQUEST_ROWS: int = 1000
    # Files larger than this are flagged for separate-table storage
    MAX_FILE_SIZE_BYTES: int = 10 * 1024 * 1024

    # --- Visualization ---
    MAX_DATA_POINTS: int = 1000
    CACHE_EXPIRATION_MINUTES: int = 30
    CACHE_KEY_HASH_LENGTH: int = 8

    # --- Operation Execution ---
    OPERATION_TIMEOUT_SECONDS: float = 30.0
    MAX_WORKERS: int = 4

    @field_validator(
        "MAX_UPLOAD_SIZE_MB",
        "MAX_ROWS_PER_DATASET",
        "MAX_COLUMNS_PER_DATASET",
        "MAX_PREVIEW_ROWS",
        "MAX_PREVIEW_REQUEST_ROWS",
        "MAX_FILE_SIZE_BYTES",
        "MAX_DATA_POINTS",
        "CACHE_KEY_HASH_LENGTH",
        "MAX_WORKERS",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Processing limits must be strictly positive."""
        if v <= 0:
            raise ValueError("limit must be greater than 0")
        return v

    @field_validator("OPERATION_TIMEOUT_SECONDS")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("OPERATION_TIMEOUT_SECONDS must be greater than 0")
        return v

    @field_validator("BLOCKED_EXTENSIONS")
    @classmethod
    def normalize_extensions(cls, v: List[str]) -> List[str]:
        """Store blocked extensions lower-cased with a leading dot."""
        return [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in v]

    @property
    def max_upload_size_bytes(self) -> int:
        return self.MAX_UPLOAD_SIZE_MB * 1024 * 1024

    @property
    def cache_expiration_seconds(self) -> float:
        return self.CACHE_EXPIRATION_MINUTES * 60.0


settings = Settings()
