"""Pydantic settings models for the PDF text extraction service.

Four settings classes load from separate YAML config files with environment
variable override support. Source priority (highest to lowest):

    1. Environment variables (with prefix, e.g., OCR_TIMEOUT_SECONDS)
    2. .env file (for secrets, e.g., OCR_API_KEY, PARSE_JOB_API_KEY)
    3. YAML config file (e.g., config/ocr.yaml)
    4. Default values defined here

Provider credentials have no default value. A provider whose credential is
missing is treated as unavailable and skipped by the extraction waterfall.

Config paths are resolved relative to PROJECT_ROOT so the service works
regardless of the current working directory.
"""

from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

# Resolve project root: settings.py -> config/ -> pdf_text_extractor/ -> src/ -> repo root
PROJECT_ROOT = Path(__file__).resolve().parents[3]

_CONFIG_DIR = PROJECT_ROOT / "config"
_ENV_FILE = PROJECT_ROOT / ".env"

# Unicode Hebrew block, inclusive
HEBREW_RANGE = (0x0590, 0x05FF)


class _YamlBackedSettings(BaseSettings):
    """Shared source ordering: init > env > .env > YAML > defaults."""

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


class ExtractionSettings(_YamlBackedSettings):
    """Waterfall behaviour: script-ratio gate and local decoder ceiling."""

    script_ratio_threshold: float = 0.2
    script_ranges: list[tuple[int, int]] = [HEBREW_RANGE]
    local_decode_timeout_seconds: float = 60.0

    model_config = SettingsConfigDict(
        yaml_file=str(_CONFIG_DIR / "extraction.yaml"),
        env_prefix="EXTRACTION_",
        extra="ignore",
    )

    @field_validator("script_ratio_threshold")
    @classmethod
    def threshold_must_be_a_ratio(cls, v: float) -> float:
        """Validate that the acceptance threshold lies in [0, 1]."""
        if not 0.0 <= v <= 1.0:
            raise ValueError("script_ratio_threshold must be between 0 and 1")
        return v

    @field_validator("script_ranges")
    @classmethod
    def ranges_must_be_ordered(
        cls, v: list[tuple[int, int]]
    ) -> list[tuple[int, int]]:
        """Validate that every (start, end) code point range is non-empty."""
        for start, end in v:
            if start > end:
                raise ValueError(f"invalid script range {start:#x}-{end:#x}")
        return v


class ParseJobSettings(_YamlBackedSettings):
    """Cloud parsing job provider: endpoint, credential, polling cadence.

    ``base_url`` and ``api_key`` have no defaults. The API key is a secret
    and comes from .env or environment variables only -- it must NEVER
    appear in YAML files or in source.
    """

    base_url: str = ""
    api_key: str = ""
    upload_path: str = "/parsing/upload"
    job_path: str = "/parsing/jobs/{job_id}"
    upload_timeout_seconds: float = 120.0
    poll_timeout_seconds: float = 15.0
    poll_interval_seconds: float = 1.5
    job_deadline_seconds: float = 120.0
    response_preview_chars: int = 1500

    model_config = SettingsConfigDict(
        yaml_file=str(_CONFIG_DIR / "parse_job.yaml"),
        env_file=str(_ENV_FILE),
        env_prefix="PARSE_JOB_",
        extra="ignore",
    )

    @property
    def is_configured(self) -> bool:
        """Return True if both the base URL and the credential are set."""
        return bool(self.base_url.strip() and self.api_key.strip())


class OcrSettings(_YamlBackedSettings):
    """OCR provider: endpoint, credential, engine/language parameter sets.

    ``api_key`` is a secret and comes from .env or environment variables
    only.
    """

    api_key: str = ""
    base_url: str = "https://api.ocr.space"
    parse_path: str = "/parse/image"
    timeout_seconds: float = 30.0
    default_engine: str = "1"
    retry_engine: str = "2"
    retry_language: str = "auto"
    fallback_language: str = "eng"
    language: Optional[str] = None  # None = provider default
    detect_orientation: bool = True
    is_table: bool = False
    scale: bool = True

    model_config = SettingsConfigDict(
        yaml_file=str(_CONFIG_DIR / "ocr.yaml"),
        env_file=str(_ENV_FILE),
        env_prefix="OCR_",
        extra="ignore",
    )

    @property
    def is_configured(self) -> bool:
        """Return True if the OCR credential is set."""
        return bool(self.api_key.strip())


class ServiceSettings(_YamlBackedSettings):
    """Service operations: logging paths and HTTP listener."""

    log_dir: str = "logs"
    log_filename: str = "extraction.log"
    log_max_bytes: int = 10_485_760  # 10MB
    log_backup_count: int = 5
    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    model_config = SettingsConfigDict(
        yaml_file=str(_CONFIG_DIR / "service.yaml"),
        env_prefix="SERVICE_",
        extra="ignore",
    )
