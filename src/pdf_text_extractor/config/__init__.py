"""Configuration package -- typed, validated settings from YAML + .env."""

from .settings import ExtractionSettings, OcrSettings, ParseJobSettings, ServiceSettings

__all__ = [
    "ExtractionSettings",
    "OcrSettings",
    "ParseJobSettings",
    "ServiceSettings",
    "load_all_settings",
]


def load_all_settings() -> tuple[
    ExtractionSettings, ParseJobSettings, OcrSettings, ServiceSettings
]:
    """Load and return all configuration objects.

    Returns a tuple of (ExtractionSettings, ParseJobSettings, OcrSettings,
    ServiceSettings), each populated from its own YAML file with environment
    variable overrides.
    """
    return ExtractionSettings(), ParseJobSettings(), OcrSettings(), ServiceSettings()
