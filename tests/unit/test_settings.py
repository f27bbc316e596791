import pytest
from pydantic import ValidationError

from pdf_text_extractor.config import load_all_settings
from pdf_text_extractor.config.settings import (
    ExtractionSettings,
    OcrSettings,
    ParseJobSettings,
    ServiceSettings,
)


class TestDefaults:
    def test_extraction_defaults(self):
        settings = ExtractionSettings()
        assert settings.script_ratio_threshold == 0.2
        assert settings.script_ranges == [(0x0590, 0x05FF)]

    def test_parse_job_timing_defaults(self):
        settings = ParseJobSettings()
        assert settings.poll_interval_seconds == 1.5
        assert settings.job_deadline_seconds == 120.0
        assert settings.poll_timeout_seconds < settings.job_deadline_seconds

    def test_ocr_defaults(self):
        settings = OcrSettings()
        assert settings.timeout_seconds == 30.0
        assert settings.default_engine == "1"
        assert settings.retry_engine == "2"
        assert settings.retry_language == "auto"
        assert settings.fallback_language == "eng"

    def test_load_all_settings(self):
        extraction, parse_job, ocr, service = load_all_settings()
        assert isinstance(extraction, ExtractionSettings)
        assert isinstance(parse_job, ParseJobSettings)
        assert isinstance(ocr, OcrSettings)
        assert isinstance(service, ServiceSettings)


class TestProviderConfiguration:
    def test_parse_job_has_no_baked_in_credential(self, monkeypatch):
        monkeypatch.delenv("PARSE_JOB_API_KEY", raising=False)
        monkeypatch.delenv("PARSE_JOB_BASE_URL", raising=False)
        settings = ParseJobSettings(_env_file=None)
        assert settings.api_key == ""
        assert settings.base_url == ""
        assert not settings.is_configured

    def test_parse_job_needs_both_url_and_key(self):
        assert not ParseJobSettings(base_url="https://x", api_key="").is_configured
        assert not ParseJobSettings(base_url="", api_key="k").is_configured
        assert ParseJobSettings(base_url="https://x", api_key="k").is_configured

    def test_ocr_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("OCR_API_KEY", "from-env")
        settings = OcrSettings()
        assert settings.api_key == "from-env"
        assert settings.is_configured

    def test_blank_ocr_key_is_unconfigured(self):
        assert not OcrSettings(api_key="   ").is_configured


class TestValidation:
    def test_threshold_out_of_range(self):
        with pytest.raises(ValidationError):
            ExtractionSettings(script_ratio_threshold=1.5)

    def test_inverted_script_range(self):
        with pytest.raises(ValidationError):
            ExtractionSettings(script_ranges=[(0x05FF, 0x0590)])
