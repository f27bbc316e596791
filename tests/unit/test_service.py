import pytest

from conftest import HEBREW_TEXT, LATIN_NOISE, FakeBackend
from pdf_text_extractor.extractor.service import extract_document
from pdf_text_extractor.extractor.types import (
    AttemptOutcome,
    BackendName,
    ErrorKind,
)


def backends(
    parse_job_text: str = "",
    local_text: str = "",
    ocr_text: str = "",
    **overrides,
):
    parse_job = FakeBackend(
        BackendName.PARSE_JOB,
        text=parse_job_text,
        outcome=AttemptOutcome.SUCCEEDED if parse_job_text else AttemptOutcome.FAILED,
        page_count=4,
    )
    local = FakeBackend(
        BackendName.LOCAL,
        text=local_text,
        outcome=AttemptOutcome.SUCCEEDED if local_text else AttemptOutcome.INCONCLUSIVE,
        page_count=3,
    )
    ocr = FakeBackend(
        BackendName.OCR,
        text=ocr_text,
        outcome=AttemptOutcome.SUCCEEDED if ocr_text else AttemptOutcome.INCONCLUSIVE,
        page_count=2,
    )
    found = {"parse_job": parse_job, "local": local, "ocr": ocr}
    found.update(overrides)
    return found


class TestWaterfall:
    @pytest.mark.asyncio
    async def test_parse_job_text_short_circuits(self, document, extraction_settings):
        tiers = backends(parse_job_text="cloud text", local_text=HEBREW_TEXT, ocr_text="ocr")

        result = await extract_document(document, extraction_settings, **tiers)

        assert result.text == "cloud text"
        assert result.page_count == 4
        assert result.backend == BackendName.PARSE_JOB
        assert tiers["local"].calls == 0
        assert tiers["ocr"].calls == 0

    @pytest.mark.asyncio
    async def test_parse_job_text_is_not_script_checked(self, document, extraction_settings):
        tiers = backends(parse_job_text=LATIN_NOISE)

        result = await extract_document(document, extraction_settings, **tiers)

        assert result.text == LATIN_NOISE
        assert tiers["local"].calls == 0

    @pytest.mark.asyncio
    async def test_local_text_passing_ratio_skips_ocr(self, document, extraction_settings):
        tiers = backends(local_text=HEBREW_TEXT, ocr_text="ocr text")

        result = await extract_document(document, extraction_settings, **tiers)

        assert result.text == HEBREW_TEXT
        assert result.page_count == 3
        assert result.backend == BackendName.LOCAL
        assert tiers["parse_job"].calls == 1
        assert tiers["ocr"].calls == 0

    @pytest.mark.asyncio
    async def test_low_ratio_local_text_falls_to_ocr(self, document, extraction_settings):
        tiers = backends(local_text=LATIN_NOISE, ocr_text="טקסט מסריקה")

        result = await extract_document(document, extraction_settings, **tiers)

        assert result.text == "טקסט מסריקה"
        assert result.page_count == 2
        assert result.backend == BackendName.OCR
        assert tiers["ocr"].calls == 1

        local_attempt = result.attempts[1]
        assert local_attempt.outcome == AttemptOutcome.INCONCLUSIVE
        assert local_attempt.error_kind == ErrorKind.QUALITY_REJECTED

    @pytest.mark.asyncio
    async def test_rejected_local_text_never_returned(self, document, extraction_settings):
        tiers = backends(local_text=LATIN_NOISE, ocr_text="")

        result = await extract_document(document, extraction_settings, **tiers)

        assert result.text == ""
        assert result.page_count == 0
        assert LATIN_NOISE not in [a.text for a in result.attempts]

    @pytest.mark.asyncio
    async def test_empty_local_text_falls_to_ocr(self, document, extraction_settings):
        tiers = backends(local_text="", ocr_text="scanned")

        result = await extract_document(document, extraction_settings, **tiers)

        assert result.text == "scanned"
        assert tiers["local"].calls == 1

    @pytest.mark.asyncio
    async def test_result_text_is_trimmed(self, document, extraction_settings):
        tiers = backends(ocr_text="\n\n  scanned page  \n")

        result = await extract_document(document, extraction_settings, **tiers)

        assert result.text == "scanned page"
        assert result.char_count == len("scanned page")


class TestExhaustion:
    @pytest.mark.asyncio
    async def test_all_backends_empty(self, document, extraction_settings):
        tiers = backends()

        result = await extract_document(document, extraction_settings, **tiers)

        assert result.is_empty
        assert result.page_count == 0
        assert result.backend is None
        assert result.error_kind == ErrorKind.ALL_BACKENDS_EXHAUSTED
        assert [a.backend for a in result.attempts] == [
            BackendName.PARSE_JOB,
            BackendName.LOCAL,
            BackendName.OCR,
        ]

    @pytest.mark.asyncio
    async def test_unavailable_backends_are_skipped(self, document, extraction_settings):
        tiers = backends(
            parse_job=FakeBackend(BackendName.PARSE_JOB, text="x", available=False),
            ocr=FakeBackend(BackendName.OCR, text="y", available=False),
        )

        result = await extract_document(document, extraction_settings, **tiers)

        assert result.is_empty
        assert tiers["parse_job"].calls == 0
        assert tiers["ocr"].calls == 0
        assert [a.backend for a in result.attempts] == [BackendName.LOCAL]

    @pytest.mark.asyncio
    async def test_missing_backends_are_skipped(self, document, extraction_settings):
        local = FakeBackend(BackendName.LOCAL, text=HEBREW_TEXT)

        result = await extract_document(
            document, extraction_settings, parse_job=None, local=local, ocr=None
        )

        assert result.text == HEBREW_TEXT

    @pytest.mark.asyncio
    async def test_backend_exceptions_are_absorbed(self, document, extraction_settings):
        tiers = backends(
            parse_job=FakeBackend(BackendName.PARSE_JOB, raises=RuntimeError("boom")),
            local=FakeBackend(BackendName.LOCAL, raises=ValueError("bad xref")),
            ocr_text="ocr rescue",
        )

        result = await extract_document(document, extraction_settings, **tiers)

        assert result.text == "ocr rescue"
        assert result.attempts[0].error_kind == ErrorKind.UNEXPECTED
        assert result.attempts[1].outcome == AttemptOutcome.FAILED
