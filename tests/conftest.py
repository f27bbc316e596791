from typing import Callable, Optional

import httpx
import pytest

from pdf_text_extractor.config.settings import (
    ExtractionSettings,
    OcrSettings,
    ParseJobSettings,
)
from pdf_text_extractor.extractor.base import ExtractionBackend
from pdf_text_extractor.extractor.types import (
    AttemptOutcome,
    BackendName,
    Document,
    ExtractionAttempt,
)

HEBREW_TEXT = "שלום עולם, זהו מסמך בדיקה עם תוכן עסקי בעברית."
LATIN_NOISE = "Ã©Ã¨ lorem ipsum dolor sit amet ÃƒÂ garbled glyph run"


class FakeBackend(ExtractionBackend):
    """Backend double that records how often it was invoked."""

    def __init__(
        self,
        name: BackendName,
        text: str = "",
        outcome: AttemptOutcome = AttemptOutcome.SUCCEEDED,
        page_count: int = 0,
        available: bool = True,
        raises: Optional[Exception] = None,
    ):
        self.name = name
        self._text = text
        self._outcome = outcome
        self._page_count = page_count
        self._available = available
        self._raises = raises
        self.calls = 0

    @property
    def available(self) -> bool:
        return self._available

    async def _extract(self, document: Document) -> ExtractionAttempt:
        self.calls += 1
        if self._raises is not None:
            raise self._raises
        return ExtractionAttempt(
            backend=self.name,
            outcome=self._outcome,
            text=self._text,
            page_count=self._page_count,
        )


class FakeClock:
    """Monotonic clock + async sleep pair that only moves when told to."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def form_field(request: httpx.Request, name: str) -> Optional[str]:
    """Read one text field out of a multipart request body."""
    marker = f'name="{name}"\r\n\r\n'.encode()
    body = request.content
    start = body.find(marker)
    if start < 0:
        return None
    start += len(marker)
    end = body.find(b"\r\n", start)
    return body[start:end].decode()


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def refuse_all(request: httpx.Request) -> httpx.Response:
    raise AssertionError(f"unexpected outbound request: {request.method} {request.url}")


@pytest.fixture
def document() -> Document:
    return Document(data=b"%PDF-1.4 fake body", filename="business.pdf")


@pytest.fixture
def extraction_settings() -> ExtractionSettings:
    return ExtractionSettings(script_ratio_threshold=0.2, script_ranges=[(0x0590, 0x05FF)])


@pytest.fixture
def parse_job_settings() -> ParseJobSettings:
    return ParseJobSettings(base_url="https://parse.test/api", api_key="test-parse-key")


@pytest.fixture
def unconfigured_parse_job_settings() -> ParseJobSettings:
    return ParseJobSettings(base_url="", api_key="")


@pytest.fixture
def ocr_settings() -> OcrSettings:
    return OcrSettings(api_key="test-ocr-key", base_url="https://ocr.test")


@pytest.fixture
def unconfigured_ocr_settings() -> OcrSettings:
    return OcrSettings(api_key="")


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sample_pdf_bytes() -> bytes:
    """Build a one-page PDF with selectable text."""
    pymupdf = pytest.importorskip("pymupdf")
    doc = pymupdf.open()
    page = doc.new_page()
    page.insert_text((72, 72), "Hello World")
    data = doc.tobytes()
    doc.close()
    return data
