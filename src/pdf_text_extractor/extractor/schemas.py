"""Response schema for the ExtractText operation.

One shape for both outcomes: success carries ``text`` and ``pages``;
failure carries ``error``. Serialise with ``to_payload()`` so unset fields
are omitted from the wire format.
"""

from typing import Optional

from pydantic import BaseModel, Field

NO_FILE_ERROR = "No PDF file provided"
INTERNAL_ERROR = "Failed to parse PDF"


class ExtractTextResponse(BaseModel):
    """Result of extracting text from one uploaded PDF."""

    success: bool
    text: Optional[str] = None
    pages: Optional[int] = Field(default=None, ge=0)
    backend: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, text: str, pages: int, backend: Optional[str] = None) -> "ExtractTextResponse":
        return cls(success=True, text=text, pages=pages, backend=backend)

    @classmethod
    def failure(cls, error: str) -> "ExtractTextResponse":
        return cls(success=False, error=error)

    def to_payload(self) -> dict:
        return self.model_dump(exclude_none=True)
