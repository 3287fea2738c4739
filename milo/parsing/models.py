from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

DocumentFormat = Literal["pdf", "docx", "text", "unknown"]


class RawDocument(BaseModel):
    content: bytes
    content_type: str = ""
    url: str

    @property
    def size(self) -> int:
        return len(self.content)


class ExtractedText(BaseModel):
    text: str
    readability: float = Field(ge=0.0, le=1.0)
    readable: bool
    truncated: bool = False
    source_chars: int = Field(default=0, ge=0)
