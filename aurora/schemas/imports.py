from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class ImportLineError(BaseModel):
    """Problems found on one CSV line (the header is line 1)."""
    line: int = Field(...)
    cpf: Optional[str] = Field(None)
    errors: List[str] = Field(default_factory=list)


class ImportResult(BaseModel):
    """Outcome of a CSV import; nothing is imported when errors are present."""
    success: bool = Field(...)
    imported: int = Field(0)
    errors: List[ImportLineError] = Field(default_factory=list)
    message: str = Field(...)
