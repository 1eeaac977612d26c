"""Records describing files the watcher has already handled."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class ProcessedRecord(BaseModel):
    """A file name recorded as split, with what was produced for it."""

    name: str
    mode: Literal["text", "binary"]
    chunk_count: int = 0
    verified: Optional[bool] = None
    processed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class LedgerState(BaseModel):
    """Serialized form of a persisted processed-file ledger."""

    records: Dict[str, ProcessedRecord] = Field(default_factory=dict)
    ignored: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


__all__ = ["ProcessedRecord", "LedgerState"]
