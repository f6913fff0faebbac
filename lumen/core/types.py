"""Value types passed between the core and its callers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field


class ModelDescriptor(BaseModel):
    """Normalized metadata for one model exposed by a provider."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    id: str
    provider_id: str
    display_name: str
    size_bytes: Optional[int] = None
    last_modified: Optional[datetime] = None


class ScanResult(BaseModel):
    """Outcome of a local discovery call. Failures are data, not exceptions."""

    models: List[ModelDescriptor] = Field(default_factory=list)
    success: bool
    error: Optional[str] = None

    @classmethod
    def ok(cls, models: Sequence[ModelDescriptor]) -> "ScanResult":
        return cls(models=list(models), success=True)

    @classmethod
    def fail(cls, error: str) -> "ScanResult":
        return cls(models=[], success=False, error=error)


class ConnectionTestResult(BaseModel):
    success: bool
    model_count: int = 0


@dataclass(frozen=True)
class Attachment:
    """A file attached to a chat message.

    ``text_content`` is None when no text could be extracted (images, binaries).
    """

    name: str
    mime_type: str = "application/octet-stream"
    text_content: Optional[str] = None


@dataclass(frozen=True)
class ChatRequest:
    provider_id: str
    model_id: str
    prompt: str
    attachments: Sequence[Attachment] = field(default_factory=tuple)
