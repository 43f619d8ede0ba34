from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from .envelope import isoformat


class GenerationRequest(BaseModel):
    # Optional here so a missing prompt surfaces as MissingField, not a schema error
    prompt: Optional[str] = Field(default=None, description="Text to complete")
    model: str = Field(default="command", description="Cohere model identifier")
    max_tokens: int = Field(default=150, ge=1, description="Upper bound for generated tokens")
    temperature: float = Field(default=0.7, description="Sampling temperature")


class TokenUsage(BaseModel):
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None


class GenerationResult(BaseModel):
    generated_text: str
    model: str
    usage: TokenUsage = Field(default_factory=TokenUsage)


class DataRequest(BaseModel):
    data: Any = None


class ObjectDescriptor(BaseModel):
    """A stored object as reported back to callers."""

    file_name: str = Field(alias="fileName")
    original_name: str = Field(alias="originalName")
    size: int = 0
    content_type: Optional[str] = Field(default=None, alias="contentType")
    created: Optional[str] = None
    updated: Optional[str] = None
    metadata: Dict[str, str] = Field(default_factory=dict)

    class Config:
        populate_by_name = True


class SignedLink(BaseModel):
    file_name: str = Field(alias="fileName")
    url: str
    expires_at: datetime = Field(alias="expiresAt")

    class Config:
        populate_by_name = True

    @property
    def expires_at_iso(self) -> str:
        return isoformat(self.expires_at)
