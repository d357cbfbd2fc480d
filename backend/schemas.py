"""Pydantic schemas for audit results and API request/response."""

from typing import Literal
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case attributes, camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class ImageInfo(CamelModel):
    src: str = ""
    alt: str = ""
    has_alt: bool = False


class LinkInfo(CamelModel):
    href: str = ""
    text: str = ""
    type: Literal["internal", "external"] = "external"


class AuditResult(CamelModel):
    """Technical audit of a single page. Computed once, never mutated."""

    url: str
    score: int = Field(ge=0, le=100)
    title: str = ""
    meta_description: str = ""
    h1: str = ""
    h2s: list[str] = Field(default_factory=list)
    images: list[ImageInfo] = Field(default_factory=list)
    links: list[LinkInfo] = Field(default_factory=list)
    load_time: int = Field(default=0, ge=0)
    performance_score: int = Field(default=100, ge=0, le=100)
    keyword_density: dict[str, float] = Field(default_factory=dict)
    recommendations: list[str] = Field(default_factory=list)


class StoredAudit(AuditResult):
    """An audit row as persisted by database.py."""

    id: int
    user_id: int | None = None
    public_id: str
    created_at: str


def _normalize_http_url(value: object) -> str:
    url = str(value or "").strip()
    if not url:
        raise ValueError("URL is required")
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("Please enter a valid URL")
    return url


class CreateAuditRequest(BaseModel):
    """Request body for POST /api/audits."""

    url: str

    @field_validator("url", mode="before")
    @classmethod
    def validate_url(cls, value: object) -> str:
        return _normalize_http_url(value)


class ManualAuditRequest(BaseModel):
    """Request body for POST /api/audits/html (pasted page markup)."""

    url: str
    html: str
    load_time: int = Field(default=0, ge=0, alias="loadTime")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("url", mode="before")
    @classmethod
    def validate_url(cls, value: object) -> str:
        return _normalize_http_url(value)

    @field_validator("html")
    @classmethod
    def validate_html(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("HTML is required")
        return value


class ErrorResponse(BaseModel):
    """Body returned when an audit cannot be produced."""

    code: str
    message: str


class InsightItemResponse(BaseModel):
    issue: str
    fix: str
    impact: Literal["high", "medium", "low"] = "medium"


class AuditInsightsResponse(BaseModel):
    """Response for POST /api/audits/{id}/insights."""

    audit_id: int
    summary: str
    priorities: list[InsightItemResponse]
