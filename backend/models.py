"""Data models and types used across the backend.

Database table definitions are in database.py.
Types for the page scraper and AI output live here; the API-facing
AuditResult model is in schemas.py.
"""

from typing import Literal, TypedDict


class ImageData(TypedDict):
    src: str
    alt: str
    has_alt: bool


class LinkData(TypedDict):
    href: str
    text: str
    type: Literal["internal", "external"]


class PageSignals(TypedDict):
    """On-page signals extracted from a single HTML document."""

    title: str
    meta_description: str
    h1: str
    h1_count: int
    h2s: list[str]
    images: list[ImageData]
    links: list[LinkData]
    body_text: str


class InsightItem(TypedDict):
    issue: str
    fix: str
    impact: Literal["high", "medium", "low"]


class AuditInsights(TypedDict):
    """Structured JSON returned by the AI insights service."""

    summary: str
    priorities: list[InsightItem]
