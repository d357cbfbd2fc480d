"""
Claude-backed insights for a stored audit.

The Anthropic client is built once by the caller (see build_client) and
passed in; this module holds no client of its own. The API key comes from
ANTHROPIC_API_KEY, loaded by config.py from the backend .env file.
"""

import json
import logging
import random
import time

from anthropic import Anthropic

from config import ANTHROPIC_API_KEY, MAX_RETRIES, MAX_TOKENS, MODEL_CANDIDATES, RETRY_BASE_SECONDS
from models import AuditInsights, InsightItem
from schemas import AuditResult

log = logging.getLogger("seo-workspace")

TEMPERATURE = 0.2
IMPACT_LEVELS = ("high", "medium", "low")
MAX_PRIORITIES = 8

SYSTEM_MESSAGE = """You are a senior technical SEO auditor.
Return ONLY valid raw JSON that matches the schema exactly.
Every fix must be specific to the provided page data.
Do not include markdown, code fences, or text outside JSON."""

USER_TEMPLATE = """Page URL: {url}
SEO Score: {score}/100
Performance Score: {performance_score}/100
Load Time: {load_time}ms

Title: {title}
Meta Description: {meta_description}
H1: {h1}
H2 Count: {h2_count}
Images: {image_count} ({missing_alt} missing alt text)
Links: {internal_links} internal, {external_links} external
Top Keywords: {keywords}

Detected Issues:
{issues}

Tasks:
1. Write a two-sentence summary of the page's technical SEO health.
2. List up to {max_priorities} prioritized fixes, most impactful first.
   Each fix must name the exact element or asset to change.

Return ONLY this JSON structure:

{{
  "summary": "string",
  "priorities": [
    {{ "issue": "string", "fix": "string", "impact": "high|medium|low" }}
  ]
}}"""

_FALLBACK_FIXES = {
    "Missing Title Tag": "Add a unique <title> of 30-60 characters with the primary keyword.",
    "Title length should be 30-60 chars": "Rewrite the <title> to 30-60 characters.",
    "Missing Meta Description": "Add a meta description of 50-160 characters summarizing the page.",
    "Meta Description should be 50-160 chars": "Rewrite the meta description to 50-160 characters.",
    "Missing H1 Tag": "Add exactly one H1 that states the page topic.",
    "Multiple H1 Tags found (should be exactly one)": "Keep one H1 and demote the others to H2.",
    "No H2 Tags found - improve structure": "Break the content into sections with H2 headings.",
}


def build_client(api_key: str | None = None) -> Anthropic | None:
    """Construct an Anthropic client, or None when no key is configured."""
    key = (api_key if api_key is not None else ANTHROPIC_API_KEY).strip()
    if not key:
        return None
    return Anthropic(api_key=key)


def _fallback_fix(issue: str) -> InsightItem:
    if issue in _FALLBACK_FIXES:
        impact = "high" if issue.startswith("Missing") else "medium"
        return {"issue": issue, "fix": _FALLBACK_FIXES[issue], "impact": impact}
    if "Alt Text" in issue:
        return {"issue": issue, "fix": "Add descriptive alt attributes to every content image.", "impact": "medium"}
    if issue.startswith("Slow load time"):
        return {"issue": issue, "fix": "Compress images and defer non-critical scripts.", "impact": "high"}
    return {"issue": issue, "fix": "Review and resolve this issue.", "impact": "low"}


def fallback_insights(audit: AuditResult) -> AuditInsights:
    """Deterministic insights built from the audit's own recommendations."""
    if not audit.recommendations:
        summary = f"{audit.url} passes all basic technical checks with a score of {audit.score}/100."
    else:
        summary = (
            f"{audit.url} scores {audit.score}/100 with "
            f"{len(audit.recommendations)} technical issue(s) to fix."
        )
    return {
        "summary": summary,
        "priorities": [_fallback_fix(issue) for issue in audit.recommendations[:MAX_PRIORITIES]],
    }


def _build_user_message(audit: AuditResult) -> str:
    def _text_value(value: str) -> str:
        cleaned = str(value or "").strip()
        return cleaned if cleaned else "Not found"

    missing_alt = sum(1 for img in audit.images if not img.has_alt)
    internal = sum(1 for link in audit.links if link.type == "internal")
    keywords = ", ".join(f"{word} ({pct}%)" for word, pct in audit.keyword_density.items())
    issues = "\n".join(f"- {r}" for r in audit.recommendations) or "- None"

    return USER_TEMPLATE.format(
        url=audit.url,
        score=audit.score,
        performance_score=audit.performance_score,
        load_time=audit.load_time,
        title=_text_value(audit.title),
        meta_description=_text_value(audit.meta_description),
        h1=_text_value(audit.h1),
        h2_count=len(audit.h2s),
        image_count=len(audit.images),
        missing_alt=missing_alt,
        internal_links=internal,
        external_links=len(audit.links) - internal,
        keywords=keywords or "Not available",
        issues=issues,
        max_priorities=MAX_PRIORITIES,
    )


def _extract_json(text: str) -> dict | None:
    if not text:
        return None

    text = text.strip()
    if text.startswith("```"):
        text = text.replace("```json", "").replace("```", "").strip()

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1:
        return None

    json_str = (
        text[start : end + 1]
        .replace("“", '"')
        .replace("”", '"')
        .replace("‘", "'")
        .replace("’", "'")
    )
    try:
        parsed = json.loads(json_str)
    except ValueError as e:
        log.warning("claude insights: JSON parse error: %s", e)
        return None
    return parsed if isinstance(parsed, dict) else None


def _extract_response_text(response: object) -> str:
    content = ""
    for block in getattr(response, "content", []) or []:
        text = getattr(block, "text", None)
        if text:
            content += text
    return content.strip()


def _is_retryable_error(exc: Exception) -> bool:
    msg = str(exc).lower()
    retry_tokens = (
        "overloaded",
        "529",
        "rate limit",
        "rate_limit",
        "429",
        "500",
        "502",
        "503",
        "504",
        "timeout",
    )
    return any(token in msg for token in retry_tokens)


def _call_claude(client: Anthropic, user_message: str) -> str:
    last_error: Exception | None = None

    for model in MODEL_CANDIDATES:
        for attempt in range(MAX_RETRIES):
            try:
                response = client.messages.create(
                    model=model,
                    max_tokens=MAX_TOKENS,
                    system=SYSTEM_MESSAGE,
                    messages=[{"role": "user", "content": user_message}],
                    temperature=TEMPERATURE,
                )
                content = _extract_response_text(response)
                if content:
                    return content
                last_error = RuntimeError("Empty Claude response content.")
            except Exception as e:
                last_error = e
                if not _is_retryable_error(e):
                    break
            if attempt < MAX_RETRIES - 1:
                delay = RETRY_BASE_SECONDS * (2 ** attempt) + random.uniform(0, 0.35)
                log.info("claude retry: model=%s attempt=%s wait=%.2fs", model, attempt + 1, delay)
                time.sleep(delay)

    if last_error is not None:
        raise last_error
    return ""


def _normalize_insights(raw: dict, audit: AuditResult) -> AuditInsights:
    summary = str(raw.get("summary") or "").strip()
    priorities: list[InsightItem] = []
    items = raw.get("priorities")
    for item in items if isinstance(items, list) else []:
        if not isinstance(item, dict):
            continue
        issue = str(item.get("issue") or "").strip()
        fix = str(item.get("fix") or "").strip()
        if not issue or not fix:
            continue
        impact = str(item.get("impact") or "").strip().lower()
        priorities.append(
            {"issue": issue, "fix": fix, "impact": impact if impact in IMPACT_LEVELS else "medium"}
        )

    fallback = fallback_insights(audit)
    return {
        "summary": summary or fallback["summary"],
        "priorities": priorities[:MAX_PRIORITIES] or fallback["priorities"],
    }


def generate_audit_insights(audit: AuditResult, client: Anthropic | None = None) -> AuditInsights:
    """
    Ask Claude for a summary and prioritized fixes for `audit`.
    Without a client, or on API/JSON failure, returns fallback insights. Never raises.
    """
    if client is None:
        log.info("claude insights: no Anthropic client configured, using fallback.")
        return fallback_insights(audit)

    try:
        content = _call_claude(client, _build_user_message(audit))
        log.debug("claude insights raw response: %s", content)
        parsed = _extract_json(content)
        if parsed is None:
            return fallback_insights(audit)
        return _normalize_insights(parsed, audit)
    except Exception as e:
        log.error("claude insights error: %s", e)
        return fallback_insights(audit)
