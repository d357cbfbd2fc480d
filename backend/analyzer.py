"""Single-page technical SEO audit.

Pipeline: fetch page -> extract signals -> keyword density ->
recommendations -> score -> AuditResult.
"""

import logging
import re

from errors import AnalysisFailed, AuditError
from models import PageSignals
from schemas import AuditResult, ImageInfo, LinkInfo
from scraper import extract_signals, fetch_page

log = logging.getLogger("seo-workspace")

KEYWORD_LIMIT = 10
MIN_KEYWORD_LENGTH = 4

TITLE_MIN, TITLE_MAX = 30, 60
META_MIN, META_MAX = 50, 160
SLOW_LOAD_WARNING_MS = 2000


def keyword_density(text: str, limit: int = KEYWORD_LIMIT) -> dict[str, float]:
    """
    Top `limit` qualifying words with their share of all qualifying words.

    Qualifying words are lowercased, whitespace-delimited and longer than
    three characters. Ties keep first-seen order.
    """
    words = [w for w in re.sub(r"\s+", " ", text).lower().split(" ") if len(w) >= MIN_KEYWORD_LENGTH]
    total = len(words)
    if not total:
        return {}

    counts: dict[str, int] = {}
    first_seen: dict[str, int] = {}
    for index, word in enumerate(words):
        if word not in counts:
            counts[word] = 0
            first_seen[word] = index
        counts[word] += 1

    ranked = sorted(counts, key=lambda w: (-counts[w], first_seen[w]))[:limit]
    return {w: round(counts[w] / total * 100, 2) for w in ranked}


def build_recommendations(signals: PageSignals, load_time: int) -> list[str]:
    recommendations: list[str] = []

    title = signals["title"]
    if not title:
        recommendations.append("Missing Title Tag")
    elif len(title) < TITLE_MIN or len(title) > TITLE_MAX:
        recommendations.append("Title length should be 30-60 chars")

    meta = signals["meta_description"]
    if not meta:
        recommendations.append("Missing Meta Description")
    elif len(meta) < META_MIN or len(meta) > META_MAX:
        recommendations.append("Meta Description should be 50-160 chars")

    if signals["h1_count"] == 0:
        recommendations.append("Missing H1 Tag")
    elif signals["h1_count"] > 1:
        recommendations.append("Multiple H1 Tags found (should be exactly one)")

    if not signals["h2s"]:
        recommendations.append("No H2 Tags found - improve structure")

    missing_alt = sum(1 for img in signals["images"] if not img["has_alt"])
    if missing_alt > 0:
        recommendations.append(f"{missing_alt} images missing Alt Text")

    if load_time > SLOW_LOAD_WARNING_MS:
        recommendations.append(f"Slow load time detected ({load_time}ms)")

    return recommendations


def compute_score(signals: PageSignals, load_time: int) -> int:
    """Start at 100, apply independent deductions, floor at 0."""
    score = 100
    if not signals["title"]:
        score -= 15
    if not signals["meta_description"]:
        score -= 15
    if signals["h1_count"] != 1:
        score -= 15
    if not signals["h2s"]:
        score -= 5

    missing_alt = sum(1 for img in signals["images"] if not img["has_alt"])
    score -= min(10, missing_alt * 2)

    if load_time > 1000:
        score -= 10
    if load_time > 3000:
        score -= 10
    return max(0, score)


def performance_score(load_time: int) -> int:
    """Linear latency proxy: one point per 50ms, not a web-vitals measurement."""
    return max(0, 100 - load_time // 50)


def build_result(url: str, signals: PageSignals, load_time: int) -> AuditResult:
    return AuditResult(
        url=url,
        score=compute_score(signals, load_time),
        title=signals["title"],
        meta_description=signals["meta_description"],
        h1=signals["h1"],
        h2s=signals["h2s"],
        images=[ImageInfo(**image) for image in signals["images"]],
        links=[LinkInfo(**link) for link in signals["links"]],
        load_time=load_time,
        performance_score=performance_score(load_time),
        keyword_density=keyword_density(signals["body_text"]),
        recommendations=build_recommendations(signals, load_time),
    )


def analyze_html(url: str, html: str, load_time: int = 0) -> AuditResult:
    """Audit markup the caller already has (e.g. pasted after bot protection)."""
    try:
        signals = extract_signals(html, url)
        return build_result(url, signals, max(0, int(load_time)))
    except AuditError:
        raise
    except Exception as e:
        log.exception("audit analysis failed for %s", url)
        raise AnalysisFailed(f"Failed to analyze URL: {e}", url=url) from e


def analyze_url(url: str, timeout: float | None = None) -> AuditResult:
    """
    Fetch `url` and return its technical audit.

    Raises BotProtectionDetected (403/429), InvalidUrl (host not
    resolvable) or AnalysisFailed (anything else). No retries.
    """
    html, load_time = fetch_page(url, timeout=timeout)
    result = analyze_html(url, html, load_time=load_time)
    log.info(
        "audited %s score=%s load_time=%sms issues=%s",
        url,
        result.score,
        result.load_time,
        len(result.recommendations),
    )
    return result
