"""Page fetcher and markup extraction for the technical audit.

fetch_page() performs the single outbound GET and classifies its failures;
extract_signals() turns raw HTML into the on-page signals the analyzer
scores. Neither retries nor caches.
"""

import logging
import re
import socket
import time
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup
from urllib3.exceptions import LocationValueError, NameResolutionError

from config import AUDIT_FETCH_TIMEOUT_SECONDS, AUDIT_USER_AGENT
from errors import AnalysisFailed, BotProtectionDetected, InvalidUrl
from models import ImageData, LinkData, PageSignals

log = logging.getLogger("seo-workspace")

_REQUEST_HEADERS = {
    "User-Agent": AUDIT_USER_AGENT,
}

BOT_PROTECTION_STATUSES = {403, 429}

_DNS_FAILURE_PATTERN = re.compile(
    r"name or service not known"
    r"|nodename nor servname"
    r"|getaddrinfo failed"
    r"|failed to resolve"
    r"|temporary failure in name resolution"
    r"|no address associated with hostname",
    re.IGNORECASE,
)

_INVISIBLE_TAGS = ["script", "style", "noscript", "template"]


def _is_dns_failure(exc: BaseException) -> bool:
    """Walk the exception chain looking for a host resolution error."""
    stack: list[object] = [exc]
    seen: set[int] = set()
    while stack:
        current = stack.pop()
        if not isinstance(current, BaseException) or id(current) in seen:
            continue
        seen.add(id(current))
        if isinstance(current, (socket.gaierror, NameResolutionError)):
            return True
        stack.append(current.__cause__)
        stack.append(current.__context__)
        stack.append(getattr(current, "reason", None))
        stack.extend(arg for arg in current.args if isinstance(arg, BaseException))
    return bool(_DNS_FAILURE_PATTERN.search(str(exc)))


def _declares_charset(response: requests.Response) -> bool:
    content_type = response.headers.get("Content-Type") or ""
    return "charset=" in content_type.lower()


def fetch_page(url: str, timeout: float | None = None) -> tuple[str, int]:
    """
    GET `url` with the audit bot User-Agent.

    Returns (html, load_time_ms), where load time spans request start to
    full body receipt. Raises BotProtectionDetected, InvalidUrl or
    AnalysisFailed; never returns partial data.
    """
    effective_timeout = AUDIT_FETCH_TIMEOUT_SECONDS if timeout is None else timeout
    start = time.perf_counter()
    try:
        response = requests.get(url, headers=_REQUEST_HEADERS, timeout=effective_timeout)
    except (requests.exceptions.InvalidURL, LocationValueError) as e:
        # urllib3 raises LocationParseError unwrapped for hosts it cannot parse.
        raise InvalidUrl(f"Invalid URL host: {e}", url=url) from e
    except requests.RequestException as e:
        if _is_dns_failure(e):
            log.info("audit fetch: host resolution failed for %s", url)
            raise InvalidUrl(url=url) from e
        log.warning("audit fetch failed for %s: %s", url, e)
        raise AnalysisFailed(f"Failed to fetch URL: {e}", url=url) from e
    except Exception as e:
        log.warning("audit fetch failed for %s: %s", url, e)
        raise AnalysisFailed(f"Failed to fetch URL: {e}", url=url) from e
    load_time = int((time.perf_counter() - start) * 1000)

    status = response.status_code
    if status in BOT_PROTECTION_STATUSES:
        log.info("audit fetch: %s answered %s, bot protection assumed", url, status)
        raise BotProtectionDetected(url=url, status_code=status)
    try:
        response.raise_for_status()
        if not _declares_charset(response):
            response.encoding = response.apparent_encoding or "utf-8"
        html = response.text
    except Exception as e:
        log.warning("audit fetch: unusable response from %s: %s", url, e)
        raise AnalysisFailed(f"Failed to fetch URL: {e}", url=url) from e

    log.debug("fetched %s status=%s load_time=%sms bytes=%s", url, status, load_time, len(html))
    return html, load_time


def _classify_link(href: str, hostname: str) -> str:
    if href.startswith("/"):
        return "internal"
    # Substring containment: "example.com.evil.com" also counts as internal.
    if hostname and hostname in href:
        return "internal"
    return "external"


def _visible_body_text(soup: BeautifulSoup) -> str:
    scope = soup.body
    drop = list(_INVISIBLE_TAGS)
    if scope is None:
        scope = soup
        drop += ["head", "title"]
    for tag in scope.find_all(drop):
        tag.decompose()
    return scope.get_text()


def extract_signals(html: str, url: str) -> PageSignals:
    """Parse `html` and pull out the on-page signals used for scoring."""
    try:
        soup = BeautifulSoup(html or "", "html.parser")
    except Exception as e:
        raise AnalysisFailed(f"Failed to parse HTML: {e}", url=url) from e

    hostname = urlparse(url).hostname or ""

    # --- Title / meta ---
    title_tag = soup.find("title")
    title = title_tag.get_text() if title_tag else ""

    meta_tag = soup.find("meta", attrs={"name": "description"})
    meta_description = (meta_tag.get("content") or "") if meta_tag else ""

    # --- Headings ---
    h1_tags = soup.find_all("h1")
    h1 = h1_tags[0].get_text() if h1_tags else ""
    h2s = [h.get_text() for h in soup.find_all("h2")]

    # --- Images ---
    images: list[ImageData] = []
    for img in soup.find_all("img"):
        alt = img.get("alt") or ""
        images.append({"src": img.get("src") or "", "alt": alt, "has_alt": bool(alt)})

    # --- Links ---
    links: list[LinkData] = []
    for a in soup.find_all("a"):
        href = a.get("href") or ""
        links.append(
            {
                "href": href,
                "text": a.get_text().strip(),
                "type": _classify_link(href, hostname),
            }
        )

    return {
        "title": title,
        "meta_description": meta_description,
        "h1": h1,
        "h1_count": len(h1_tags),
        "h2s": h2s,
        "images": images,
        "links": links,
        "body_text": _visible_body_text(soup),
    }
